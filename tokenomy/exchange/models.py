"""REST/WebSocket 응답 구조체와 요청 파라미터 객체."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..core.rawfloat import NumberLike, Rawfloat, format_rawfloat, round_rawfloat, to_decimal
from ..utils.exceptions import ParseError
from ..utils.time_utils import from_timestamp
from .constants import (
    DEFAULT_LIMIT,
    ParamName,
    SortOrder,
    TradeMethod,
    TradeType,
    normalize_pair_name,
    request_error,
)


class WireModel(BaseModel):
    """서버 JSON 과 매핑되는 모델의 공통 설정."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MarketDepth(WireModel):
    """가격별로 묶인 미체결 주문 잔량."""

    amount: Rawfloat
    price: Rawfloat


class MarketDepths(WireModel):
    pair: str = ""
    asks: List[MarketDepth] = Field(default_factory=list)
    bids: List[MarketDepth] = Field(default_factory=list)

    def get_ask_by_price(self, price: NumberLike) -> Optional[MarketDepth]:
        """가격이 일치하는 매도 호가를 찾는다."""
        return _find_depth(self.asks, price)

    def get_bid_by_price(self, price: NumberLike) -> Optional[MarketDepth]:
        """가격이 일치하는 매수 호가를 찾는다."""
        return _find_depth(self.bids, price)


def _find_depth(depths: List[MarketDepth], price: NumberLike) -> Optional[MarketDepth]:
    target = to_decimal(price)
    for depth in depths:
        if depth.price == target:
            return depth
    return None


class MarketInfo(WireModel):
    """공개용 페어 정보."""

    price_minimum: Optional[Rawfloat] = None
    amount_minimum: Optional[Rawfloat] = None
    id: str = ""
    symbol: str = ""
    coin_asset: str = ""
    base_asset: str = ""
    price_precision: int = 0
    amount_precision: int = 0
    is_active: bool = False


class Tick(WireModel):
    """페어의 시세 정보. high/low 와 거래량은 최근 24시간 기준이다."""

    pair: str = ""
    bid: Optional[Rawfloat] = None
    ask: Optional[Rawfloat] = None
    high: Optional[Rawfloat] = None
    low: Optional[Rawfloat] = None
    last_price: Optional[Rawfloat] = None
    volume_base: Optional[Rawfloat] = None
    volume_coin: Optional[Rawfloat] = None


class MarketTicker(Tick):
    """단일 페어 ticker 응답."""


class MarketSummaries(WireModel):
    prices: Dict[str, Rawfloat] = Field(default_factory=dict)
    prices_24h: Dict[str, Rawfloat] = Field(default_factory=dict)
    prices_7d: Dict[str, Rawfloat] = Field(default_factory=dict)
    prices_changes: Dict[str, Rawfloat] = Field(default_factory=dict)
    tickers: Dict[str, Tick] = Field(default_factory=dict)


class Trade(WireModel):
    """미체결 또는 체결된 매수/매도 주문."""

    id: int = 0
    pair: str = ""
    type: str = ""  # "sell" 또는 "buy"
    method: str = ""  # "limit" 또는 "market"
    status: str = ""
    price: Optional[Rawfloat] = None
    fee: Optional[Rawfloat] = None

    base_asset: str = ""
    base_amount: Optional[Rawfloat] = None
    base_remain: Optional[Rawfloat] = None
    base_filled: Optional[Rawfloat] = None

    coin_asset: str = ""
    coin_amount: Optional[Rawfloat] = None
    coin_remain: Optional[Rawfloat] = None
    coin_filled: Optional[Rawfloat] = None

    submit_time: int = 0
    finish_time: int = 0

    @property
    def submitted_at(self) -> Optional[datetime]:
        return from_timestamp(self.submit_time) if self.submit_time else None

    @property
    def finished_at(self) -> Optional[datetime]:
        return from_timestamp(self.finish_time) if self.finish_time else None


class TradesOpen(WireModel):
    asks: List[Trade] = Field(default_factory=list)
    bids: List[Trade] = Field(default_factory=list)


class MarketTrades(TradesOpen):
    """시장의 체결 내역."""


class TradePrice(WireModel):
    """체결 한 건의 가격 정보."""

    id: int = 0
    trade_time: int = 0
    amount: Optional[Rawfloat] = None
    amount_coin: Optional[Rawfloat] = None
    price: Optional[Rawfloat] = None


class Order(WireModel):
    id: int = 0
    pair: str = Field(default="", exclude=True)
    type: str = ""
    method: str = ""
    submit_time: int = 0
    finish_time: int = 0
    status: str = ""
    price: Optional[Rawfloat] = None

    amount_base: Optional[Rawfloat] = None
    remain_base: Optional[Rawfloat] = None
    filled_base: Optional[Rawfloat] = None

    amount_coin: Optional[Rawfloat] = None
    remain_coin: Optional[Rawfloat] = None
    filled_coin: Optional[Rawfloat] = None


class UserAssets(WireModel):
    """자산 이름별 잔고와 동결 잔고."""

    balances: Dict[str, Rawfloat] = Field(default_factory=dict)
    frozen_balances: Dict[str, Rawfloat] = Field(default_factory=dict)

    def available(self, asset: str) -> Decimal:
        return self.balances.get(asset.lower(), Decimal(0))


class UserNotifications(WireModel):
    deposit: bool = False
    login: bool = False
    trade: bool = False
    withdraw: bool = False


class User(UserAssets):
    """사용자 프로필과 잔고."""

    notifications: Optional[UserNotifications] = None
    wallets: Dict[str, str] = Field(default_factory=dict)
    email: str = ""
    full_name: str = ""
    id: int = 0


class TradeResponse(WireModel):
    """접수된 주문과 즉시 체결된 내역(deals)."""

    order: Optional[Order] = None
    user: Optional[User] = None
    deals: List[TradePrice] = Field(default_factory=list)


class WithdrawItem(WireModel):
    amount: Optional[Rawfloat] = None
    fee: Optional[Rawfloat] = None
    final_amount: Optional[Rawfloat] = None

    request_id: str = ""
    requester_ip: str = ""
    asset: str = ""
    network: str = ""
    status: str = ""
    address: str = ""
    address_type: str = ""
    memo: str = ""

    id: int = 0
    submit_time: int = 0
    success_time: int = 0


class DepositItem(WireModel):
    amount: Optional[Rawfloat] = None
    final_amount: Optional[Rawfloat] = None
    asset: str = ""
    status: str = ""
    id: int = 0
    success_time: int = 0


class AssetTransactions(WireModel):
    """자산별 입금·출금 내역."""

    deposit: Dict[str, List[DepositItem]] = Field(default_factory=dict)
    withdraw: Dict[str, List[WithdrawItem]] = Field(default_factory=dict)


class PublicSubscription(WireModel):
    """토픽별로 구독 중인 페어 목록."""

    depths: List[str] = Field(default_factory=list)
    ticker: List[str] = Field(default_factory=list)
    trades: List[str] = Field(default_factory=list)
    summaries: bool = False


MarketPrices = Dict[str, Decimal]
PairTradesOpen = Dict[str, TradesOpen]

MARKET_PRICES_ADAPTER: TypeAdapter[Dict[str, Decimal]] = TypeAdapter(Dict[str, Rawfloat])
PAIR_TRADES_OPEN_ADAPTER: TypeAdapter[Dict[str, TradesOpen]] = TypeAdapter(Dict[str, TradesOpen])
MARKET_INFO_LIST_ADAPTER: TypeAdapter[List[MarketInfo]] = TypeAdapter(List[MarketInfo])
TRADE_LIST_ADAPTER: TypeAdapter[List[Trade]] = TypeAdapter(List[Trade])


def positive_decimal(value: Optional[NumberLike]) -> Optional[Decimal]:
    """최대 정밀도로 반올림한 값이 0 보다 크면 그 Decimal 을, 아니면 None 을 반환한다.

    ``0.000000001`` 처럼 반올림하면 0 이 되는 값은 전송 문자열이 ``"0"`` 이
    되므로 거부한다.
    """
    if value is None:
        return None
    try:
        decimal_value = to_decimal(value)
    except ParseError:
        return None
    if not decimal_value.is_finite():
        return None
    rounded = round_rawfloat(decimal_value)
    if rounded <= 0:
        return None
    return rounded


@dataclass
class TradeRequest:
    """매수/매도 주문 요청.

    ``method`` 가 비어 있으면 ``limit`` 으로 간주한다. ``limit`` 주문은
    ``amount`` 와 ``price`` 가 모두 0 보다 커야 하고, ``market`` 주문은
    ``amount`` 만 사용한다. ``post_only`` 는 ``limit`` 주문에만 의미가 있다.
    """

    pair: str
    amount: Optional[NumberLike]
    price: Optional[NumberLike] = None
    method: str = TradeMethod.LIMIT
    type: str = ""
    post_only: bool = False
    time_in_force: Optional[str] = None

    def pack(self) -> Tuple[Dict[str, str], Dict[str, Any]]:
        """REST 폼 파라미터와 WebSocket JSON 파라미터를 만든다."""
        method = (self.method or TradeMethod.LIMIT).strip().lower()
        if method not in (TradeMethod.LIMIT, TradeMethod.MARKET):
            raise request_error("ERR_INVALID_TRADE_METHOD")
        if self.type and self.type not in (TradeType.ASK, TradeType.BID):
            raise request_error("ERR_INVALID_TRADE_TYPE")

        pair = normalize_pair_name(self.pair)
        amount = positive_decimal(self.amount)
        if amount is None:
            raise request_error("ERR_INVALID_AMOUNT")

        params: Dict[str, str] = {
            ParamName.TRADE_METHOD: method,
            ParamName.PAIR: pair,
            ParamName.AMOUNT: format_rawfloat(amount),
        }
        ws_params: Dict[str, Any] = {
            ParamName.METHOD: method,
            ParamName.PAIR: pair,
            ParamName.AMOUNT: format_rawfloat(amount),
        }
        if self.type:
            ws_params[ParamName.TYPE] = self.type

        if method == TradeMethod.LIMIT:
            price = positive_decimal(self.price)
            if price is None:
                raise request_error("ERR_INVALID_PRICE")
            params[ParamName.PRICE] = format_rawfloat(price)
            ws_params[ParamName.PRICE] = format_rawfloat(price)

        params[ParamName.POST_ONLY] = "true" if self.post_only else "false"
        ws_params[ParamName.POST_ONLY] = self.post_only

        if self.time_in_force:
            params[ParamName.TIME_IN_FORCE] = self.time_in_force.upper()
            ws_params[ParamName.TIME_IN_FORCE] = self.time_in_force.upper()

        return params, ws_params


@dataclass
class ListTradeParams:
    """사용자 체결·주문 목록 조회 조건.

    ``id_*``, ``time_*`` 필터는 0 보다 클 때만 전송한다.
    """

    pair: str
    sort: str = SortOrder.DESCENDING
    offset: int = 0
    limit: int = DEFAULT_LIMIT
    id_after: int = 0
    id_before: int = 0
    time_after: int = 0
    time_before: int = 0

    def pack(self) -> Dict[str, str]:
        sort = (self.sort or SortOrder.DESCENDING).strip().lower()
        if sort not in (SortOrder.ASCENDING, SortOrder.DESCENDING):
            raise request_error("ERR_INVALID_SORT_BY")

        limit = self.limit if 0 < self.limit <= DEFAULT_LIMIT else DEFAULT_LIMIT
        params: Dict[str, str] = {
            ParamName.PAIR: normalize_pair_name(self.pair),
            ParamName.SORT: sort,
            ParamName.LIMIT: str(limit),
        }
        optional = {
            ParamName.OFFSET: self.offset,
            ParamName.ID_AFTER: self.id_after,
            ParamName.ID_BEFORE: self.id_before,
            ParamName.TIME_AFTER: self.time_after,
            ParamName.TIME_BEFORE: self.time_before,
        }
        for name, value in optional.items():
            if value > 0:
                params[name] = str(value)
        return params


__all__ = [
    "AssetTransactions",
    "DepositItem",
    "ListTradeParams",
    "MARKET_INFO_LIST_ADAPTER",
    "MARKET_PRICES_ADAPTER",
    "MarketDepth",
    "MarketDepths",
    "MarketInfo",
    "MarketPrices",
    "MarketSummaries",
    "MarketTicker",
    "MarketTrades",
    "Order",
    "PAIR_TRADES_OPEN_ADAPTER",
    "PairTradesOpen",
    "PublicSubscription",
    "TRADE_LIST_ADAPTER",
    "Tick",
    "Trade",
    "TradePrice",
    "TradeRequest",
    "TradeResponse",
    "TradesOpen",
    "User",
    "UserAssets",
    "UserNotifications",
    "WithdrawItem",
    "positive_decimal",
    "WireModel",
]
