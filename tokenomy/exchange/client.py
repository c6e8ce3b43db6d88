"""토코노미 REST API v2 클라이언트."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

import requests
from requests import Response, Session

from ..config import AppSettings, get_settings
from ..core.rawfloat import NumberLike, format_rawfloat
from ..utils.exceptions import APIError, ExchangeError
from ..utils.time_utils import timestamp_seconds
from .auth import ClientCredentials, canonicalize_params, sign_request
from .constants import (
    DEFAULT_LIMIT,
    Endpoint,
    HttpMethod,
    ParamName,
    TradeType,
    normalize_pair_name,
    request_error,
)
from .models import (
    MARKET_INFO_LIST_ADAPTER,
    MARKET_PRICES_ADAPTER,
    PAIR_TRADES_OPEN_ADAPTER,
    TRADE_LIST_ADAPTER,
    AssetTransactions,
    ListTradeParams,
    MarketDepths,
    MarketInfo,
    MarketPrices,
    MarketSummaries,
    MarketTicker,
    MarketTrades,
    Order,
    PairTradesOpen,
    Trade,
    TradeRequest,
    TradeResponse,
    TradesOpen,
    User,
    WithdrawItem,
    positive_decimal,
)

JsonMapping = Mapping[str, Any]
Headers = Mapping[str, str]
Timeout = Union[float, Tuple[float, float]]

DEFAULT_USER_AGENT = "tokenomy-client/0.1 (+https://github.com/tokenomy/tokenomy-client)"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class BaseRestClient:
    """세션, 헤더, 로깅 등 REST 클라이언트 공통 처리를 담당한다.

    자동 재시도는 하지 않는다. 주문·출금 요청은 멱등하지 않으므로
    재시도 여부는 호출자가 결정한다.
    """

    def __init__(
        self,
        *,
        address: str,
        session: Optional[Session] = None,
        timeout: Timeout,
        user_agent: str = DEFAULT_USER_AGENT,
        credentials: ClientCredentials,
        debug: int = 0,
        insecure: bool = False,
    ) -> None:
        self._address = address.rstrip("/")
        self._timeout: Timeout = timeout
        self._session: Session = session or requests.Session()
        self._owns_session = session is None
        self._default_headers: dict[str, str] = {
            "Accept": "application/json",
            "User-Agent": user_agent,
        }
        self._credentials = credentials
        self._debug = max(0, debug)
        self._verify = not insecure
        self._logger = logging.getLogger(__name__)
        if self._debug >= 1:
            self._logger.debug(
                "클라이언트 설정: address=%s timeout=%s insecure=%s authenticated=%s",
                self._address,
                timeout,
                insecure,
                credentials.is_complete,
            )

    @property
    def address(self) -> str:
        """API 서버 주소."""

        return self._address

    @property
    def timeout(self) -> Timeout:
        return self._timeout

    @property
    def session(self) -> Session:
        return self._session

    @property
    def credentials(self) -> ClientCredentials:
        """설정된 인증 정보."""

        return self._credentials

    def close(self) -> None:
        """직접 생성한 세션만 종료한다."""

        if self._owns_session:
            self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - 컨텍스트 관리자 편의 기능
        self.close()

    # ------------------------------------------------------------------
    # 내부 유틸리티
    # ------------------------------------------------------------------
    def _resolve_endpoint_path(
        self,
        endpoint: Union[Enum, str],
        path_params: Optional[Mapping[str, Any]],
    ) -> str:
        if isinstance(endpoint, Enum):
            path_template = str(endpoint.value)
        else:
            path_template = str(endpoint)

        if not path_template.startswith("/"):
            path_template = f"/{path_template}"

        try:
            return path_template.format(**(path_params or {}))
        except KeyError as exc:  # pragma: no cover - 잘못된 포맷 지정 시만 실행
            missing_key = exc.args[0]
            raise ValueError(
                f"경로 변수 '{missing_key}'가 누락되었습니다: {path_template}"
            ) from exc

    def _merge_headers(self, extra_headers: Optional[Headers]) -> dict[str, str]:
        merged = dict(self._default_headers)
        if extra_headers:
            merged.update(extra_headers)
        return merged

    def _send(
        self,
        method: str,
        url: str,
        *,
        encoded: str,
        headers: dict[str, str],
        timeout: Optional[Timeout],
        operation: str,
    ) -> Response:
        """인코딩이 끝난 파라미터를 쿼리 또는 폼 본문으로 전송한다.

        서명한 문자열과 전송하는 문자열이 바이트 단위로 같아야 하므로
        파라미터는 항상 인코딩된 문자열로 넘긴다.
        """
        query: Optional[str] = None
        body: Optional[str] = None
        if method == HttpMethod.POST.value:
            headers["Content-Type"] = FORM_CONTENT_TYPE
            body = encoded
        elif encoded:
            query = encoded

        if self._debug >= 2:
            self._logger.debug("%s: %s %s query=%s body=%s", operation, method, url, query, body)

        try:
            return self._session.request(
                method=method,
                url=url,
                params=query,
                data=body,
                headers=headers,
                timeout=timeout or self._timeout,
                verify=self._verify,
            )
        except requests.RequestException as exc:
            raise ExchangeError(f"{operation}: 네트워크 오류가 발생했습니다: {exc}") from exc

    def _decode_json(self, response: Response, *, operation: str) -> Any:
        if self._debug >= 2:
            self._logger.debug("%s: HTTP %s %s", operation, response.status_code, response.text)
        try:
            return response.json()
        except ValueError as exc:
            if response.status_code >= 400:
                raise APIError(response.status_code, response.text or "빈 오류 응답") from exc
            raise ExchangeError(f"{operation}: 응답 JSON 디코딩 실패") from exc


class TokenomyClient(BaseRestClient):
    """토코노미 API v2 REST 호출을 담당하는 클라이언트.

    토큰과 시크릿이 없으면 공개 API만 사용할 수 있으며, 비공개 API를 호출하면
    네트워크 요청 없이 ``Unauthenticated`` 가 발생한다.
    """

    def __init__(
        self,
        *,
        address: Optional[str] = None,
        token: Optional[str] = None,
        secret: Optional[str] = None,
        session: Optional[Session] = None,
        timeout: Optional[Timeout] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        debug: Optional[int] = None,
        insecure: Optional[bool] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        tokenomy_settings = (settings or get_settings()).tokenomy
        super().__init__(
            address=address or tokenomy_settings.address,
            session=session,
            timeout=timeout or tokenomy_settings.timeout,
            user_agent=user_agent,
            credentials=ClientCredentials(
                token or tokenomy_settings.token_value,
                secret or tokenomy_settings.secret_value,
            ),
            debug=tokenomy_settings.debug if debug is None else debug,
            insecure=tokenomy_settings.insecure if insecure is None else insecure,
        )
        self._clock: Callable[[], int] = timestamp_seconds
        self.user: Optional[User] = None

    # ------------------------------------------------------------------
    # 공개 메서드
    # ------------------------------------------------------------------
    def request(
        self,
        method: Union[HttpMethod, str],
        endpoint: Union[Endpoint, str],
        *,
        params: Optional[JsonMapping] = None,
        headers: Optional[Headers] = None,
        path_params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[Timeout] = None,
        private: bool = False,
        operation: Optional[str] = None,
    ) -> Any:
        """요청을 보내고 응답 봉투의 ``data`` 를 반환한다.

        HTTP 상태 코드가 400 이상이면 봉투의 ``message``/``name`` 과 상태 코드로
        ``APIError`` 를 발생시킨다.
        """
        method_value = method.value if isinstance(method, HttpMethod) else str(method).upper()
        path = self._resolve_endpoint_path(endpoint, path_params)
        url = f"{self._address}{path}"
        operation = operation or path
        merged_headers = self._merge_headers(headers)

        if private:
            signed = sign_request(params, self._credentials, timestamp=self._clock())
            merged_headers.update(signed.headers)
            encoded = signed.payload
        else:
            encoded = canonicalize_params(params)

        response = self._send(
            method_value,
            url,
            encoded=encoded,
            headers=merged_headers,
            timeout=timeout,
            operation=operation,
        )
        return self._handle_response(response, operation=operation)

    def _handle_response(self, response: Response, *, operation: str) -> Any:
        payload = self._decode_json(response, operation=operation)
        if response.status_code >= 400:
            raise APIError.from_payload(payload, status_code=response.status_code)
        if isinstance(payload, Mapping):
            return payload.get("data")
        return payload

    def get(self, endpoint: Union[Endpoint, str], **kwargs: Any) -> Any:
        return self.request(HttpMethod.GET, endpoint, **kwargs)

    def post(self, endpoint: Union[Endpoint, str], **kwargs: Any) -> Any:
        return self.request(HttpMethod.POST, endpoint, **kwargs)

    def delete(self, endpoint: Union[Endpoint, str], **kwargs: Any) -> Any:
        return self.request(HttpMethod.DELETE, endpoint, **kwargs)

    # ------------------------------------------------------------------
    # 시장 정보 (공개)
    # ------------------------------------------------------------------
    def market_depths(self, pair: str) -> MarketDepths:
        """페어의 호가 잔량을 조회한다."""
        params = {ParamName.PAIR: normalize_pair_name(pair)}
        data = self.get(Endpoint.MARKET_DEPTHS, params=params, operation="market_depths")
        return MarketDepths.model_validate(data or {})

    def market_info(self) -> List[MarketInfo]:
        """플랫폼의 모든 페어 정보를 조회한다."""
        data = self.get(Endpoint.MARKET_INFO, operation="market_info")
        return MARKET_INFO_LIST_ADAPTER.validate_python(data or [])

    def market_trades_open(self, pair: str) -> TradesOpen:
        """시장의 미체결 주문을 매도/매수로 나누어 조회한다."""
        params = {ParamName.PAIR: normalize_pair_name(pair)}
        data = self.get(Endpoint.MARKET_TRADES_OPEN, params=params, operation="market_trades_open")
        return TradesOpen.model_validate(data or {})

    def market_prices(self) -> MarketPrices:
        """모든 페어의 최근 가격."""
        data = self.get(Endpoint.MARKET_PRICES, operation="market_prices")
        return MARKET_PRICES_ADAPTER.validate_python(data or {})

    def market_ticker(self, pair: str) -> MarketTicker:
        params = {ParamName.PAIR: normalize_pair_name(pair)}
        data = self.get(Endpoint.MARKET_TICKER, params=params, operation="market_ticker")
        return MarketTicker.model_validate(data or {})

    def market_trades(self, pair: str, offset: int = 0, limit: int = DEFAULT_LIMIT) -> MarketTrades:
        """체결 완료된 거래 목록."""
        params = {
            ParamName.PAIR: normalize_pair_name(pair),
            ParamName.OFFSET: max(0, offset),
            ParamName.LIMIT: limit,
        }
        data = self.get(Endpoint.MARKET_TRADES, params=params, operation="market_trades")
        return MarketTrades.model_validate(data or {})

    def market_summaries(self) -> MarketSummaries:
        data = self.get(Endpoint.MARKET_SUMMARIES, operation="market_summaries")
        return MarketSummaries.model_validate(data or {})

    # ------------------------------------------------------------------
    # 사용자 정보 (인증 필요)
    # ------------------------------------------------------------------
    def authenticate(self) -> User:
        """토큰과 시크릿이 유효한지 사용자 정보를 요청해 확인한다."""
        self.user = self.user_info()
        return self.user

    def user_info(self) -> User:
        """사용자 정보와 잔고."""
        data = self.get(Endpoint.USER_INFO, private=True, operation="user_info")
        return User.model_validate(data or {})

    def user_trades(self, params: ListTradeParams) -> List[Trade]:
        """사용자 체결 내역을 최신순(기본)으로 조회한다."""
        data = self.get(Endpoint.USER_TRADES, params=params.pack(), private=True, operation="user_trades")
        return TRADE_LIST_ADAPTER.validate_python(data or [])

    def user_orders_closed(self, pair: str, time_after: int = 0, time_before: int = 0) -> List[Trade]:
        """종료된 주문 목록.

        ``time_after`` 가 0 이면 서버가 현재 시각을, ``time_before`` 가 0 이면
        ``time_after`` 의 1시간 전을 사용한다.
        """
        params = {
            ParamName.PAIR: normalize_pair_name(pair),
            ParamName.TIME_AFTER: time_after,
            ParamName.TIME_BEFORE: time_before,
        }
        data = self.get(Endpoint.USER_ORDERS_CLOSED, params=params, private=True, operation="user_orders_closed")
        return TRADE_LIST_ADAPTER.validate_python(data or [])

    def user_orders_open(self, pair: str) -> PairTradesOpen:
        params = {ParamName.PAIR: normalize_pair_name(pair)}
        data = self.get(Endpoint.USER_ORDERS_OPEN, params=params, private=True, operation="user_orders_open")
        return PAIR_TRADES_OPEN_ADAPTER.validate_python(data or {})

    def user_order_info(self, pair: str, trade_id: int) -> Trade:
        """주문 한 건을 페어와 ID 로 조회한다."""
        if trade_id <= 0:
            raise request_error("ERR_INVALID_TRADE_ID")
        params = {
            ParamName.PAIR: normalize_pair_name(pair),
            ParamName.TRADE_ID: trade_id,
        }
        data = self.get(Endpoint.USER_ORDER_INFO, params=params, private=True, operation="user_order_info")
        return Trade.model_validate(data or {})

    def user_transactions(self, asset: str = "", limit: int = 0) -> AssetTransactions:
        """입출금 내역. ``asset`` 이 비어 있으면 모든 자산을 조회한다."""
        params: Dict[str, Any] = {}
        if asset:
            params[ParamName.ASSET] = asset.lower()
        if 0 < limit <= DEFAULT_LIMIT:
            params[ParamName.LIMIT] = limit
        data = self.get(Endpoint.USER_TRANSACTIONS, params=params, private=True, operation="user_transactions")
        return AssetTransactions.model_validate(data or {})

    def user_withdraw(
        self,
        request_id: str,
        asset: str,
        network: str,
        address: str,
        memo: str,
        amount: NumberLike,
    ) -> WithdrawItem:
        """자산을 외부 주소로 출금한다.

        API 키에 출금 권한이 있어야 하며, 키에 등록한 콜백 URL 이 ``ok`` 로
        응답해야 서버가 출금을 진행한다.
        """
        if not request_id:
            raise request_error("ERR_INVALID_REQUEST_ID")
        if not asset:
            raise request_error("ERR_INVALID_ASSET")
        if not address:
            raise request_error("ERR_WALLET_ADDRESS")
        value = positive_decimal(amount)
        if value is None:
            raise request_error("ERR_INVALID_AMOUNT")

        params = {
            ParamName.REQUEST_ID: request_id,
            ParamName.ASSET: asset.lower(),
            ParamName.NETWORK: network,
            ParamName.ADDRESS: address,
            ParamName.MEMO: memo,
            ParamName.AMOUNT: format_rawfloat(value),
        }
        data = self.post(Endpoint.USER_WITHDRAW, params=params, private=True, operation="user_withdraw")
        return WithdrawItem.model_validate(data or {})

    # ------------------------------------------------------------------
    # 주문 (인증 필요)
    # ------------------------------------------------------------------
    def trade_ask(self, trade_request: TradeRequest) -> TradeResponse:
        """코인을 매도한다."""
        return self._trade(Endpoint.TRADE_ASK, trade_request, operation="trade_ask")

    def trade_bid(self, trade_request: TradeRequest) -> TradeResponse:
        """코인을 매수한다."""
        return self._trade(Endpoint.TRADE_BID, trade_request, operation="trade_bid")

    def _trade(self, endpoint: Endpoint, trade_request: TradeRequest, *, operation: str) -> TradeResponse:
        params, _ = trade_request.pack()
        data = self.post(endpoint, params=params, private=True, operation=operation)
        return TradeResponse.model_validate(data or {})

    def trade_cancel(self, trade: Trade) -> Optional[Order]:
        """``Trade`` 의 종류, 페어, ID 로 미체결 주문을 취소한다."""
        if trade.type == TradeType.ASK:
            response = self.trade_cancel_ask(trade.pair, trade.id)
        elif trade.type == TradeType.BID:
            response = self.trade_cancel_bid(trade.pair, trade.id)
        else:
            raise request_error("ERR_INVALID_TRADE_TYPE")
        return response.order

    def trade_cancel_all(self) -> List[Trade]:
        """모든 미체결 매수/매도 주문을 취소한다."""
        data = self.delete(Endpoint.TRADE_CANCEL_ALL, private=True, operation="trade_cancel_all")
        return TRADE_LIST_ADAPTER.validate_python(data or [])

    def trade_cancel_ask(self, pair: str, trade_id: int) -> TradeResponse:
        return self._cancel(Endpoint.TRADE_CANCEL_ASK, pair, trade_id, operation="trade_cancel_ask")

    def trade_cancel_bid(self, pair: str, trade_id: int) -> TradeResponse:
        return self._cancel(Endpoint.TRADE_CANCEL_BID, pair, trade_id, operation="trade_cancel_bid")

    def _cancel(self, endpoint: Endpoint, pair: str, trade_id: int, *, operation: str) -> TradeResponse:
        if trade_id <= 0:
            raise request_error("ERR_INVALID_TRADE_ID")
        params = {
            ParamName.PAIR: normalize_pair_name(pair),
            ParamName.TRADE_ID: trade_id,
        }
        data = self.delete(endpoint, params=params, private=True, operation=operation)
        return TradeResponse.model_validate(data or {})


__all__ = [
    "BaseRestClient",
    "DEFAULT_USER_AGENT",
    "TokenomyClient",
]
