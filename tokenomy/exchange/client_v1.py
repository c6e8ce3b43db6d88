"""토코노미 REST API v1 클라이언트.

공개 API 는 ``/api/...`` 경로를, 비공개 API 는 모두 ``/tapi`` 로 폼을 POST 하며
``method`` 폼 값으로 기능을 구분한다. 비공개 요청에는 밀리초 단위 ``nonce`` 가
포함된다.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from requests import Response, Session

from ..config import AppSettings, get_settings
from ..core.rawfloat import NumberLike, format_rawfloat
from ..utils.exceptions import APIError
from ..utils.time_utils import timestamp_millis
from .auth import ClientCredentials, sign_request
from .client import DEFAULT_USER_AGENT, BaseRestClient, Timeout
from .constants import (
    HttpMethod,
    ParamName,
    SortOrder,
    TradeMethod,
    TradeType,
    V1Endpoint,
    V1Method,
    normalize_pair_name,
    request_error,
)
from .models import positive_decimal

RESPONSE_SUCCESS = 1


class TokenomyV1Client(BaseRestClient):
    """토코노미 API v1 클라이언트. 응답은 서버가 준 JSON 구조 그대로 반환한다."""

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
            address=address or tokenomy_settings.v1_address,
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
        self._clock: Callable[[], int] = timestamp_millis
        self.info: Optional[Dict[str, Any]] = None

    # ------------------------------------------------------------------
    # 내부 유틸리티
    # ------------------------------------------------------------------
    def _call_public(self, endpoint: V1Endpoint, *, operation: str, pair: Optional[str] = None) -> Any:
        path_params = {"pair": normalize_pair_name(pair)} if pair is not None else None
        url = f"{self._address}{self._resolve_endpoint_path(endpoint, path_params)}"
        response = self._send(
            HttpMethod.GET.value,
            url,
            encoded="",
            headers=self._merge_headers(None),
            timeout=None,
            operation=operation,
        )
        payload = self._decode_json(response, operation=operation)
        if response.status_code >= 400:
            raise APIError.from_payload(payload, status_code=response.status_code)
        return payload

    def _call_private(
        self,
        method: V1Method,
        params: Optional[Mapping[str, Any]] = None,
        *,
        operation: str,
    ) -> Dict[str, Any]:
        form = dict(params or {})
        form[ParamName.METHOD] = method.value
        signed = sign_request(form, self._credentials, timestamp=self._clock(), timestamp_field=ParamName.NONCE)

        headers = self._merge_headers(signed.headers)
        url = f"{self._address}{V1Endpoint.PRIVATE.value}"
        response = self._send(
            HttpMethod.POST.value,
            url,
            encoded=signed.payload,
            headers=headers,
            timeout=None,
            operation=operation,
        )
        return self._unwrap(response, operation=operation)

    def _unwrap(self, response: Response, *, operation: str) -> Dict[str, Any]:
        """``{"success": 1, "return": {...}}`` 봉투에서 ``return`` 을 꺼낸다."""
        payload = self._decode_json(response, operation=operation)
        if not isinstance(payload, Mapping):
            raise APIError(response.status_code, f"{operation}: 알 수 없는 응답 형식입니다.")
        if payload.get("success") != RESPONSE_SUCCESS:
            message = str(payload.get("error") or "알 수 없는 오류가 발생했습니다.")
            raise APIError(response.status_code, message, str(payload.get("error_code") or ""))
        result = payload.get("return")
        return dict(result) if isinstance(result, Mapping) else {}

    # ------------------------------------------------------------------
    # 시장 정보 (공개)
    # ------------------------------------------------------------------
    def market_summaries(self) -> Dict[str, Any]:
        """모든 페어의 ticker, 24시간·7일 전 가격."""
        return self._call_public(V1Endpoint.MARKET_SUMMARIES, operation="market_summaries")

    def market_ticker(self, pair: str) -> Dict[str, Any]:
        payload = self._call_public(V1Endpoint.MARKET_TICKER, pair=pair, operation="market_ticker")
        if isinstance(payload, Mapping) and "ticker" in payload:
            return dict(payload["ticker"])
        return payload

    def market_trades(self, pair: str) -> List[Dict[str, Any]]:
        """페어의 최근 체결 목록."""
        return self._call_public(V1Endpoint.MARKET_TRADES, pair=pair, operation="market_trades") or []

    def market_orders_open(self, pair: str) -> Dict[str, Any]:
        """페어의 호가창(``buy``/``sell``)."""
        return self._call_public(V1Endpoint.MARKET_DEPTH, pair=pair, operation="market_orders_open")

    def market_info(self) -> List[Dict[str, Any]]:
        return self._call_public(V1Endpoint.MARKET_INFO, operation="market_info") or []

    # ------------------------------------------------------------------
    # 사용자 정보 (인증 필요)
    # ------------------------------------------------------------------
    def user_info(self) -> Dict[str, Any]:
        """잔고와 계정 정보. 결과는 ``info`` 속성에도 보관한다."""
        self.info = self._call_private(V1Method.GET_INFO, operation="user_info")
        return self.info

    def user_order(self, pair: str, order_id: int) -> Dict[str, Any]:
        params = {
            ParamName.PAIR: normalize_pair_name(pair),
            ParamName.ORDER_ID: order_id,
        }
        result = self._call_private(V1Method.GET_ORDER, params, operation="user_order")
        order = dict(result.get("order") or {})
        order[ParamName.PAIR] = params[ParamName.PAIR]
        return order

    def user_orders_open(self, pair: str) -> Dict[str, Any]:
        """미체결 주문 목록. 결과는 주문 종류별로 묶여 있다."""
        params = {ParamName.PAIR: normalize_pair_name(pair)}
        result = self._call_private(V1Method.OPEN_ORDERS, params, operation="user_orders_open")
        return result.get("orders") or {}

    def user_orders_closed(self, pair: str, count: int = 0, from_id: int = 0) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {ParamName.PAIR: normalize_pair_name(pair)}
        if count > 0:
            params[ParamName.COUNT] = count
        if from_id > 0:
            params[ParamName.FROM] = from_id
        result = self._call_private(V1Method.ORDER_HISTORY, params, operation="user_orders_closed")
        return list(result.get("orders") or [])

    def user_trades(
        self,
        pair: str,
        *,
        count: int = 0,
        from_id: int = 0,
        end_id: int = 0,
        order: str = "",
        since: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """사용자 체결 내역. 0 이거나 비어 있는 조건은 전송하지 않는다."""
        params: Dict[str, Any] = {ParamName.PAIR: normalize_pair_name(pair)}
        if count > 0:
            params[ParamName.COUNT] = count
        if from_id > 0:
            params[ParamName.FROM_ID] = from_id
        if end_id > 0:
            params[ParamName.END_ID] = end_id
        sort = order.strip().lower()
        if sort in (SortOrder.ASCENDING, SortOrder.DESCENDING):
            params[ParamName.ORDER] = sort
        if since is not None:
            params[ParamName.SINCE] = int(since.timestamp())
        if end is not None:
            params[ParamName.END] = int(end.timestamp())
        result = self._call_private(V1Method.TRADE_HISTORY, params, operation="user_trades")
        return list(result.get("trades") or [])

    def user_transactions(self) -> Dict[str, Any]:
        """입금(``deposit``)과 출금(``withdraw``) 내역."""
        return self._call_private(V1Method.TRANS_HISTORY, operation="user_transactions")

    def user_withdraw(
        self,
        asset: str,
        address: str,
        amount: NumberLike,
        request_id: str,
        memo: str = "",
    ) -> Dict[str, Any]:
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
            ParamName.CURRENCY: asset.lower(),
            ParamName.WITHDRAW_ADDRESS: address,
            ParamName.WITHDRAW_AMOUNT: format_rawfloat(value),
            ParamName.WITHDRAW_MEMO: memo,
            ParamName.REQUEST_ID: request_id,
        }
        return self._call_private(V1Method.WITHDRAW_COIN, params, operation="user_withdraw")

    # ------------------------------------------------------------------
    # 주문 (인증 필요)
    # ------------------------------------------------------------------
    def trade_bid(
        self,
        pair: str,
        amount: NumberLike,
        price: Optional[NumberLike] = None,
        *,
        method: str = TradeMethod.LIMIT,
    ) -> Dict[str, Any]:
        """매수 주문. ``market`` 주문은 가격 없이 코인 수량만 보낸다."""
        return self._trade(TradeType.BID, method, pair, amount, price, operation="trade_bid")

    def trade_ask(
        self,
        pair: str,
        amount: NumberLike,
        price: Optional[NumberLike] = None,
        *,
        method: str = TradeMethod.LIMIT,
    ) -> Dict[str, Any]:
        """매도 주문."""
        return self._trade(TradeType.ASK, method, pair, amount, price, operation="trade_ask")

    def _trade(
        self,
        trade_type: str,
        method: str,
        pair: str,
        amount: NumberLike,
        price: Optional[NumberLike],
        *,
        operation: str,
    ) -> Dict[str, Any]:
        method = (method or TradeMethod.LIMIT).strip().lower()
        if method not in (TradeMethod.LIMIT, TradeMethod.MARKET):
            raise request_error("ERR_INVALID_TRADE_METHOD")
        pair_name = normalize_pair_name(pair)
        coin = pair_name.split("_")[0]

        amount_value = positive_decimal(amount)
        if amount_value is None:
            raise request_error("ERR_INVALID_AMOUNT")

        params: Dict[str, Any] = {
            ParamName.ORDER_METHOD: method,
            ParamName.PAIR: pair_name,
            ParamName.TYPE: trade_type,
            coin: format_rawfloat(amount_value),
        }
        if method == TradeMethod.LIMIT:
            price_value = positive_decimal(price)
            if price_value is None:
                raise request_error("ERR_INVALID_PRICE")
            params[ParamName.PRICE] = format_rawfloat(price_value)

        result = self._call_private(V1Method.TRADE, params, operation=operation)
        result[ParamName.PAIR] = pair_name
        return result

    def trade_cancel_bid(self, pair: str, order_id: int) -> Dict[str, Any]:
        return self._cancel_order(TradeType.BID, pair, order_id, operation="trade_cancel_bid")

    def trade_cancel_ask(self, pair: str, order_id: int) -> Dict[str, Any]:
        return self._cancel_order(TradeType.ASK, pair, order_id, operation="trade_cancel_ask")

    def _cancel_order(self, trade_type: str, pair: str, order_id: int, *, operation: str) -> Dict[str, Any]:
        if order_id <= 0:
            raise request_error("ERR_INVALID_TRADE_ID")
        params = {
            ParamName.TYPE: trade_type,
            ParamName.PAIR: normalize_pair_name(pair),
            ParamName.ORDER_ID: order_id,
        }
        return self._call_private(V1Method.CANCEL_ORDER, params, operation=operation)


__all__ = ["TokenomyV1Client"]
