"""토코노미 API v2 WebSocket 클라이언트.

요청 프레임은 ``{"id", "method", "target", "body"}`` 이며 ``body`` 는 JSON
파라미터를 base64 로 인코딩한 문자열이다. 응답 프레임 ``{"id", "code",
"message", "body"}`` 는 ``id`` 로 요청과 짝지어지고, ``id`` 가 0 인 프레임은
서버가 보내는 브로드캐스트다.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import inspect
import itertools
import json
import logging
import ssl
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

import websockets
from pydantic import ValidationError
from websockets.protocol import State

from ..config import AppSettings, get_settings
from ..utils.exceptions import APIError, WebSocketError
from ..utils.time_utils import timestamp_seconds
from .auth import ClientCredentials, sign_request
from .constants import (
    WS_MESSAGE_USER_ORDERS_CLOSED,
    Endpoint,
    HttpMethod,
    ParamName,
    TradeType,
    normalize_pair_name,
    request_error,
)
from .models import (
    MARKET_PRICES_ADAPTER,
    PAIR_TRADES_OPEN_ADAPTER,
    TRADE_LIST_ADAPTER,
    MarketDepths,
    MarketPrices,
    MarketTicker,
    MarketTrades,
    Order,
    PairTradesOpen,
    PublicSubscription,
    Trade,
    TradeRequest,
    TradeResponse,
    User,
)

DEFAULT_MAX_RETRIES = 5
DEFAULT_BACKOFF_FACTOR = 0.5
WS_DEFAULT_REQUEST_TIMEOUT = 30.0
MAX_QUEUE = 256
STATUS_OK = 200

OrdersClosedHandler = Callable[[Trade], Union[None, Awaitable[None]]]


def to_websocket_url(address: str) -> str:
    """``https://`` 주소를 ``wss://`` 로, ``http://`` 주소를 ``ws://`` 로 바꾼다."""
    address = address.rstrip("/")
    if address.startswith("https://"):
        return "wss://" + address[len("https://"):]
    if address.startswith("http://"):
        return "ws://" + address[len("http://"):]
    return address


def _decode_body(body: Optional[str]) -> Any:
    if not body:
        return None
    try:
        raw = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise WebSocketError(f"응답 본문을 base64 로 해석할 수 없습니다: {exc}") from exc
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise WebSocketError(f"응답 본문 JSON 디코딩 실패: {exc}") from exc


def _encode_body(params: Optional[Mapping[str, Any]]) -> str:
    if params is None:
        return ""
    return base64.b64encode(json.dumps(params).encode("utf-8")).decode("ascii")


class BaseWebSocket:
    """요청/응답 짝짓기와 재연결을 담당하는 비동기 WebSocket 클라이언트."""

    def __init__(
        self,
        *,
        address: Optional[str] = None,
        reconnect: bool = True,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        request_timeout: float = WS_DEFAULT_REQUEST_TIMEOUT,
        insecure: Optional[bool] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        tokenomy_settings = (settings or get_settings()).tokenomy
        self._settings = tokenomy_settings
        self._address = to_websocket_url(address or tokenomy_settings.address)
        self._reconnect = reconnect
        self._max_retries = max(0, max_retries)
        self._backoff_factor = max(0.0, backoff_factor)
        self._request_timeout = request_timeout
        self._insecure = tokenomy_settings.insecure if insecure is None else insecure
        self._ws: Optional[websockets.ClientConnection] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._pending: Dict[int, asyncio.Future] = {}
        self._ids = itertools.count(1)
        self._closing = False
        self._lock = asyncio.Lock()
        self._logger = logging.getLogger(__name__)
        self._sleep = asyncio.sleep

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - 컨텍스트 관리자 편의 기능
        await self.close()

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and self._ws.state is State.OPEN

    @property
    def pending_requests(self) -> int:
        """응답을 기다리는 요청 수."""
        return len(self._pending)

    # ------------------------------------------------------------------
    # 연결 관리
    # ------------------------------------------------------------------
    def _build_url(self) -> str:
        raise NotImplementedError

    def _build_headers(self) -> Dict[str, str]:
        return {}

    def _ssl_context(self, url: str) -> Optional[ssl.SSLContext]:
        if not url.startswith("wss://") or not self._insecure:
            return None
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context

    async def connect(self) -> None:
        """서버에 연결하고 수신 태스크를 시작한다."""
        if self.is_connected:
            return
        url = self._build_url()
        headers = self._build_headers()
        self._ws = await websockets.connect(
            url,
            additional_headers=headers or None,
            ssl=self._ssl_context(url),
        )
        self._closing = False
        self._reader_task = asyncio.create_task(self._read_loop(self._ws))

    async def close(self) -> None:
        """연결을 닫고 응답을 기다리던 요청을 모두 실패시킨다."""
        self._closing = True
        await self._fail_pending(WebSocketError("WebSocket 연결이 종료되었습니다."))
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()
        task, self._reader_task = self._reader_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                self._logger.exception("수신 태스크가 예외로 종료되었습니다.")

    async def _fail_pending(self, error: Exception) -> None:
        async with self._lock:
            pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(error)

    async def _handle_reconnect(self, attempt: int) -> None:
        delay = self._backoff_factor * (2 ** attempt) if self._backoff_factor > 0 else 0
        if delay:
            await self._sleep(delay)

    async def _handle_unexpected_close(self) -> None:
        self._logger.warning("WebSocket 연결이 끊어졌습니다: %s", self._address)
        await self._fail_pending(WebSocketError("응답을 받기 전에 연결이 끊어졌습니다."))
        self._ws = None
        if not self._reconnect:
            return

        for attempt in range(self._max_retries):
            await self._handle_reconnect(attempt)
            if self._closing:
                return
            try:
                await self.connect()
            except (OSError, asyncio.TimeoutError, websockets.WebSocketException) as exc:
                self._logger.warning("재연결 실패 (%d/%d): %s", attempt + 1, self._max_retries, exc)
                continue
            self._logger.info("WebSocket 재연결 완료: %s", self._address)
            await self._on_reconnected()
            return
        self._logger.error("재연결 한도(%d회)를 초과했습니다.", self._max_retries)

    async def _on_reconnected(self) -> None:
        """재연결 직후 호출된다."""

    # ------------------------------------------------------------------
    # 송수신
    # ------------------------------------------------------------------
    async def _read_loop(self, ws: websockets.ClientConnection) -> None:
        try:
            async for message in ws:
                await self._dispatch(message)
        except websockets.ConnectionClosed:
            pass
        if self._closing or ws is not self._ws:
            return
        await self._handle_unexpected_close()

    async def _dispatch(self, message: Union[str, bytes]) -> None:
        text = message.decode("utf-8", errors="replace") if isinstance(message, bytes) else message
        try:
            frame = json.loads(text)
        except json.JSONDecodeError as exc:
            self._logger.warning("디코딩할 수 없는 메시지를 무시합니다: %r: %s", text, exc)
            return
        if not isinstance(frame, Mapping):
            self._logger.warning("알 수 없는 형식의 메시지를 무시합니다: %r", text)
            return

        try:
            request_id = int(frame.get("id") or 0)
        except (TypeError, ValueError):
            self._logger.warning("id 가 숫자가 아닌 메시지를 무시합니다: %r", text)
            return
        if request_id:
            async with self._lock:
                future = self._pending.pop(request_id, None)
            if future is not None and not future.done():
                future.set_result(frame)
            return

        try:
            await self._handle_broadcast(frame)
        except (WebSocketError, ValidationError) as exc:
            self._logger.warning("브로드캐스트 %s 처리 실패: %s", frame.get("message"), exc)
        except Exception:
            # 사용자 콜백 오류로 수신 태스크가 끝나지 않도록 기록만 한다.
            self._logger.exception("브로드캐스트 %s 처리 중 예외가 발생했습니다.", frame.get("message"))

    async def _handle_broadcast(self, frame: Mapping[str, Any]) -> None:
        self._logger.debug("처리하지 않는 브로드캐스트: %s", frame.get("message"))

    async def _send(
        self,
        method: HttpMethod,
        target: Endpoint,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """요청을 보내고 응답 본문을 JSON 으로 해석해 반환한다.

        응답 코드가 200 이 아니면 ``APIError`` 를 발생시킨다.
        """
        ws = self._ws
        if ws is None or ws.state is not State.OPEN:
            raise WebSocketError("WebSocket 이 연결되어 있지 않습니다.")

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        async with self._lock:
            request_id = next(self._ids)
            self._pending[request_id] = future

        frame = {
            "id": request_id,
            "method": method.value,
            "target": target.value,
            "body": _encode_body(params),
        }
        try:
            await ws.send(json.dumps(frame))
        except websockets.ConnectionClosed as exc:
            await self._discard(request_id)
            raise WebSocketError(f"{target.value}: 요청 전송 실패: {exc}") from exc

        try:
            response = await asyncio.wait_for(future, timeout=self._request_timeout)
        except asyncio.TimeoutError as exc:
            await self._discard(request_id)
            raise WebSocketError(f"{target.value}: 응답 대기 시간이 초과되었습니다.") from exc

        code = int(response.get("code") or 0)
        if code != STATUS_OK:
            raise APIError(code, str(response.get("message") or ""))
        return _decode_body(response.get("body"))

    async def _discard(self, request_id: int) -> None:
        async with self._lock:
            self._pending.pop(request_id, None)


class PrivateWebSocket(BaseWebSocket):
    """인증이 필요한 v2 WebSocket 클라이언트.

    연결 URL 의 ``timestamp`` 쿼리를 서명해 ``Key``/``Sign`` 헤더로 보낸다.
    사용자의 주문이 종료되면 ``on_orders_closed`` 콜백이 호출된다.
    """

    def __init__(
        self,
        *,
        token: Optional[str] = None,
        secret: Optional[str] = None,
        on_orders_closed: Optional[OrdersClosedHandler] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._credentials = ClientCredentials(
            token or self._settings.token_value,
            secret or self._settings.secret_value,
        )
        self.on_orders_closed = on_orders_closed
        self._clock: Callable[[], int] = timestamp_seconds
        self._handshake_headers: Dict[str, str] = {}

    def _build_url(self) -> str:
        signed = sign_request(None, self._credentials, timestamp=self._clock())
        self._handshake_headers = signed.headers
        return f"{self._address}{Endpoint.WS_PRIVATE.value}?{signed.payload}"

    def _build_headers(self) -> Dict[str, str]:
        return dict(self._handshake_headers)

    async def _handle_broadcast(self, frame: Mapping[str, Any]) -> None:
        if frame.get("message") != WS_MESSAGE_USER_ORDERS_CLOSED:
            await super()._handle_broadcast(frame)
            return
        if self.on_orders_closed is None:
            return
        trade = Trade.model_validate(_decode_body(frame.get("body")) or {})
        result = self.on_orders_closed(trade)
        if inspect.isawaitable(result):
            await result

    async def trade_ask(self, trade_request: TradeRequest) -> TradeResponse:
        _, ws_params = trade_request.pack()
        data = await self._send(HttpMethod.POST, Endpoint.TRADE_ASK, ws_params)
        return TradeResponse.model_validate(data or {})

    async def trade_bid(self, trade_request: TradeRequest) -> TradeResponse:
        _, ws_params = trade_request.pack()
        data = await self._send(HttpMethod.POST, Endpoint.TRADE_BID, ws_params)
        return TradeResponse.model_validate(data or {})

    async def trade_cancel(self, trade: Trade) -> Optional[Order]:
        """``Trade`` 의 종류, 페어, ID 로 미체결 주문을 취소한다."""
        if trade.id <= 0:
            raise request_error("ERR_INVALID_TRADE_ID")
        if not trade.pair:
            raise request_error("ERR_INVALID_PAIR")
        if trade.type == TradeType.ASK:
            response = await self.trade_cancel_ask(trade.pair, trade.id)
        elif trade.type == TradeType.BID:
            response = await self.trade_cancel_bid(trade.pair, trade.id)
        else:
            raise request_error("ERR_INVALID_TRADE_TYPE")
        return response.order

    async def trade_cancel_all(self) -> List[Trade]:
        data = await self._send(HttpMethod.DELETE, Endpoint.TRADE_CANCEL_ALL)
        return TRADE_LIST_ADAPTER.validate_python(data or [])

    async def trade_cancel_ask(self, pair: str, trade_id: int) -> TradeResponse:
        return await self._cancel(Endpoint.TRADE_CANCEL_ASK, pair, trade_id)

    async def trade_cancel_bid(self, pair: str, trade_id: int) -> TradeResponse:
        return await self._cancel(Endpoint.TRADE_CANCEL_BID, pair, trade_id)

    async def _cancel(self, target: Endpoint, pair: str, trade_id: int) -> TradeResponse:
        if trade_id <= 0:
            raise request_error("ERR_INVALID_TRADE_ID")
        params = {ParamName.PAIR: normalize_pair_name(pair), ParamName.TRADE_ID: trade_id}
        data = await self._send(HttpMethod.DELETE, target, params)
        return TradeResponse.model_validate(data or {})

    async def user_info(self) -> User:
        data = await self._send(HttpMethod.GET, Endpoint.USER_INFO)
        return User.model_validate(data or {})

    async def user_order_info(self, pair: str, trade_id: int) -> Trade:
        params = {ParamName.PAIR: normalize_pair_name(pair), ParamName.TRADE_ID: trade_id}
        data = await self._send(HttpMethod.GET, Endpoint.USER_ORDER_INFO, params)
        return Trade.model_validate(data or {})

    async def user_orders_open(self, pair: str) -> PairTradesOpen:
        params = {ParamName.PAIR: normalize_pair_name(pair)}
        data = await self._send(HttpMethod.GET, Endpoint.USER_ORDERS_OPEN, params)
        return PAIR_TRADES_OPEN_ADAPTER.validate_python(data or {})


class PublicWebSocket(BaseWebSocket):
    """공개 v2 WebSocket 클라이언트.

    구독한 페어의 체결과 호가 브로드캐스트는 ``trades``/``depths`` 큐로
    전달된다. 큐가 가득 차면 가장 오래된 항목을 버린다.
    """

    def __init__(self, *, max_queue: int = MAX_QUEUE, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.trades: asyncio.Queue[Trade] = asyncio.Queue(maxsize=max_queue)
        self.depths: asyncio.Queue[MarketDepths] = asyncio.Queue(maxsize=max_queue)
        self._subscription = PublicSubscription()

    @property
    def current_subscription(self) -> PublicSubscription:
        return self._subscription

    def _build_url(self) -> str:
        return f"{self._address}{Endpoint.WS_PUBLIC.value}"

    async def _handle_broadcast(self, frame: Mapping[str, Any]) -> None:
        message = frame.get("message")
        if message in (Endpoint.MARKET_TRADES.value, Endpoint.MARKET_TRADES_OPEN.value):
            trade = Trade.model_validate(_decode_body(frame.get("body")) or {})
            self._push(self.trades, trade, message)
        elif message == Endpoint.MARKET_DEPTHS.value:
            depths = MarketDepths.model_validate(_decode_body(frame.get("body")) or {})
            self._push(self.depths, depths, message)
        else:
            await super()._handle_broadcast(frame)

    def _push(self, queue: asyncio.Queue, item: Any, topic: str) -> None:
        if queue.full():
            queue.get_nowait()
            self._logger.warning("%s 큐가 가득 차 가장 오래된 항목을 버립니다.", topic)
        queue.put_nowait(item)

    async def _on_reconnected(self) -> None:
        # 구독은 연결 단위이므로 새 연결에 다시 등록한다.
        subscription = self._subscription
        try:
            if subscription.depths:
                await self._update_subscription(HttpMethod.POST, {"depths": list(subscription.depths)})
            if subscription.trades:
                await self._update_subscription(HttpMethod.POST, {"trades": list(subscription.trades)})
        except (APIError, WebSocketError) as exc:
            self._logger.warning("재연결 후 구독 복원 실패: %s", exc)

    async def market_depths(self, pair: str) -> MarketDepths:
        params = {ParamName.PAIR: normalize_pair_name(pair)}
        data = await self._send(HttpMethod.GET, Endpoint.MARKET_DEPTHS, params)
        return MarketDepths.model_validate(data or {})

    async def market_prices(self) -> MarketPrices:
        data = await self._send(HttpMethod.GET, Endpoint.MARKET_PRICES)
        return MARKET_PRICES_ADAPTER.validate_python(data or {})

    async def market_ticker(self, pair: str) -> MarketTicker:
        params = {ParamName.PAIR: normalize_pair_name(pair)}
        data = await self._send(HttpMethod.GET, Endpoint.MARKET_TICKER, params)
        return MarketTicker.model_validate(data or {})

    async def market_trades(self, pair: str, offset: int = 0, limit: int = 0) -> MarketTrades:
        params: Dict[str, Any] = {ParamName.PAIR: normalize_pair_name(pair)}
        if offset > 0:
            params[ParamName.OFFSET] = offset
        if limit > 0:
            params[ParamName.LIMIT] = limit
        data = await self._send(HttpMethod.GET, Endpoint.MARKET_TRADES, params)
        return MarketTrades.model_validate(data or {})

    async def subscription(self) -> PublicSubscription:
        """서버에 등록된 현재 구독 목록을 조회한다."""
        data = await self._send(HttpMethod.GET, Endpoint.WS_PUBLIC_SUBSCRIPTION)
        self._subscription = PublicSubscription.model_validate(data or {})
        return self._subscription

    async def subscribe_depths(self, pairs: Iterable[str]) -> PublicSubscription:
        names = [normalize_pair_name(pair) for pair in pairs]
        if not names:
            return self._subscription
        return await self._update_subscription(HttpMethod.POST, {"depths": names})

    async def subscribe_trades(self, pairs: Iterable[str]) -> PublicSubscription:
        names = [normalize_pair_name(pair) for pair in pairs]
        if not names:
            return self._subscription
        return await self._update_subscription(HttpMethod.POST, {"trades": names})

    async def unsubscribe_depths(self, pairs: Iterable[str] = ()) -> PublicSubscription:
        """호가 구독을 해지한다. 페어를 지정하지 않으면 모두 해지한다."""
        names = [normalize_pair_name(pair) for pair in pairs] or list(self._subscription.depths)
        return await self._update_subscription(HttpMethod.DELETE, {"depths": names})

    async def unsubscribe_trades(self, pairs: Iterable[str] = ()) -> PublicSubscription:
        """체결 구독을 해지한다. 페어를 지정하지 않으면 모두 해지한다."""
        names = [normalize_pair_name(pair) for pair in pairs] or list(self._subscription.trades)
        return await self._update_subscription(HttpMethod.DELETE, {"trades": names})

    async def _update_subscription(self, method: HttpMethod, params: Mapping[str, Any]) -> PublicSubscription:
        data = await self._send(method, Endpoint.WS_PUBLIC_SUBSCRIPTION, params)
        self._subscription = PublicSubscription.model_validate(data or {})
        return self._subscription


__all__ = [
    "BaseWebSocket",
    "DEFAULT_BACKOFF_FACTOR",
    "DEFAULT_MAX_RETRIES",
    "MAX_QUEUE",
    "OrdersClosedHandler",
    "PrivateWebSocket",
    "PublicWebSocket",
    "WS_DEFAULT_REQUEST_TIMEOUT",
    "to_websocket_url",
]
