"""토코노미 API 경로, 파라미터 이름, 오류 정의 등 상수 테이블."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple

from ..utils.exceptions import RequestValidationError

DEFAULT_LIMIT = 100


class HttpMethod(str, Enum):
    """지원하는 HTTP 메서드."""

    GET = "GET"
    POST = "POST"
    DELETE = "DELETE"


class Endpoint(str, Enum):
    """REST API v2 및 WebSocket 엔드포인트."""

    MARKET_DEPTHS = "/v2/market/depths"
    MARKET_INFO = "/v2/market/info"
    MARKET_TRADES_OPEN = "/v2/market/trades/open"
    MARKET_PRICES = "/v2/market/prices"
    MARKET_TICKER = "/v2/market/ticker"
    MARKET_TRADES = "/v2/market/trades"
    MARKET_SUMMARIES = "/v2/market/summaries"

    USER_INFO = "/v2/user/info"
    USER_TRADES = "/v2/user/trades"
    USER_ORDERS_CLOSED = "/v2/user/orders/closed"
    USER_ORDERS_OPEN = "/v2/user/orders/open"
    USER_ORDER_INFO = "/v2/user/order"
    USER_TRANSACTIONS = "/v2/user/transactions"
    USER_WITHDRAW = "/v2/user/withdraw"

    TRADE_ASK = "/v2/trade/ask"
    TRADE_BID = "/v2/trade/bid"
    TRADE_CANCEL_ALL = "/v2/trade/cancel/all"
    TRADE_CANCEL_ASK = "/v2/trade/cancel/ask"
    TRADE_CANCEL_BID = "/v2/trade/cancel/bid"

    WS_PRIVATE = "/v2/user/ws"
    WS_PUBLIC = "/v2/ws"
    WS_PUBLIC_SUBSCRIPTION = "/v2/ws/subscription"


class V1Endpoint(str, Enum):
    """REST API v1 공개 엔드포인트와 비공개 경로."""

    MARKET_SUMMARIES = "/api/summaries"
    MARKET_TICKER = "/api/{pair}/ticker"
    MARKET_TRADES = "/api/{pair}/trades"
    MARKET_DEPTH = "/api/{pair}/depth"
    MARKET_INFO = "/api/market_info"
    PRIVATE = "/tapi"


class V1Method(str, Enum):
    """API v1 ``/tapi`` 의 ``method`` 폼 값."""

    TRADE = "trade"
    CANCEL_ORDER = "cancelOrder"
    GET_INFO = "getInfo"
    GET_ORDER = "getOrder"
    OPEN_ORDERS = "openOrders"
    ORDER_HISTORY = "orderHistory"
    TRADE_HISTORY = "tradeHistory"
    TRANS_HISTORY = "transHistory"
    WITHDRAW_COIN = "withdrawCoin"


class HeaderName:
    KEY = "Key"
    SIGN = "Sign"


class ParamName:
    """요청 파라미터 이름."""

    ADDRESS = "address"
    AMOUNT = "amount"
    ASSET = "asset"
    COUNT = "count"
    CURRENCY = "currency"
    END_ID = "end_id"
    FROM = "from"
    FROM_ID = "from_id"
    ID_AFTER = "id_after"
    ID_BEFORE = "id_before"
    LIMIT = "limit"
    MEMO = "memo"
    METHOD = "method"
    NETWORK = "network"
    NONCE = "nonce"
    OFFSET = "offset"
    ORDER = "order"
    ORDER_ID = "order_id"
    ORDER_METHOD = "order_method"
    PAIR = "pair"
    POST_ONLY = "post_only"
    PRICE = "price"
    REQUEST_ID = "request_id"
    SINCE = "since"
    END = "end"
    SORT = "sort"
    TIME_AFTER = "time_after"
    TIME_BEFORE = "time_before"
    TIME_IN_FORCE = "time_in_force"
    TIMESTAMP = "timestamp"
    TRADE_ID = "trade_id"
    TRADE_METHOD = "trade_method"
    TYPE = "type"
    WITHDRAW_ADDRESS = "withdraw_address"
    WITHDRAW_AMOUNT = "withdraw_amount"
    WITHDRAW_MEMO = "withdraw_memo"


class TradeType:
    ASK = "sell"
    BID = "buy"


class TradeMethod:
    LIMIT = "limit"
    MARKET = "market"


class TradeStatus:
    CANCELLED = "cancelled"
    FILLED = "filled"


class SortOrder:
    ASCENDING = "asc"
    DESCENDING = "desc"


TIME_IN_FORCE_FOK = "FOK"

# 서버가 사용자에게 보내는 WebSocket 브로드캐스트 메시지.
WS_MESSAGE_USER_ORDERS_CLOSED = Endpoint.USER_ORDERS_CLOSED.value
WS_MESSAGE_USER_ORDERS_TAKEN = "/v2/user/orders/taken"

ASSET_NAMES: Tuple[str, ...] = (
    "ada",
    "avax",
    "bal",
    "bch",
    "bnb",
    "btc",
    "comp",
    "dai",
    "dot",
    "eos",
    "etc",
    "eth",
    "idk",
    "link",
    "ltc",
    "sol",
    "ten",
    "usdc",
    "usdt",
    "vex",
    "xlm",
    "xtz",
)

# 목록은 드물게 갱신되므로 상장 폐지된 페어가 있거나 신규 페어가 빠져 있을 수 있다.
KNOWN_PAIRS: frozenset[str] = frozenset(
    {
        "bch_btc",
        "eos_btc",
        "eth_btc",
        "ltc_btc",
        "dot_btc",
        "sol_btc",
        "xlm_btc",
        "ten_btc",
        "usdc_btc",
        "vex_btc",
        "btc_idk",
        "ada_idk",
        "link_idk",
        "comp_idk",
        "dai_idk",
        "eth_idk",
        "dot_idk",
        "sol_idk",
        "usdt_idk",
        "xtz_idk",
        "ten_idk",
        "ada_usdt",
        "btc_usdt",
        "eth_usdt",
        "idk_usdt",
        "dot_usdt",
        "sol_usdt",
        "ten_usdt",
        "xtz_usdt",
    }
)

ERROR_DEFINITIONS: Mapping[str, Tuple[int, str]] = MappingProxyType(
    {
        "ERR_INVALID_AMOUNT": (400, "invalid or empty amount parameter"),
        "ERR_INVALID_ASSET": (400, "invalid or empty asset parameter"),
        "ERR_INVALID_PAIR": (400, "invalid or empty pair parameter"),
        "ERR_INVALID_PRICE": (400, "invalid or empty price parameter"),
        "ERR_INVALID_REQUEST_ID": (400, "invalid or empty request ID"),
        "ERR_INVALID_SORT_BY": (400, 'invalid sort-by parameter, its either "asc" or "desc"'),
        "ERR_INVALID_TRADE_ID": (400, "invalid trade ID"),
        "ERR_INVALID_TRADE_METHOD": (400, 'invalid or empty trade method, its either "limit" or "market"'),
        "ERR_INVALID_TRADE_TYPE": (400, 'invalid or empty trade type, its either "buy" or "sell"'),
        "ERR_WALLET_ADDRESS": (400, "invalid or empty wallet address"),
        "ERR_ASSET_KYC_REQUIRED": (403, "the traded asset require user account to finish KYC process"),
        "ERR_ASSET_COUNTRY_BLACKLISTED": (403, "the traded asset is not allowed in user account country"),
        "ERR_ASSET_TERMS_REQUIRED": (403, "the traded asset require user account to accept terms of sale"),
        "ERR_TRADE_FILL_OR_KILL": (422, "not enough amount in the market to process fill-or-kill order"),
    }
)


def request_error(name: str) -> RequestValidationError:
    """오류 정의 테이블에서 요청 검증 예외를 만든다."""
    code, message = ERROR_DEFINITIONS[name]
    return RequestValidationError(code, message, name)


def normalize_pair_name(pair: str) -> str:
    """``ETH-BTC``, ``ETH_BTC`` 등을 ``eth_btc`` 형식으로 정규화한다."""
    cleaned = (pair or "").strip().lower().replace("-", "_")
    assets = cleaned.split("_")
    if len(assets) != 2 or not all(assets):
        raise request_error("ERR_INVALID_PAIR")
    return cleaned


__all__ = [
    "ASSET_NAMES",
    "DEFAULT_LIMIT",
    "ERROR_DEFINITIONS",
    "Endpoint",
    "HeaderName",
    "HttpMethod",
    "KNOWN_PAIRS",
    "ParamName",
    "SortOrder",
    "TIME_IN_FORCE_FOK",
    "TradeMethod",
    "TradeStatus",
    "TradeType",
    "V1Endpoint",
    "V1Method",
    "WS_MESSAGE_USER_ORDERS_CLOSED",
    "WS_MESSAGE_USER_ORDERS_TAKEN",
    "normalize_pair_name",
    "request_error",
]
