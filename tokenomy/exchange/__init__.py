"""토코노미 API v1/v2 연동 클라이언트 패키지."""

from .auth import ClientCredentials, SignedRequest, canonicalize_params, sign, sign_request
from .client import DEFAULT_USER_AGENT, TokenomyClient
from .client_v1 import TokenomyV1Client
from .constants import Endpoint, HttpMethod, V1Endpoint, V1Method, normalize_pair_name
from .models import (
    AssetTransactions,
    ListTradeParams,
    MarketDepth,
    MarketDepths,
    MarketInfo,
    MarketSummaries,
    MarketTicker,
    MarketTrades,
    Order,
    PublicSubscription,
    Tick,
    Trade,
    TradePrice,
    TradeRequest,
    TradeResponse,
    TradesOpen,
    User,
    UserAssets,
    WithdrawItem,
)
from .websocket import PrivateWebSocket, PublicWebSocket

__all__ = [
    "AssetTransactions",
    "ClientCredentials",
    "DEFAULT_USER_AGENT",
    "Endpoint",
    "HttpMethod",
    "ListTradeParams",
    "MarketDepth",
    "MarketDepths",
    "MarketInfo",
    "MarketSummaries",
    "MarketTicker",
    "MarketTrades",
    "Order",
    "PrivateWebSocket",
    "PublicSubscription",
    "PublicWebSocket",
    "SignedRequest",
    "Tick",
    "TokenomyClient",
    "TokenomyV1Client",
    "Trade",
    "TradePrice",
    "TradeRequest",
    "TradeResponse",
    "TradesOpen",
    "User",
    "UserAssets",
    "V1Endpoint",
    "V1Method",
    "WithdrawItem",
    "canonicalize_params",
    "normalize_pair_name",
    "sign",
    "sign_request",
]
