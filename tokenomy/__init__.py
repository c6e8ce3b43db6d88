"""토코노미 거래소 REST/WebSocket API 클라이언트."""

import logging

from .core.rawfloat import Rawfloat, format_rawfloat, parse_rawfloat
from .exchange import (
    ClientCredentials,
    PrivateWebSocket,
    PublicWebSocket,
    TokenomyClient,
    TokenomyV1Client,
    canonicalize_params,
    sign,
)
from .utils.exceptions import (
    APIError,
    ExchangeError,
    ParseError,
    RequestValidationError,
    TokenomyError,
    Unauthenticated,
    WebSocketError,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "APIError",
    "ClientCredentials",
    "ExchangeError",
    "ParseError",
    "PrivateWebSocket",
    "PublicWebSocket",
    "Rawfloat",
    "RequestValidationError",
    "TokenomyClient",
    "TokenomyError",
    "TokenomyV1Client",
    "Unauthenticated",
    "WebSocketError",
    "canonicalize_params",
    "format_rawfloat",
    "parse_rawfloat",
    "sign",
]
