"""비공개 API 요청 서명."""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from ..core.rawfloat import format_rawfloat
from ..utils.exceptions import Unauthenticated
from .constants import HeaderName, ParamName


@dataclass(frozen=True)
class ClientCredentials:
    """API 인증 정보를 담는 데이터 구조.

    ``api_key`` 는 ``Key`` 헤더로 보내는 토큰, ``api_secret`` 은 서명 키다.
    """

    api_key: Optional[str]
    api_secret: Optional[str]

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key) and bool(self.api_secret)

    def __repr__(self) -> str:
        return f"ClientCredentials(api_key={self.api_key!r}, api_secret={'***' if self.api_secret else None})"


@dataclass(frozen=True)
class SignedRequest:
    """서명이 끝난 요청 파라미터와 인증 헤더."""

    payload: str
    params: dict[str, str]
    headers: dict[str, str] = field(default_factory=dict)


def _param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Decimal, float)):
        return format_rawfloat(value)
    return str(value)


def normalize_params(params: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """파라미터 값을 문자열로 바꾸고 ``None`` 값은 제외한다."""
    if not params:
        return {}
    return {str(key): _param_value(value) for key, value in params.items() if value is not None}


def canonicalize_params(params: Optional[Mapping[str, Any]]) -> str:
    """파라미터를 키 사전순으로 정렬한 form-urlencoded 문자열로 만든다.

    같은 파라미터 집합은 삽입 순서와 관계없이 항상 같은 문자열이 된다.
    """
    return urlencode(sorted(normalize_params(params).items()))


def sign(payload: str, secret: str) -> str:
    """HMAC-SHA512 로 payload 를 서명하고 소문자 16진수 문자열을 반환한다."""
    return hmac.new(
        secret.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha512,
    ).hexdigest()


def sign_request(
    params: Optional[Mapping[str, Any]],
    credentials: ClientCredentials,
    *,
    timestamp: int,
    timestamp_field: str = ParamName.TIMESTAMP,
) -> SignedRequest:
    """타임스탬프를 추가하고 서명한 요청을 만든다.

    토큰이나 시크릿이 없으면 서명 전에 ``Unauthenticated`` 를 발생시킨다.
    """
    if not credentials.is_complete:
        raise Unauthenticated()

    signed_params = normalize_params(params)
    signed_params[timestamp_field] = str(timestamp)
    payload = canonicalize_params(signed_params)

    assert credentials.api_key is not None and credentials.api_secret is not None
    headers = {
        HeaderName.KEY: credentials.api_key,
        HeaderName.SIGN: sign(payload, credentials.api_secret),
    }
    return SignedRequest(payload=payload, params=signed_params, headers=headers)


__all__ = [
    "ClientCredentials",
    "SignedRequest",
    "canonicalize_params",
    "normalize_params",
    "sign",
    "sign_request",
]
