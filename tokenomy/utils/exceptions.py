"""토코노미 클라이언트 공통 예외 계층."""

from __future__ import annotations

from typing import Any, Mapping, Optional


class TokenomyError(Exception):
    """라이브러리 전반에서 사용하는 기본 예외 클래스."""


class ConfigurationError(TokenomyError):
    """환경 설정이나 필수 값이 누락된 경우 발생."""


class DataValidationError(TokenomyError):
    """데이터 검증 실패를 표현."""


class ParseError(DataValidationError, ValueError):
    """숫자 문자열을 해석할 수 없을 때 발생."""

    def __init__(self, text: Any) -> None:
        super().__init__(f"숫자로 해석할 수 없는 값입니다: {text!r}")
        self.text = text


class ExchangeError(TokenomyError):
    """거래소 API 호출 중 발생한 예외."""


class Unauthenticated(ExchangeError):
    """토큰과 시크릿 없이 비공개 API를 호출한 경우."""

    def __init__(self, message: str = "unauthenticated connection") -> None:
        super().__init__(message)


class WebSocketError(ExchangeError):
    """WebSocket 통신 중 발생하는 예외."""


class APIError(ExchangeError):
    """서버가 돌려준 오류 응답.

    ``code`` 는 HTTP 상태 코드, ``name`` 은 ``ERR_INVALID_PAIR`` 처럼
    기계가 읽을 수 있는 오류 이름이다.
    """

    def __init__(self, code: int, message: str, name: str = "") -> None:
        super().__init__(f"{code} {name}: {message}" if name else f"{code}: {message}")
        self.code = code
        self.message = message
        self.name = name

    @classmethod
    def from_payload(cls, payload: Any, *, status_code: Optional[int] = None) -> "APIError":
        """서버의 JSON 오류 봉투에서 예외를 생성한다."""

        if not isinstance(payload, Mapping):
            return cls(status_code or 0, str(payload) if payload else "알 수 없는 오류가 발생했습니다.")
        code = status_code if status_code is not None else int(payload.get("code") or 0)
        message = str(payload.get("message") or "알 수 없는 오류가 발생했습니다.")
        return cls(code, message, str(payload.get("name") or ""))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, APIError):
            return NotImplemented
        return (self.code, self.message, self.name) == (other.code, other.message, other.name)

    def __hash__(self) -> int:
        return hash((self.code, self.message, self.name))


class RequestValidationError(APIError):
    """요청 파라미터가 잘못되어 전송 전에 거부된 경우."""


__all__ = [
    "APIError",
    "ConfigurationError",
    "DataValidationError",
    "ExchangeError",
    "ParseError",
    "RequestValidationError",
    "TokenomyError",
    "Unauthenticated",
    "WebSocketError",
]
