from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
from pydantic import SecretStr

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from tokenomy.config import AppSettings, LoggingSettings, TokenomySettings  # noqa: E402

TEST_TOKEN = "tok3n"
TEST_SECRET = "secr3t"


@dataclass
class DummyResponse:
    status_code: int = 200
    json_payload: Any = None
    raw_text: Optional[str] = None
    json_raises: bool = False

    @property
    def text(self) -> str:
        if self.raw_text is not None:
            return self.raw_text
        return json.dumps(self.json_payload)

    def json(self) -> Any:
        if self.json_raises:
            raise ValueError("invalid json")
        return self.json_payload


@dataclass
class DummySession:
    responses: List[Any]
    calls: List[Dict[str, Any]] = field(default_factory=list)

    def request(
        self,
        method: str,
        url: str,
        params: Optional[str] = None,
        data: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Any = None,
        verify: bool = True,
    ) -> DummyResponse:
        if not self.responses:
            raise AssertionError("예상치 못한 추가 호출이 발생했습니다.")
        self.calls.append(
            {
                "method": method,
                "url": url,
                "params": params,
                "data": data,
                "headers": headers or {},
                "timeout": timeout,
                "verify": verify,
            }
        )
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:  # pragma: no cover - 외부 세션에서는 호출되지 않음
        pass


def _to_response(item: Any) -> Any:
    if isinstance(item, (DummyResponse, Exception)):
        return item
    if isinstance(item, tuple):
        status_code, payload = item
        return DummyResponse(status_code=status_code, json_payload=payload)
    return DummyResponse(json_payload=item)


@pytest.fixture
def make_session() -> Callable[..., DummySession]:
    """응답 목록으로 DummySession 을 만든다.

    각 항목은 JSON 본문, ``(상태 코드, 본문)`` 튜플, ``DummyResponse`` 또는
    세션이 대신 발생시킬 예외다.
    """

    def factory(*responses: Any) -> DummySession:
        return DummySession([_to_response(item) for item in responses])

    return factory


def _build_settings(tmp_path: Path, *, with_credentials: bool) -> AppSettings:
    return AppSettings(
        logging=LoggingSettings(log_dir=tmp_path / "logs"),
        tokenomy=TokenomySettings(
            address="https://api.tokenomy.test",
            v1_address="https://exchange.tokenomy.test",
            token=SecretStr(TEST_TOKEN) if with_credentials else None,
            secret=SecretStr(TEST_SECRET) if with_credentials else None,
        ),
    )


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    """인증 정보가 없는 설정."""
    return _build_settings(tmp_path, with_credentials=False)


@pytest.fixture
def auth_settings(tmp_path: Path) -> AppSettings:
    return _build_settings(tmp_path, with_credentials=True)
