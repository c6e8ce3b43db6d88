"""시간 관련 헬퍼 함수 모음."""

from __future__ import annotations

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """UTC 기준 현재 시간을 반환한다."""
    return datetime.now(timezone.utc)


def timestamp_seconds() -> int:
    """현재 Unix 시간(초). API v2 의 ``timestamp`` 파라미터에 사용한다."""
    return int(time.time())


def timestamp_millis() -> int:
    """현재 Unix 시간(밀리초). API v1 의 ``nonce`` 파라미터에 사용한다."""
    return time.time_ns() // 1_000_000


def from_timestamp(value: int | float) -> datetime:
    """Unix 초 단위 값을 UTC datetime 으로 변환한다."""
    return datetime.fromtimestamp(value, tz=timezone.utc)


__all__ = [
    "from_timestamp",
    "timestamp_millis",
    "timestamp_seconds",
    "utc_now",
]
