"""환경변수 기반 클라이언트 설정 로더.

``.env`` 는 현재 작업 디렉터리에서 위로 올라가며 찾는다. 설치된 패키지
위치가 아니라 라이브러리를 사용하는 애플리케이션 기준이다.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, SecretStr

load_dotenv(find_dotenv(usecwd=True))

DEFAULT_ADDRESS = "https://api.tokenomy.com"
DEFAULT_V1_ADDRESS = "https://exchange.tokenomy.com"


def _to_bool(value: str | bool | None, default: bool = False) -> bool:
    """문자열 값을 불리언으로 변환한다."""
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    normalized = value.strip().lower()
    return normalized in {"1", "true", "yes", "on"}


def _to_int(value: str | int | None, default: int) -> int:
    """문자열 값을 정수로 변환한다."""
    if isinstance(value, int):
        return value
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _to_float(value: str | float | None, default: float) -> float:
    if isinstance(value, (int, float)):
        return float(value)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class LoggingSettings(BaseModel):
    """로깅 관련 설정."""

    model_config = ConfigDict(populate_by_name=True)

    level: str = Field(default="INFO")
    # None 이면 파일 로그를 남기지 않는다.
    log_dir: Optional[Path] = Field(default=None)
    file_name: str = Field(default="tokenomy.log")
    rotation_when: str = Field(default="midnight")
    rotation_interval: int = Field(default=1, ge=1)
    backup_count: int = Field(default=7, ge=0)

    @classmethod
    def from_env(cls) -> "LoggingSettings":
        """환경변수에서 로깅 설정을 생성한다."""
        log_dir_value = os.getenv("LOG_DIR")
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=Path(log_dir_value).expanduser() if log_dir_value else None,
            file_name=os.getenv("LOG_FILE_NAME", "tokenomy.log"),
            rotation_when=os.getenv("LOG_ROTATION_WHEN", "midnight"),
            rotation_interval=_to_int(os.getenv("LOG_ROTATION_INTERVAL"), 1),
            backup_count=_to_int(os.getenv("LOG_BACKUP_COUNT"), 7),
        )

    @property
    def normalized_level(self) -> str:
        """대문자로 정규화된 로그 레벨."""
        return self.level.upper()

    def resolve_log_path(self, base_dir: Optional[Path] = None) -> Optional[Path]:
        """로그 파일 전체 경로. 상대 경로는 ``base_dir`` (기본값: 작업 디렉터리) 기준이다."""
        if self.log_dir is None:
            return None
        log_dir = self.log_dir
        if not log_dir.is_absolute():
            log_dir = ((base_dir or Path.cwd()) / log_dir).resolve()
        return log_dir / self.file_name


class TokenomySettings(BaseModel):
    """토코노미 API 관련 설정.

    ``debug`` 1 은 설정 내용을, 2 는 요청/응답 본문까지 DEBUG 로그로 남긴다.
    """

    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(default=DEFAULT_ADDRESS)
    v1_address: str = Field(default=DEFAULT_V1_ADDRESS)
    token: Optional[SecretStr] = Field(default=None)
    secret: Optional[SecretStr] = Field(default=None)
    debug: int = Field(default=0, ge=0)
    insecure: bool = Field(default=False)
    timeout: float = Field(default=10.0, gt=0)

    @classmethod
    def from_env(cls) -> "TokenomySettings":
        """환경변수에서 토코노미 API 설정을 생성한다."""
        token = os.getenv("TOKENOMY_TOKEN")
        secret = os.getenv("TOKENOMY_SECRET")
        return cls(
            address=os.getenv("TOKENOMY_ADDRESS") or DEFAULT_ADDRESS,
            v1_address=os.getenv("TOKENOMY_V1_ADDRESS") or DEFAULT_V1_ADDRESS,
            token=SecretStr(token) if token else None,
            secret=SecretStr(secret) if secret else None,
            debug=max(0, _to_int(os.getenv("TOKENOMY_DEBUG"), 0)),
            insecure=_to_bool(os.getenv("TOKENOMY_INSECURE"), False),
            timeout=_to_float(os.getenv("TOKENOMY_TIMEOUT"), 10.0),
        )

    @property
    def token_value(self) -> Optional[str]:
        return self.token.get_secret_value() if self.token else None

    @property
    def secret_value(self) -> Optional[str]:
        return self.secret.get_secret_value() if self.secret else None


class AppSettings(BaseModel):
    """라이브러리 전반에 사용되는 설정 묶음."""

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    tokenomy: TokenomySettings = Field(default_factory=TokenomySettings)

    @classmethod
    def load(cls) -> "AppSettings":
        """환경변수 및 기본값을 반영하여 설정 인스턴스를 생성한다."""
        return cls(
            logging=LoggingSettings.from_env(),
            tokenomy=TokenomySettings.from_env(),
        )


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """전역 설정을 캐시하여 반환한다."""
    return AppSettings.load()


__all__ = [
    "AppSettings",
    "DEFAULT_ADDRESS",
    "DEFAULT_V1_ADDRESS",
    "LoggingSettings",
    "TokenomySettings",
    "get_settings",
]
