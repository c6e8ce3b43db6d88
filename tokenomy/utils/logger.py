"""``tokenomy`` 로거 설정 유틸리티.

라이브러리는 ``logging.getLogger(__name__)`` 로만 기록하고 핸들러는 붙이지
않는다. 콘솔이나 파일로 로그를 보고 싶은 애플리케이션이 ``configure_logging``
을 호출한다. ``TOKENOMY_DEBUG`` 가 1 이상이면 설정된 레벨과 관계없이 DEBUG
로 기록한다.
"""

from __future__ import annotations

from logging.config import dictConfig
from typing import Any, Dict, Optional

from ..config import AppSettings, LoggingSettings, get_settings

LOGGER_NAME = "tokenomy"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LOG_CONFIGURED = False


def _file_handler(logging_settings: LoggingSettings, level: str) -> Optional[Dict[str, Any]]:
    log_path = logging_settings.resolve_log_path()
    if log_path is None:
        return None
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return {
        "class": "logging.handlers.TimedRotatingFileHandler",
        "formatter": "standard",
        "level": level,
        "filename": str(log_path),
        "when": logging_settings.rotation_when,
        "interval": logging_settings.rotation_interval,
        "backupCount": logging_settings.backup_count,
        "encoding": "utf-8",
    }


def build_logging_config(settings: Optional[AppSettings] = None) -> Dict[str, Any]:
    """``tokenomy`` 로거용 dictConfig 설정을 만든다.

    파일 핸들러는 ``LOG_DIR`` 이 지정된 경우에만 추가한다.
    """
    settings = settings or get_settings()
    level = "DEBUG" if settings.tokenomy.debug else settings.logging.normalized_level

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {"class": "logging.StreamHandler", "formatter": "standard", "level": level},
    }
    file_handler = _file_handler(settings.logging, level)
    if file_handler is not None:
        handlers["file"] = file_handler

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT}},
        "handlers": handlers,
        "loggers": {
            LOGGER_NAME: {"level": level, "handlers": sorted(handlers), "propagate": False},
        },
    }


def configure_logging(force: bool = False, settings: Optional[AppSettings] = None) -> None:
    """``tokenomy`` 로거에 핸들러를 연결한다. 두 번째 호출부터는 ``force`` 일 때만 다시 설정한다."""
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED and not force:
        return
    dictConfig(build_logging_config(settings))
    _LOG_CONFIGURED = True


__all__ = ["LOGGER_NAME", "build_logging_config", "configure_logging"]
