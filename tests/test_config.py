from __future__ import annotations

from pathlib import Path

import pytest
from dotenv import dotenv_values, find_dotenv

from tokenomy.config import (
    DEFAULT_ADDRESS,
    DEFAULT_V1_ADDRESS,
    LoggingSettings,
    TokenomySettings,
    get_settings,
)

TOKENOMY_ENV_VARS = (
    "TOKENOMY_ADDRESS",
    "TOKENOMY_V1_ADDRESS",
    "TOKENOMY_TOKEN",
    "TOKENOMY_SECRET",
    "TOKENOMY_DEBUG",
    "TOKENOMY_INSECURE",
    "TOKENOMY_TIMEOUT",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in TOKENOMY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults_without_environment(clean_env) -> None:
    settings = TokenomySettings.from_env()

    assert settings.address == DEFAULT_ADDRESS
    assert settings.v1_address == DEFAULT_V1_ADDRESS
    assert settings.token is None
    assert settings.secret_value is None
    assert settings.debug == 0
    assert settings.insecure is False
    assert settings.timeout == 10.0


def test_values_from_environment(clean_env) -> None:
    clean_env.setenv("TOKENOMY_ADDRESS", "https://sandbox.tokenomy.test")
    clean_env.setenv("TOKENOMY_TOKEN", "tok3n")
    clean_env.setenv("TOKENOMY_SECRET", "secr3t")
    clean_env.setenv("TOKENOMY_DEBUG", "2")
    clean_env.setenv("TOKENOMY_INSECURE", "yes")
    clean_env.setenv("TOKENOMY_TIMEOUT", "2.5")

    settings = TokenomySettings.from_env()

    assert settings.address == "https://sandbox.tokenomy.test"
    assert settings.token_value == "tok3n"
    assert settings.secret_value == "secr3t"
    assert "secr3t" not in repr(settings)
    assert settings.debug == 2
    assert settings.insecure is True
    assert settings.timeout == 2.5


def test_invalid_numbers_fall_back(clean_env) -> None:
    clean_env.setenv("TOKENOMY_DEBUG", "verbose")
    clean_env.setenv("TOKENOMY_TIMEOUT", "soon")

    settings = TokenomySettings.from_env()

    assert settings.debug == 0
    assert settings.timeout == 10.0


def test_log_path_relative_to_working_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    relative = LoggingSettings(log_dir=Path("var/logs"), file_name="client.log", level="debug")
    absolute = LoggingSettings(log_dir=tmp_path / "logs")

    assert relative.normalized_level == "DEBUG"
    assert relative.resolve_log_path() == tmp_path.resolve() / "var/logs" / "client.log"
    assert relative.resolve_log_path(tmp_path / "app") == (tmp_path / "app/var/logs").resolve() / "client.log"
    assert absolute.resolve_log_path(Path("/elsewhere")) == tmp_path / "logs" / "tokenomy.log"


def test_file_logging_is_off_without_log_dir(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LOG_DIR", raising=False)

    settings = LoggingSettings.from_env()

    assert settings.log_dir is None
    assert settings.resolve_log_path() is None


def test_dotenv_is_found_from_working_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text("TOKENOMY_ADDRESS=https://dotenv.tokenomy.test\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    path = find_dotenv(usecwd=True)

    assert Path(path).resolve() == (tmp_path / ".env").resolve()
    assert dotenv_values(path)["TOKENOMY_ADDRESS"] == "https://dotenv.tokenomy.test"


def test_get_settings_is_cached(clean_env) -> None:
    get_settings.cache_clear()
    try:
        clean_env.setenv("TOKENOMY_TIMEOUT", "4")
        first = get_settings()
        assert first is get_settings()
        assert first.tokenomy.timeout == 4.0
    finally:
        get_settings.cache_clear()
