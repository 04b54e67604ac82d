from __future__ import annotations

import pytest

from shoplist_server.core.config import AppEnv, Settings, load_settings

_ENV_VARS = (
    "APP_ENV",
    "LOG_LEVEL",
    "LOG_JSON",
    "PORT",
    "DATABASE_URL",
    "JWT_SECRET_FILE",
    "TOKEN_TIMEOUT_SECONDS",
    "ALLOW_BARE_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ---- valid values ----


def test_load_settings_defaults() -> None:
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.log_json is False
    assert settings.port == 46152
    assert settings.database_url is None
    assert settings.jwt_secret_file == "resources/jwtSecret.json"
    assert settings.admin_secret_file == "resources/apiSecret.json"
    assert settings.admin_key_file == "resources/apiKey.json"
    assert settings.token_ledger_file == "resources/tokens.txt"
    assert settings.ip_whitelist_file == "resources/whitelisted_ips.json"
    assert settings.token_timeout_seconds == 300
    assert settings.allow_bare_token is False


def test_load_settings_respects_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("LOG_LEVEL", "error")
    monkeypatch.setenv("LOG_JSON", "true")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///users.db")
    monkeypatch.setenv("JWT_SECRET_FILE", "/etc/shoplist/jwt.json")
    monkeypatch.setenv("TOKEN_TIMEOUT_SECONDS", "900")
    monkeypatch.setenv("ALLOW_BARE_TOKEN", "yes")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "error"
    assert settings.log_json is True
    assert settings.port == 8080
    assert settings.database_url == "sqlite:///users.db"
    assert settings.jwt_secret_file == "/etc/shoplist/jwt.json"
    assert settings.token_timeout_seconds == 900
    assert settings.allow_bare_token is True


def test_load_settings_normalizes_case_and_whitespace(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "  PROD  ")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "debug"


# ---- invalid values ----


def test_load_settings_rejects_invalid_app_env(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "staging")
    with pytest.raises(ValueError, match="APP_ENV must be dev|test|prod"):
        load_settings()


def test_load_settings_rejects_invalid_log_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "verbose")
    with pytest.raises(ValueError, match="LOG_LEVEL must be"):
        load_settings()


def test_load_settings_rejects_non_integer_port(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("PORT", "http")
    with pytest.raises(ValueError, match="PORT must be an integer"):
        load_settings()


@pytest.mark.parametrize("raw", ["0", "-5", "five"])
def test_load_settings_rejects_bad_token_timeout(
    monkeypatch: pytest.MonkeyPatch, raw: str
) -> None:
    monkeypatch.setenv("TOKEN_TIMEOUT_SECONDS", raw)
    with pytest.raises(ValueError, match="TOKEN_TIMEOUT_SECONDS"):
        load_settings()


def test_load_settings_rejects_non_boolean_flag(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("ALLOW_BARE_TOKEN", "sometimes")
    with pytest.raises(ValueError, match="ALLOW_BARE_TOKEN must be a boolean"):
        load_settings()


# ---- Settings properties ----


def _make_settings(app_env: AppEnv = "dev") -> Settings:
    return Settings(
        app_env=app_env,
        log_level="info",
        log_json=False,
        port=46152,
        database_url=None,
    )


@pytest.mark.parametrize("app_env", ["dev", "test", "prod"])
def test_settings_env_flags(app_env: AppEnv) -> None:
    s = _make_settings(app_env)
    assert (s.is_dev, s.is_test, s.is_prod) == (
        app_env == "dev",
        app_env == "test",
        app_env == "prod",
    )


def test_settings_is_frozen() -> None:
    s = _make_settings()
    with pytest.raises(AttributeError):
        s.app_env = "prod"  # type: ignore[misc]
