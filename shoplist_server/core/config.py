from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None

    # On-disk authentication state
    jwt_secret_file: str = "resources/jwtSecret.json"
    admin_secret_file: str = "resources/apiSecret.json"
    admin_key_file: str = "resources/apiKey.json"
    token_ledger_file: str = "resources/tokens.txt"
    ip_whitelist_file: str = "resources/whitelisted_ips.json"

    token_timeout_seconds: int = 300
    # Accept "Authorization: <token>" without the Bearer scheme.
    # Older app builds send the bare token; off unless an operator opts in.
    allow_bare_token: bool = False

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "46152")
    timeout_raw = _getenv("TOKEN_TIMEOUT_SECONDS", "300")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        token_timeout = int(timeout_raw)
    except ValueError:
        raise ValueError(
            f"TOKEN_TIMEOUT_SECONDS must be an integer (got {timeout_raw!r})"
        ) from None
    if token_timeout <= 0:
        raise ValueError(
            f"TOKEN_TIMEOUT_SECONDS must be positive (got {token_timeout})"
        )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON", False),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        jwt_secret_file=_getenv("JWT_SECRET_FILE", "resources/jwtSecret.json"),
        admin_secret_file=_getenv("ADMIN_SECRET_FILE", "resources/apiSecret.json"),
        admin_key_file=_getenv("ADMIN_KEY_FILE", "resources/apiKey.json"),
        token_ledger_file=_getenv("TOKEN_LEDGER_FILE", "resources/tokens.txt"),
        ip_whitelist_file=_getenv(
            "IP_WHITELIST_FILE", "resources/whitelisted_ips.json"
        ),
        token_timeout_seconds=token_timeout,
        allow_bare_token=_getbool("ALLOW_BARE_TOKEN", False),
    )
