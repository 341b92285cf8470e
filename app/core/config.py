from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

from app.core.errors import ConfigError

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

DEV_SESSION_SECRET = "dev-only-session-secret-change-me"


def _getenv(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def _getbool(name: str, default: bool = False) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(f"{name} must be true|false (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    client_id: str
    client_secret: str
    redirect_uri: str
    session_secret: str
    database_url: str | None
    force_db_sync: bool = False
    http_timeout_sec: float = 2.0

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
    """Read and validate process configuration from the environment.

    Raises ConfigError when the provider credentials are incomplete so the
    server refuses to start instead of failing on the first callback.
    """
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "5000")
    timeout_raw = _getenv("HTTP_TIMEOUT_SEC", "2.0")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ConfigError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ConfigError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ConfigError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        http_timeout_sec = float(timeout_raw)
    except ValueError:
        raise ConfigError(
            f"HTTP_TIMEOUT_SEC must be a number (got {timeout_raw!r})"
        ) from None
    if http_timeout_sec <= 0:
        raise ConfigError("HTTP_TIMEOUT_SEC must be positive")

    client_id = _getenv("CLIENT_ID")
    client_secret = _getenv("CLIENT_SECRET")
    redirect_uri = _getenv("REDIRECT_URI")
    missing = [
        name
        for name, value in (
            ("CLIENT_ID", client_id),
            ("CLIENT_SECRET", client_secret),
            ("REDIRECT_URI", redirect_uri),
        )
        if not value
    ]
    if missing:
        raise ConfigError(
            "Environment variables not all set, missing: "
            + ", ".join(missing)
            + " (copy sample.env to .env and fill it in)"
        )

    session_secret = _getenv("SESSION_SECRET")
    if not session_secret:
        if app_env_raw == "prod":
            raise ConfigError("SESSION_SECRET must be set when APP_ENV=prod")
        session_secret = DEV_SESSION_SECRET

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON"),
        port=port,
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        session_secret=session_secret,
        database_url=_getenv("DATABASE_URL") or None,
        force_db_sync=_getbool("FORCE_DB_SYNC"),
        http_timeout_sec=http_timeout_sec,
    )
