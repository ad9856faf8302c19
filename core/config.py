"""Application configuration with environment-specific profiles.

Supports dev, test, staging, and production environments via APP_ENV.
All values can be overridden by environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    """Immutable application settings resolved from environment."""

    database_url: str
    app_env: str = "dev"
    log_level: str = "INFO"
    jwt_secret: str = "jwt-change-me"
    jwt_expire_minutes: int = 480

    # Calendar engine
    rebuild_debounce_seconds: float = 5.0
    template_zones: tuple[str, ...] = ("A", "B", "C")
    default_period_name: str = "Base Period"
    default_period_description: str = "Default training period"
    default_period_color: str = "#3b82f6"

    # HTTP surface
    rate_limit_enabled: bool = False
    rate_limit_storage_uri: str = "memory://"
    recreate_rate_limit: str = "10/minute"
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    request_id_header_name: str = "X-Request-ID"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"


# -- Environment profiles --

_ENV_PROFILES: dict[str, dict] = {
    "dev": {
        "log_level": "DEBUG",
        "jwt_expire_minutes": 1440,
        "rate_limit_enabled": False,
    },
    "test": {
        "log_level": "WARNING",
        "jwt_expire_minutes": 60,
        "rate_limit_enabled": False,
    },
    "staging": {
        "log_level": "INFO",
        "jwt_expire_minutes": 480,
        "rate_limit_enabled": True,
    },
    "production": {
        "log_level": "WARNING",
        "jwt_expire_minutes": 240,
        "rate_limit_enabled": True,
    },
}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


def get_database_url() -> str:
    """Resolve database URL from env var or local default.

    Resolution order:
    1. DATABASE_URL environment variable
    2. Local sqlite file for dev setups
    """
    env_url = os.getenv("DATABASE_URL")
    if env_url:
        return env_url
    return "sqlite+pysqlite:///./training_calendar.db"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build Settings by merging environment profile with env-var overrides."""
    app_env = os.getenv("APP_ENV", "dev")
    profile = _ENV_PROFILES.get(app_env, _ENV_PROFILES["dev"])

    zones = tuple(z.upper() for z in _env_list("TEMPLATE_ZONES", ["A", "B", "C"]))
    return Settings(
        database_url=get_database_url(),
        app_env=app_env,
        log_level=os.getenv("LOG_LEVEL", profile.get("log_level", "INFO")),
        jwt_secret=os.getenv("JWT_SECRET", "jwt-change-me"),
        jwt_expire_minutes=int(os.getenv("JWT_EXPIRE_MINUTES", str(profile.get("jwt_expire_minutes", 480)))),
        rebuild_debounce_seconds=float(os.getenv("REBUILD_DEBOUNCE_SECONDS", "5.0")),
        template_zones=zones,
        default_period_name=os.getenv("DEFAULT_PERIOD_NAME", "Base Period"),
        default_period_description=os.getenv("DEFAULT_PERIOD_DESCRIPTION", "Default training period"),
        default_period_color=os.getenv("DEFAULT_PERIOD_COLOR", "#3b82f6"),
        rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", bool(profile.get("rate_limit_enabled", False))),
        rate_limit_storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI", "memory://"),
        recreate_rate_limit=os.getenv("RECREATE_RATE_LIMIT", "10/minute"),
        cors_origins=_env_list("CORS_ORIGINS", ["http://localhost:3000"]),
        request_id_header_name=os.getenv("REQUEST_ID_HEADER_NAME", "X-Request-ID"),
    )
