"""Tests for configuration module."""

from __future__ import annotations

import pytest

from core.config import Settings, _ENV_PROFILES, get_database_url, get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_settings_dataclass_defaults():
    s = Settings(database_url="sqlite://")
    assert s.app_env == "dev"
    assert s.rebuild_debounce_seconds == 5.0
    assert s.template_zones == ("A", "B", "C")
    assert s.default_period_name == "Base Period"
    assert s.default_period_color == "#3b82f6"
    assert s.recreate_rate_limit == "10/minute"


def test_settings_frozen():
    s = Settings(database_url="x")
    with pytest.raises(AttributeError):
        s.database_url = "y"


def test_settings_is_production():
    s = Settings(database_url="x", app_env="production")
    assert s.is_production is True
    assert s.is_dev is False


def test_get_database_url_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg2://from-env/db")
    assert get_database_url() == "postgresql+psycopg2://from-env/db"


def test_get_database_url_default_is_local_sqlite(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert get_database_url().startswith("sqlite")


def test_env_profiles_exist():
    for name in ("dev", "test", "staging", "production"):
        assert name in _ENV_PROFILES
    assert _ENV_PROFILES["production"]["rate_limit_enabled"] is True


def test_calendar_settings_from_env(monkeypatch):
    monkeypatch.setenv("REBUILD_DEBOUNCE_SECONDS", "2.5")
    monkeypatch.setenv("TEMPLATE_ZONES", "a, c")
    monkeypatch.setenv("DEFAULT_PERIOD_NAME", "Off Season")
    monkeypatch.setenv("RECREATE_RATE_LIMIT", "3/minute")
    s = get_settings()
    assert s.rebuild_debounce_seconds == 2.5
    assert s.template_zones == ("A", "C")
    assert s.default_period_name == "Off Season"
    assert s.recreate_rate_limit == "3/minute"


def test_settings_profile_defaults(monkeypatch):
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.delenv("JWT_EXPIRE_MINUTES", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("RATE_LIMIT_ENABLED", raising=False)
    s = get_settings()
    assert s.jwt_expire_minutes == 1440
    assert s.log_level == "DEBUG"
    assert s.rate_limit_enabled is False


def test_rate_limit_flag_overrides_profile(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "off")
    assert get_settings().rate_limit_enabled is False
