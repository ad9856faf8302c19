from __future__ import annotations

import sys

import pytest

from core.config import get_settings
from core.db import create_schema, get_session_factory, reset_engine


def _reset_runtime_caches() -> None:
    get_settings.cache_clear()
    reset_engine()


@pytest.fixture
def calendar_env(tmp_path, monkeypatch):
    """Point settings at a throwaway sqlite file and build the schema."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{tmp_path / 'calendar.db'}")
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.delenv("RATE_LIMIT_ENABLED", raising=False)
    _reset_runtime_caches()
    create_schema()
    yield tmp_path
    _reset_runtime_caches()


@pytest.fixture
def db_session(calendar_env):
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture
def client(calendar_env):
    from fastapi.testclient import TestClient

    for name in ["api.main", "api.routes", "api.ratelimit"]:
        sys.modules.pop(name, None)
    from api.main import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
