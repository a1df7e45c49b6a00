# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- A connected, memory-only SQLiteEventRepository per test
- A fixed reference clock (NOW) and an event factory relative to it
- A FastAPI TestClient wired to a memory-only store
"""

import time
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from sitepulse.api import create_app
from sitepulse.core.models import NewVisitEvent
from sitepulse.infrastructure.repositories import SQLiteEventRepository
from sitepulse.utils.config import AnalyticsSettings, Settings, StoreSettings

# US Eastern rules as a POSIX TZ string (no tzdata lookup)
EASTERN_TZ = "EST5EDT,M3.2.0,M11.1.0"

# Saturday, midday UTC
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)

CHROME_DESKTOP = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1"
)


@pytest.fixture()
def store():
    """A connected in-memory store that never touches the filesystem."""
    repo = SQLiteEventRepository()
    repo.connect()
    yield repo
    repo.close()


@pytest.fixture()
def add_event(store):
    """Factory appending one event at NOW minus the given offset.

    Usage:
        add_event("u1", "/home", minutes_ago=5, referrer="https://google.com")
    """

    def _add(
        visitor_id: str | None,
        url: str | None,
        minutes_ago: float = 0,
        at: datetime | None = None,
        **fields,
    ) -> int:
        timestamp = at if at is not None else NOW - timedelta(minutes=minutes_ago)
        event = NewVisitEvent(timestamp=timestamp, visitor_id=visitor_id, url=url, **fields)
        return store.append(event)

    return _add


@pytest.fixture()
def eastern_local_time(monkeypatch):
    """Switch the process local zone to US Eastern for one test."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset() not available on this platform")
    monkeypatch.setenv("TZ", EASTERN_TZ)
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.fixture()
def settings(tmp_path):
    """Settings pointing the data file into a temporary directory."""
    return Settings(
        store=StoreSettings(data_file=tmp_path / "analytics.db", persist_interval_seconds=60),
        analytics=AnalyticsSettings(purge_token="DELETE_ALL_DATA"),
    )


@pytest.fixture()
def memory_store():
    """An unconnected memory-only store; the app owns its lifecycle."""
    return SQLiteEventRepository()


@pytest.fixture()
def app(settings, memory_store):
    return create_app(settings=settings, store=memory_store)


@pytest.fixture()
def client(app):
    """TestClient running the app lifespan (store connected on enter)."""
    with TestClient(app) as test_client:
        yield test_client
