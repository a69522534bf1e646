# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- fakeredis-backed ValkeyCache instances
- An in-memory event store and a controllable clock
- Ingestion service and aggregation engine wired to both
- Row factories for aggregation tests
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import fakeredis
import pytest

from webanalytics.base import GeoLookup
from webanalytics.core.models import GeoLocation, PageView, Session
from webanalytics.infrastructure.cache import ValkeyCache
from webanalytics.infrastructure.repositories import InMemoryEventStore
from webanalytics.services.aggregation import AggregationEngine
from webanalytics.services.ingestion import IngestionService

# Wednesday, mid-morning UTC
BASE_TIME = datetime(2026, 3, 11, 10, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = BASE_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture()
def fake_redis():
    """A clean fakeredis instance for each test.

    Uses decode_responses=True to match the real ValkeyCache behavior.
    """
    server = fakeredis.FakeServer()
    client = fakeredis.FakeRedis(server=server, decode_responses=True)
    yield client
    client.flushall()
    client.close()


@pytest.fixture()
def fake_cache(fake_redis):
    """A ValkeyCache with its internal client replaced by fakeredis."""
    # Create a ValkeyCache without connecting, then swap in the fake client
    cache = ValkeyCache.__new__(ValkeyCache)
    cache._client = fake_redis
    cache._url = "redis://fake:6379"
    return cache


@pytest.fixture()
def store():
    """An empty in-memory event store."""
    store = InMemoryEventStore()
    store.connect()
    yield store
    store.close()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def geo():
    """A GeoLookup mock resolving every address to Berlin."""
    lookup = MagicMock(spec=GeoLookup)
    lookup.lookup.return_value = GeoLocation(
        country="Germany",
        country_code="DE",
        city="Berlin",
        region="Berlin",
        latitude=52.52,
        longitude=13.405,
        timezone="Europe/Berlin",
    )
    return lookup


@pytest.fixture()
def ingestion(store, geo, clock):
    return IngestionService(store, geo, clock=clock)


@pytest.fixture()
def engine(store, clock):
    return AggregationEngine(store, tz=timezone.utc, clock=clock)


# ==============================================================================
# Row Factories
# ==============================================================================


def make_session(**overrides) -> Session:
    """Build a Session with sensible defaults for aggregation tests."""
    fields = {
        "visitor_id": "v1",
        "entry_page": "/",
        "exit_page": "/",
        "started_at": BASE_TIME,
        "last_active_at": BASE_TIME,
    }
    fields.update(overrides)
    return Session(**fields)


def make_page_view(**overrides) -> PageView:
    """Build a PageView with sensible defaults for aggregation tests."""
    fields = {"session_id": "s1", "path": "/", "timestamp": BASE_TIME}
    fields.update(overrides)
    return PageView(**fields)
