# ==============================================================================
# Tests for AggregationEngine — aggregation.py
# ==============================================================================
"""
Tests for the dashboard views end to end: events go in through the
IngestionService, views come out of the AggregationEngine, both sharing one
in-memory store and a fake clock.
"""

from contextlib import nullcontext
from datetime import timedelta, timezone
from unittest.mock import MagicMock

import pytest

from webanalytics.base import EventStore
from webanalytics.core.errors import QueryTimeoutError, StorageError
from webanalytics.services.aggregation import AggregationEngine

# ==============================================================================
# Helpers
# ==============================================================================


def _visit(ingestion, clock, visitor_id, paths, gap_minutes=1, **metadata):
    """Collect a sequence of paths as one visit, returning the session id."""
    result = ingestion.collect({"visitor_id": visitor_id, "path": paths[0], **metadata})
    for path in paths[1:]:
        clock.advance(minutes=gap_minutes)
        ingestion.collect({"visitor_id": visitor_id, "session_id": result.session_id, "path": path})
    return result.session_id


# ==============================================================================
# Summary
# ==============================================================================


class TestSummary:
    """Tests for AggregationEngine.summary."""

    def test_current_and_previous_period(self, ingestion, engine, clock):
        # One visit eight days ago falls in the previous 7d window
        now = clock.now
        clock.set(now - timedelta(days=8))
        _visit(ingestion, clock, "old", ["/"])

        clock.set(now - timedelta(days=1))
        _visit(ingestion, clock, "a", ["/", "/pricing"])
        _visit(ingestion, clock, "b", ["/"])
        clock.set(now)

        stats = engine.summary("7d")

        assert stats.range == "7d"
        assert stats.visitors == 2
        assert stats.sessions == 2
        assert stats.page_views == 3
        assert stats.bounce_rate == 50.0
        assert stats.pages_per_session == 1.5
        assert stats.sessions_change == 100.0
        assert stats.page_views_change == 200.0
        assert stats.bounce_rate_change == -50.0

    def test_default_range_is_seven_days(self, engine):
        assert engine.summary().range == "7d"
        assert engine.summary("yesterday").range == "7d"

    def test_all_has_no_changes(self, ingestion, engine):
        _visit(ingestion, engine.clock, "a", ["/"])
        stats = engine.summary("all")
        assert stats.sessions == 1
        assert stats.sessions_change is None

    def test_today_compares_with_yesterday(self, ingestion, engine, clock):
        now = clock.now
        clock.set(now.replace(hour=0, minute=0) - timedelta(hours=2))
        _visit(ingestion, clock, "y1", ["/"])
        _visit(ingestion, clock, "y2", ["/"])
        clock.set(now)
        _visit(ingestion, clock, "t1", ["/"])

        stats = engine.summary("today")
        assert stats.sessions == 1
        assert stats.sessions_change == -50.0

    def test_empty_store(self, engine):
        stats = engine.summary("30d")
        assert stats.sessions == 0
        assert stats.avg_duration == 0
        assert stats.sessions_change == 0.0


# ==============================================================================
# Other views
# ==============================================================================


class TestViews:
    """Tests for the remaining views against ingested data."""

    def test_time_series_today_is_hourly(self, ingestion, engine, clock):
        midnight = clock.now.replace(hour=0, minute=0)
        clock.set(midnight.replace(hour=10, minute=5))
        sid = _visit(ingestion, clock, "a", ["/"])
        clock.set(midnight.replace(hour=10, minute=55))
        ingestion.collect({"visitor_id": "a", "session_id": sid, "path": "/b"})
        clock.set(midnight.replace(hour=11, minute=2))
        ingestion.collect({"visitor_id": "a", "session_id": sid, "path": "/c"})

        series = engine.time_series("today")

        assert series.granularity == "hour"
        assert [(p.time[-5:], p.views) for p in series.points] == [("10:00", 2), ("11:00", 1)]

    def test_time_series_all_capped_to_ninety_days(self, ingestion, engine, clock):
        now = clock.now
        clock.set(now - timedelta(days=120))
        _visit(ingestion, clock, "ancient", ["/"])
        clock.set(now)
        _visit(ingestion, clock, "recent", ["/"])

        series = engine.time_series("all")
        assert series.granularity == "day"
        assert len(series.points) == 1

    def test_top_pages_limit(self, ingestion, engine, clock):
        _visit(ingestion, clock, "a", ["/", "/docs", "/pricing"])
        _visit(ingestion, clock, "b", ["/", "/docs"])
        _visit(ingestion, clock, "c", ["/"])

        pages = engine.top_pages("7d", limit=2)
        assert [(p.path, p.views) for p in pages] == [("/", 3), ("/docs", 2)]

    def test_geography_uses_enrichment(self, ingestion, engine, clock):
        _visit(ingestion, clock, "a", ["/"])
        countries = engine.geography("7d")
        assert countries[0].country_code == "DE"
        assert countries[0].top_cities[0].name == "Berlin"

    def test_devices(self, ingestion, engine, clock):
        _visit(ingestion, clock, "a", ["/"], device_type="mobile", browser="Safari", os="iOS")
        _visit(ingestion, clock, "b", ["/"])
        breakdown = engine.devices("7d")
        assert breakdown.total == 2
        assert {e.name for e in breakdown.devices} == {"mobile", "unknown"}

    def test_referrers(self, ingestion, engine, clock):
        _visit(ingestion, clock, "a", ["/"], referrer="https://www.bing.com/search?q=x")
        _visit(ingestion, clock, "b", ["/"], utm_source="newsletter")
        _visit(ingestion, clock, "c", ["/"])
        breakdown = engine.referrers("7d")

        names = {s.name for s in breakdown.sources}
        assert names == {"Organic Search", "Email", "Direct"}
        assert [r.domain for r in breakdown.referrers] == ["bing.com"]

    def test_realtime_window(self, ingestion, engine, clock):
        start = clock.now
        _visit(ingestion, clock, "stale", ["/old"])
        clock.set(start + timedelta(seconds=60))
        _visit(ingestion, clock, "fresh", ["/", "/pricing"], gap_minutes=0)

        clock.set(start + timedelta(minutes=5, seconds=1))
        stats = engine.realtime()
        assert stats.active_sessions == 1
        assert stats.active_pages[0].page == "/pricing"

        clock.set(start + timedelta(minutes=4, seconds=59))
        assert engine.realtime().active_sessions == 2


# ==============================================================================
# Store interaction
# ==============================================================================


def _mock_store() -> MagicMock:
    store = MagicMock(spec=EventStore)
    store.snapshot.return_value = nullcontext()
    store.sessions_started_between.return_value = []
    store.sessions_active_since.return_value = []
    store.page_views_between.return_value = []
    store.count_page_views_between.return_value = 0
    return store


class TestStoreInteraction:
    """Tests for snapshot usage and failure propagation."""

    def test_reads_inside_one_snapshot_with_timeout(self, clock):
        store = _mock_store()
        engine = AggregationEngine(store, tz=timezone.utc, clock=clock, default_timeout=30)

        engine.summary("7d", timeout=5)
        store.snapshot.assert_called_once_with(5)

        engine.geography("7d")
        store.snapshot.assert_called_with(30)

    def test_previous_window_bounds(self, clock):
        store = _mock_store()
        engine = AggregationEngine(store, tz=timezone.utc, clock=clock)

        engine.summary("30d")

        since = clock.now - timedelta(days=30)
        store.sessions_started_between.assert_any_call(since)
        store.sessions_started_between.assert_any_call(since - timedelta(days=30), since)

    def test_storage_error_propagates(self, clock):
        store = _mock_store()
        store.sessions_started_between.side_effect = StorageError("down")
        engine = AggregationEngine(store, tz=timezone.utc, clock=clock)

        with pytest.raises(StorageError):
            engine.devices("7d")

    def test_timeout_is_storage_error(self, clock):
        store = _mock_store()
        store.page_views_between.side_effect = QueryTimeoutError("too slow")
        engine = AggregationEngine(store, tz=timezone.utc, clock=clock)

        with pytest.raises(StorageError):
            engine.top_pages("all")
