# ==============================================================================
# Tests for InMemoryEventStore — memory.py
# ==============================================================================
"""
Tests for the dict-backed EventStore.
"""

from datetime import timedelta

import pytest

from conftest import BASE_TIME, make_page_view, make_session
from webanalytics.core.errors import StorageError


class TestSessions:
    """Tests for session rows."""

    def test_create_and_get_returns_copy(self, store):
        session = make_session(id="s1")
        store.create_session(session)

        stored = store.get_session("s1")
        stored.page_view_count = 99
        assert store.get_session("s1").page_view_count == 1

    def test_duplicate_id_rejected(self, store):
        store.create_session(make_session(id="s1"))
        with pytest.raises(StorageError):
            store.create_session(make_session(id="s1"))

    def test_get_missing_is_none(self, store):
        assert store.get_session("missing") is None

    def test_find_open_session(self, store):
        store.create_session(make_session(id="s1", visitor_id="v1"))

        assert store.find_open_session("s1", "v1", BASE_TIME).id == "s1"
        assert store.find_open_session("s1", "v2", BASE_TIME) is None
        assert store.find_open_session("s1", "v1", BASE_TIME + timedelta(seconds=1)) is None

    def test_record_page_view_activity(self, store):
        store.create_session(make_session(id="s1"))
        later = BASE_TIME + timedelta(minutes=3)

        store.record_page_view_activity("s1", "/pricing", later)

        session = store.get_session("s1")
        assert session.page_view_count == 2
        assert session.bounced is False
        assert session.exit_page == "/pricing"
        assert session.last_active_at == later

    def test_update_missing_session_raises(self, store):
        with pytest.raises(StorageError):
            store.update_session_activity("missing", BASE_TIME, 10)


class TestPageViews:
    """Tests for page view rows."""

    def test_page_view_requires_session(self, store):
        with pytest.raises(StorageError):
            store.create_page_view(make_page_view(session_id="missing"))

    def test_find_latest_by_timestamp(self, store):
        store.create_session(make_session(id="s1"))
        store.create_page_view(make_page_view(id="late", timestamp=BASE_TIME + timedelta(minutes=5)))
        store.create_page_view(make_page_view(id="early"))

        assert store.find_latest_page_view("s1", "/").id == "late"
        assert store.find_latest_page_view("s1", "/other") is None

    def test_update_engagement(self, store):
        store.create_session(make_session(id="s1"))
        store.create_page_view(make_page_view(id="pv1"))

        store.update_page_view_engagement("pv1", scroll_depth=40, time_on_page=12)

        page_view = store.find_latest_page_view("s1", "/")
        assert (page_view.scroll_depth, page_view.time_on_page) == (40, 12)

    def test_update_missing_page_view_raises(self, store):
        with pytest.raises(StorageError):
            store.update_page_view_engagement("missing", 10, 1)


class TestRangeReads:
    """Tests for the aggregation reads."""

    @pytest.fixture()
    def populated(self, store):
        for i in range(3):
            started = BASE_TIME + timedelta(hours=i)
            store.create_session(
                make_session(id=f"s{i}", started_at=started, last_active_at=started)
            )
            store.create_page_view(make_page_view(session_id=f"s{i}", timestamp=started))
        return store

    def test_half_open_interval(self, populated):
        until = BASE_TIME + timedelta(hours=2)
        sessions = populated.sessions_started_between(BASE_TIME, until)
        assert [s.id for s in sessions] == ["s0", "s1"]
        assert populated.count_page_views_between(BASE_TIME, until) == 2

    def test_open_upper_bound(self, populated):
        since = BASE_TIME + timedelta(hours=1)
        assert len(populated.page_views_between(since)) == 2
        assert populated.count_page_views_between(since) == 2

    def test_active_since(self, populated):
        since = BASE_TIME + timedelta(hours=1)
        assert {s.id for s in populated.sessions_active_since(since)} == {"s1", "s2"}

    def test_snapshot_is_reentrant(self, populated):
        with populated.snapshot(timeout=1):
            with populated.snapshot():
                assert len(populated.sessions_started_between(BASE_TIME)) == 3

    def test_clear(self, populated):
        populated.clear()
        assert populated.sessions_started_between(BASE_TIME) == []
