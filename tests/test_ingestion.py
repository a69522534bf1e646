# ==============================================================================
# Tests for IngestionService — ingestion.py
# ==============================================================================
"""
Tests for collect and heartbeat against the in-memory store.

Covers session continuation and expiry, validation before store access,
heartbeat engagement updates, not-found reporting, storage failure
propagation and client IP resolution.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from webanalytics.base import EventStore
from webanalytics.core.errors import InvalidEventError, StorageError
from webanalytics.core.models import CollectEvent
from webanalytics.services.ingestion import IngestionService, client_ip_from_headers

# ==============================================================================
# collect
# ==============================================================================


class TestCollect:
    """Tests for IngestionService.collect."""

    def test_first_hit_opens_session(self, ingestion, store, geo):
        result = ingestion.collect({"visitor_id": "v1", "path": "/"}, client_ip="8.8.8.8")

        assert result.new_session is True
        session = store.get_session(result.session_id)
        assert session.visitor_id == "v1"
        assert session.country_code == "DE"
        geo.lookup.assert_called_once_with("8.8.8.8")

    def test_first_page_view_recorded(self, ingestion, store, clock):
        result = ingestion.collect(
            {"visitor_id": "v1", "path": "/docs", "title": "Docs", "referrer": "https://t.co/x"}
        )

        page_view = store.find_latest_page_view(result.session_id, "/docs")
        assert page_view is not None
        assert page_view.title == "Docs"
        assert page_view.referrer == "https://t.co/x"
        assert page_view.timestamp == clock.now

    def test_accepts_model_instance(self, ingestion):
        result = ingestion.collect(CollectEvent(visitor_id="v1", path="/"))
        assert result.new_session is True

    def test_calls_within_timeout_share_session(self, ingestion, store, clock):
        """Page count equals the number of calls and bounced flips at two."""
        first = ingestion.collect({"visitor_id": "v1", "path": "/"})
        assert store.get_session(first.session_id).bounced is True

        session_id = first.session_id
        for i in range(4):
            clock.advance(minutes=29)
            result = ingestion.collect(
                {"visitor_id": "v1", "session_id": session_id, "path": f"/p{i}"}
            )
            assert result.session_id == session_id
            assert result.new_session is False

        session = store.get_session(session_id)
        assert session.page_view_count == 5
        assert session.bounced is False
        assert session.exit_page == "/p3"

    def test_geo_only_looked_up_for_new_sessions(self, ingestion, geo, clock):
        first = ingestion.collect({"visitor_id": "v1", "path": "/"})
        clock.advance(minutes=1)
        ingestion.collect({"visitor_id": "v1", "session_id": first.session_id, "path": "/b"})
        assert geo.lookup.call_count == 1

    def test_expired_session_yields_new_id(self, ingestion, store, clock):
        first = ingestion.collect({"visitor_id": "v1", "path": "/"})
        clock.advance(minutes=30, seconds=1)

        second = ingestion.collect({"visitor_id": "v1", "session_id": first.session_id, "path": "/"})

        assert second.new_session is True
        assert second.session_id != first.session_id
        # The abandoned session is left untouched
        assert store.get_session(first.session_id).page_view_count == 1

    def test_session_of_other_visitor_not_continued(self, ingestion):
        first = ingestion.collect({"visitor_id": "v1", "path": "/"})
        second = ingestion.collect({"visitor_id": "v2", "session_id": first.session_id, "path": "/"})
        assert second.session_id != first.session_id

    @pytest.mark.parametrize(
        "payload",
        [
            {"visitor_id": "", "path": "/"},
            {"visitor_id": "v1", "path": ""},
            {"visitor_id": "   ", "path": "/"},
            {"path": "/"},
            {"visitor_id": "v1", "path": "/", "screen_width": -1},
        ],
    )
    def test_invalid_input_rejected_before_store_access(self, payload, geo):
        store = MagicMock(spec=EventStore)
        service = IngestionService(store, geo)

        with pytest.raises(InvalidEventError) as exc_info:
            service.collect(payload)

        assert exc_info.value.errors
        assert store.method_calls == []
        geo.lookup.assert_not_called()

    def test_invalid_event_is_value_error(self, ingestion):
        with pytest.raises(ValueError):
            ingestion.collect({"visitor_id": "v1"})

    def test_page_view_failure_propagates_after_session_write(self, geo, clock):
        store = MagicMock(spec=EventStore)
        store.create_page_view.side_effect = StorageError("insert failed")
        service = IngestionService(store, geo, clock=clock)

        with pytest.raises(StorageError):
            service.collect({"visitor_id": "v1", "path": "/"})

        store.create_session.assert_called_once()

    def test_store_failure_surfaces_as_storage_error(self, geo):
        store = MagicMock(spec=EventStore)
        store.find_open_session.side_effect = StorageError("connection lost")
        service = IngestionService(store, geo)

        with pytest.raises(StorageError):
            service.collect({"visitor_id": "v1", "session_id": "s1", "path": "/"})


# ==============================================================================
# heartbeat
# ==============================================================================


class TestHeartbeat:
    """Tests for IngestionService.heartbeat."""

    def test_unknown_session_not_found(self, ingestion):
        result = ingestion.heartbeat({"session_id": "nope"})
        assert result.status == "not_found"
        assert result.found is False

    def test_closed_session_not_revived(self, ingestion, store, clock):
        first = ingestion.collect({"visitor_id": "v1", "path": "/"})
        opened_at = clock.now
        clock.advance(minutes=30, seconds=1)

        status = ingestion.heartbeat({"session_id": first.session_id, "scroll_depth": 80, "path": "/"})

        assert status.status == "not_found"
        session = store.get_session(first.session_id)
        assert session.last_active_at == opened_at
        assert session.duration == 0
        assert store.find_latest_page_view(first.session_id, "/").scroll_depth is None

        # The stale id stays abandoned
        later = ingestion.collect({"visitor_id": "v1", "session_id": first.session_id, "path": "/"})
        assert later.new_session is True
        assert later.session_id != first.session_id

    def test_heartbeat_at_timeout_boundary_still_counts(self, ingestion, store, clock):
        result = ingestion.collect({"visitor_id": "v1", "path": "/"})
        clock.advance(minutes=30)

        assert ingestion.heartbeat({"session_id": result.session_id}).found is True
        assert store.get_session(result.session_id).duration == 1800

    def test_updates_duration_and_activity(self, ingestion, store, clock):
        started = clock.now
        result = ingestion.collect({"visitor_id": "v1", "path": "/"})
        clock.advance(seconds=95, milliseconds=900)

        status = ingestion.heartbeat({"session_id": result.session_id})
        session = store.get_session(result.session_id)

        assert status.status == "ok"
        assert session.duration == 95
        assert session.last_active_at == clock.now
        assert session.started_at == started

    def test_does_not_create_rows(self, ingestion, store):
        result = ingestion.collect({"visitor_id": "v1", "path": "/"})
        before = store.count_page_views_between(store.get_session(result.session_id).started_at)

        ingestion.heartbeat({"session_id": result.session_id, "scroll_depth": 50, "path": "/"})

        after = store.count_page_views_between(store.get_session(result.session_id).started_at)
        assert before == after == 1
        assert store.get_session(result.session_id).page_view_count == 1

    def test_scroll_depth_never_regresses(self, ingestion, store, clock):
        result = ingestion.collect({"visitor_id": "v1", "path": "/article"})

        for depth in [10, 40, 25, 90]:
            clock.advance(seconds=15)
            ingestion.heartbeat(
                {"session_id": result.session_id, "scroll_depth": depth, "path": "/article"}
            )

        page_view = store.find_latest_page_view(result.session_id, "/article")
        assert page_view.scroll_depth == 90
        assert page_view.time_on_page == 60

    def test_scroll_applies_to_most_recent_view_of_path(self, ingestion, store, clock):
        result = ingestion.collect({"visitor_id": "v1", "path": "/a"})
        first_view = store.find_latest_page_view(result.session_id, "/a")
        clock.advance(minutes=1)
        ingestion.collect({"visitor_id": "v1", "session_id": result.session_id, "path": "/a"})
        clock.advance(seconds=10)

        ingestion.heartbeat({"session_id": result.session_id, "scroll_depth": 70, "path": "/a"})

        latest = store.find_latest_page_view(result.session_id, "/a")
        assert latest.id != first_view.id
        assert latest.scroll_depth == 70
        assert latest.time_on_page == 10
        assert store._page_views[first_view.id].scroll_depth is None

    def test_scroll_without_path_only_touches_session(self, ingestion, store, clock):
        result = ingestion.collect({"visitor_id": "v1", "path": "/"})
        clock.advance(seconds=30)
        ingestion.heartbeat({"session_id": result.session_id, "scroll_depth": 50})

        page_view = store.find_latest_page_view(result.session_id, "/")
        assert page_view.scroll_depth is None
        assert store.get_session(result.session_id).duration == 30

    def test_unknown_path_is_ignored(self, ingestion, store):
        result = ingestion.collect({"visitor_id": "v1", "path": "/"})
        status = ingestion.heartbeat(
            {"session_id": result.session_id, "scroll_depth": 50, "path": "/elsewhere"}
        )
        assert status.found is True

    @pytest.mark.parametrize(
        "payload",
        [
            {"session_id": ""},
            {"session_id": "s1", "scroll_depth": 101},
            {"session_id": "s1", "scroll_depth": -1},
            {},
        ],
    )
    def test_invalid_input_rejected(self, payload):
        store = MagicMock(spec=EventStore)
        with pytest.raises(InvalidEventError):
            IngestionService(store).heartbeat(payload)
        assert store.method_calls == []


# ==============================================================================
# client_ip_from_headers
# ==============================================================================


class TestClientIp:
    """Tests for client IP resolution."""

    def test_first_forwarded_hop(self):
        headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
        assert client_ip_from_headers(headers, "10.0.0.2") == "203.0.113.7"

    def test_header_name_case_insensitive(self):
        assert client_ip_from_headers({"x-forwarded-for": "198.51.100.4"}) == "198.51.100.4"

    def test_falls_back_to_remote_addr(self):
        assert client_ip_from_headers({}, "192.0.2.10") == "192.0.2.10"

    def test_defaults_to_loopback(self):
        assert client_ip_from_headers(None, None) == "127.0.0.1"

    def test_blank_header_ignored(self):
        assert client_ip_from_headers({"X-Forwarded-For": " "}, "192.0.2.10") == "192.0.2.10"
