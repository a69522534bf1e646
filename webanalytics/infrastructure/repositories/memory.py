# ==============================================================================
# In-Memory Event Store
# ==============================================================================
"""
Dict-backed EventStore for tests, demos and ANALYTICS_STORE=memory.

Rows are stored as model copies so callers can never mutate stored state
by accident. A re-entrant lock keeps the dicts consistent across threads;
snapshot() holds it for the whole block, which gives aggregation reads the
same single-state view the PostgreSQL snapshot transaction provides.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from webanalytics.base.repositories import EventStore
from webanalytics.core.errors import StorageError
from webanalytics.core.models import PageView, Session

logger = logging.getLogger(__name__)


def _in_range(value: datetime, since: datetime, until: Optional[datetime]) -> bool:
    return value >= since and (until is None or value < until)


class InMemoryEventStore(EventStore):
    """Process-local EventStore. Data is lost when the process exits."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._page_views: dict[str, PageView] = {}
        self._lock = threading.RLock()

    def connect(self) -> None:
        logger.debug("InMemoryEventStore ready")

    def close(self) -> None:
        pass

    def clear(self) -> None:
        """Drop every stored row."""
        with self._lock:
            self._sessions.clear()
            self._page_views.clear()

    def _get_stored_session(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise StorageError(f"Session {session_id} does not exist")
        return session

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, session: Session) -> None:
        with self._lock:
            if session.id in self._sessions:
                raise StorageError(f"Session {session.id} already exists")
            self._sessions[session.id] = session.model_copy()

    def get_session(self, session_id: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(session_id)
            return session.model_copy() if session else None

    def find_open_session(
        self, session_id: str, visitor_id: str, active_since: datetime
    ) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.visitor_id != visitor_id:
                return None
            if session.last_active_at < active_since:
                return None
            return session.model_copy()

    def record_page_view_activity(self, session_id: str, path: str, now: datetime) -> None:
        with self._lock:
            session = self._get_stored_session(session_id)
            session.last_active_at = now
            session.exit_page = path
            session.page_view_count += 1
            session.bounced = False

    def update_session_activity(self, session_id: str, last_active_at: datetime, duration: int) -> None:
        with self._lock:
            session = self._get_stored_session(session_id)
            session.last_active_at = last_active_at
            session.duration = duration

    # ------------------------------------------------------------------
    # Page views
    # ------------------------------------------------------------------

    def create_page_view(self, page_view: PageView) -> None:
        with self._lock:
            if page_view.session_id not in self._sessions:
                raise StorageError(f"Session {page_view.session_id} does not exist")
            self._page_views[page_view.id] = page_view.model_copy()

    def find_latest_page_view(self, session_id: str, path: str) -> Optional[PageView]:
        with self._lock:
            matches = [
                pv
                for pv in self._page_views.values()
                if pv.session_id == session_id and pv.path == path
            ]
            if not matches:
                return None
            return max(matches, key=lambda pv: pv.timestamp).model_copy()

    def update_page_view_engagement(
        self, page_view_id: str, scroll_depth: int, time_on_page: int
    ) -> None:
        with self._lock:
            page_view = self._page_views.get(page_view_id)
            if page_view is None:
                raise StorageError(f"Page view {page_view_id} does not exist")
            page_view.scroll_depth = scroll_depth
            page_view.time_on_page = time_on_page

    # ------------------------------------------------------------------
    # Range reads
    # ------------------------------------------------------------------

    @contextmanager
    def snapshot(self, timeout: Optional[float] = None) -> Iterator[None]:
        with self._lock:
            yield

    def sessions_started_between(
        self, since: datetime, until: Optional[datetime] = None
    ) -> list[Session]:
        with self._lock:
            rows = [s.model_copy() for s in self._sessions.values() if _in_range(s.started_at, since, until)]
        return sorted(rows, key=lambda s: s.started_at)

    def sessions_active_since(self, since: datetime) -> list[Session]:
        with self._lock:
            return [s.model_copy() for s in self._sessions.values() if s.last_active_at >= since]

    def page_views_between(
        self, since: datetime, until: Optional[datetime] = None
    ) -> list[PageView]:
        with self._lock:
            rows = [pv.model_copy() for pv in self._page_views.values() if _in_range(pv.timestamp, since, until)]
        return sorted(rows, key=lambda pv: pv.timestamp)

    def count_page_views_between(self, since: datetime, until: Optional[datetime] = None) -> int:
        with self._lock:
            return sum(1 for pv in self._page_views.values() if _in_range(pv.timestamp, since, until))
