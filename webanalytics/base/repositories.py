# ==============================================================================
# Event Store Abstract Base Class
# ==============================================================================
"""
Repository ABC for session and page view persistence.

This defines the "what" (find an open session, bump its page count, read a
range of rows) not the "how" (SQL vs dicts). Concrete implementations in
infrastructure/repositories/ handle the specifics.

Write operations are single-row and independent: there is no multi-row
transaction across a session and its page view. Range reads used by the
aggregation views are wrapped in snapshot() so that all reads of one view
observe the same state.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Optional

from webanalytics.core.models import PageView, Session


class EventStore(ABC):
    """Repository for sessions and their page views."""

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the data store."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close connection and release resources."""
        ...

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @abstractmethod
    def create_session(self, session: Session) -> None:
        """Insert a new session row."""
        ...

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[Session]:
        """Fetch a session by id, or None if it does not exist."""
        ...

    @abstractmethod
    def find_open_session(
        self, session_id: str, visitor_id: str, active_since: datetime
    ) -> Optional[Session]:
        """
        Fetch a session that can still absorb events.

        Args:
            session_id: Candidate session id
            visitor_id: Visitor the session must belong to
            active_since: Minimum last_active_at (inclusive)

        Returns:
            Matching Session, or None
        """
        ...

    @abstractmethod
    def record_page_view_activity(self, session_id: str, path: str, now: datetime) -> None:
        """
        Apply a continuing page view to a session in one atomic update.

        Sets last_active_at = now, exit_page = path, bounced = False and
        increments page_view_count by one relative to the stored value.
        """
        ...

    @abstractmethod
    def update_session_activity(self, session_id: str, last_active_at: datetime, duration: int) -> None:
        """Refresh a session's liveness from a heartbeat."""
        ...

    # ------------------------------------------------------------------
    # Page views
    # ------------------------------------------------------------------

    @abstractmethod
    def create_page_view(self, page_view: PageView) -> None:
        """Insert a page view row. Its session must already exist."""
        ...

    @abstractmethod
    def find_latest_page_view(self, session_id: str, path: str) -> Optional[PageView]:
        """Most recent page view (by timestamp) for a session and path."""
        ...

    @abstractmethod
    def update_page_view_engagement(
        self, page_view_id: str, scroll_depth: int, time_on_page: int
    ) -> None:
        """Store scroll depth and time on page for one page view."""
        ...

    # ------------------------------------------------------------------
    # Range reads
    # ------------------------------------------------------------------

    @abstractmethod
    def snapshot(self, timeout: Optional[float] = None) -> AbstractContextManager[None]:
        """
        Context manager giving one consistent read view for its body.

        Args:
            timeout: Optional statement timeout in seconds for reads inside
                the block
        """
        ...

    @abstractmethod
    def sessions_started_between(
        self, since: datetime, until: Optional[datetime] = None
    ) -> list[Session]:
        """Sessions with since <= started_at (< until when given)."""
        ...

    @abstractmethod
    def sessions_active_since(self, since: datetime) -> list[Session]:
        """Sessions with last_active_at >= since."""
        ...

    @abstractmethod
    def page_views_between(
        self, since: datetime, until: Optional[datetime] = None
    ) -> list[PageView]:
        """Page views with since <= timestamp (< until when given)."""
        ...

    @abstractmethod
    def count_page_views_between(self, since: datetime, until: Optional[datetime] = None) -> int:
        """Count of page views with since <= timestamp (< until when given)."""
        ...
