# ==============================================================================
# Ingestion Service
# ==============================================================================
"""
Accepts page-view (collect) and heartbeat events from tracking clients.

collect:
1. Validate input (nothing touches the store before this passes)
2. Continue the caller's session if it is still open, otherwise geo-enrich
   the client IP and open a new one
3. Insert the PageView row

heartbeat:
1. Validate input
2. Refresh the session's last_active_at and duration
3. Optionally raise the scroll depth / time on page of the latest view of a path

Session writes and the PageView insert are independent single-row writes.
If the PageView insert fails after the session was written, the error is
logged and re-raised; the session write is not undone.
"""

import logging
import math
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from webanalytics.base import EventStore, GeoLookup
from webanalytics.core.errors import InvalidEventError, StorageError
from webanalytics.core.models import (
    CollectEvent,
    CollectResult,
    HeartbeatEvent,
    HeartbeatResult,
    PageView,
    utcnow,
)
from webanalytics.core.session_stitcher import SESSION_TIMEOUT, SessionStitcher
from webanalytics.infrastructure.geo import NullGeoLookup

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_IP = "127.0.0.1"

EventT = TypeVar("EventT", bound=BaseModel)


def client_ip_from_headers(headers: Mapping[str, str] | None, remote_addr: Optional[str] = None) -> str:
    """
    Resolve the client IP for geo enrichment.

    Uses the first hop of X-Forwarded-For when present, then the transport
    address, then 127.0.0.1.
    """
    if headers:
        for name, value in headers.items():
            if name.lower() == "x-forwarded-for" and value:
                first_hop = value.split(",")[0].strip()
                if first_hop:
                    return first_hop
    if remote_addr and remote_addr.strip():
        return remote_addr.strip()
    return DEFAULT_CLIENT_IP


def _whole_seconds_since(start: datetime, now: datetime) -> int:
    return max(0, math.floor((now - start).total_seconds()))


class IngestionService:
    """
    Entry point for tracking events.

    Args:
        store: Event store to read and write sessions and page views
        geo: Geo lookup used once per new session (default: no enrichment)
        clock: Returns the current timezone-aware time (default: UTC now)
    """

    def __init__(
        self,
        store: EventStore,
        geo: GeoLookup | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.geo = geo or NullGeoLookup()
        self.clock = clock
        self.stitcher = SessionStitcher(store)

    @staticmethod
    def _validate(model: Type[EventT], payload: Any, kind: str) -> EventT:
        if isinstance(payload, model):
            return payload
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise InvalidEventError.from_validation_error(kind, e) from e

    def collect(self, event: CollectEvent | Mapping[str, Any], client_ip: Optional[str] = None) -> CollectResult:
        """
        Record a page view.

        Args:
            event: CollectEvent or a raw mapping to validate
            client_ip: Client address for geo enrichment of a new session

        Returns:
            CollectResult with the session id the client should send next time

        Raises:
            InvalidEventError: If the event fails validation
            StorageError: If the event store fails
        """
        event = self._validate(CollectEvent, event, "collect")
        now = self.clock()

        session = self.stitcher.resolve(event.session_id, event.visitor_id, now)
        new_session = session is None
        if session is None:
            geo = self.geo.lookup(client_ip)
            session = self.stitcher.open_session(event, geo, now)
        else:
            self.stitcher.continue_session(session, event.path, now)

        page_view = PageView(
            session_id=session.id,
            path=event.path,
            title=event.title,
            referrer=event.referrer,
            timestamp=now,
        )
        try:
            self.store.create_page_view(page_view)
        except StorageError as e:
            logger.error(
                "Page view insert failed for session %s (path=%s): %s",
                session.id,
                event.path,
                e,
            )
            raise

        logger.debug(
            "Collected %s for session %s (new=%s)", event.path, session.id, new_session
        )
        return CollectResult(session_id=session.id, new_session=new_session)

    def heartbeat(self, event: HeartbeatEvent | Mapping[str, Any]) -> HeartbeatResult:
        """
        Refresh session liveness and page engagement.

        An unknown session id is reported as "not_found" rather than raised.
        So is a session closed by inactivity: the stale id is abandoned and
        its last-active time is left untouched.

        Raises:
            InvalidEventError: If the event fails validation
            StorageError: If the event store fails
        """
        event = self._validate(HeartbeatEvent, event, "heartbeat")
        now = self.clock()

        session = self.store.get_session(event.session_id)
        if session is None:
            logger.debug("Heartbeat for unknown session %s", event.session_id)
            return HeartbeatResult(status="not_found")
        if session.last_active_at < now - SESSION_TIMEOUT:
            logger.debug("Heartbeat for closed session %s", session.id)
            return HeartbeatResult(status="not_found")

        self.store.update_session_activity(
            session.id, now, _whole_seconds_since(session.started_at, now)
        )

        if event.scroll_depth is not None and event.path:
            page_view = self.store.find_latest_page_view(session.id, event.path)
            if page_view is not None:
                self.store.update_page_view_engagement(
                    page_view.id,
                    max(event.scroll_depth, page_view.scroll_depth or 0),
                    _whole_seconds_since(page_view.timestamp, now),
                )

        return HeartbeatResult(status="ok")
