# ==============================================================================
# Session Stitcher - Session Boundary Logic
# ==============================================================================
"""
Decides whether a page view continues an existing visit or starts a new one.

A visit stays open while events keep arriving within SESSION_TIMEOUT of the
previous one. The timeout check itself (is_open) is pure; the remaining
methods read and write through the injected EventStore so the same logic
runs against PostgreSQL or the in-memory store.

A stale or foreign session id is abandoned silently: the caller simply gets
None back from resolve() and opens a fresh session.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from webanalytics.base.repositories import EventStore
from webanalytics.core.models import CollectEvent, GeoLocation, Session
from webanalytics.core.traffic_sources import extract_referrer_domain

logger = logging.getLogger(__name__)

# Inactivity gap after which a new visit starts
SESSION_TIMEOUT = timedelta(minutes=30)


class SessionStitcher:
    """
    Session lookup and lifecycle against an event store.

    Usage:
        stitcher = SessionStitcher(store)
        session = stitcher.resolve(event.session_id, event.visitor_id, now)
        if session is None:
            session = stitcher.open_session(event, geo, now)
        else:
            stitcher.continue_session(session, event.path, now)
    """

    def __init__(self, store: EventStore):
        self.store = store

    @staticmethod
    def is_open(session: Optional[Session], visitor_id: str, now: datetime) -> bool:
        """
        Check whether a session can absorb a new event from visitor_id.

        The boundary is inclusive: a gap of exactly SESSION_TIMEOUT still
        continues the session.
        """
        if session is None:
            return False
        if session.visitor_id != visitor_id:
            return False
        return session.last_active_at >= now - SESSION_TIMEOUT

    def resolve(self, session_id: Optional[str], visitor_id: str, now: datetime) -> Optional[Session]:
        """
        Find the open session for a candidate id.

        Args:
            session_id: Candidate session id from the client, may be None
            visitor_id: Visitor the event belongs to
            now: Event time

        Returns:
            The open Session, or None when a new session is required
        """
        if not session_id:
            return None

        session = self.store.find_open_session(session_id, visitor_id, now - SESSION_TIMEOUT)
        if session is None:
            logger.debug("Session %s not open for visitor %s, starting new", session_id, visitor_id)
            return None
        return session

    def open_session(self, event: CollectEvent, geo: GeoLocation, now: datetime) -> Session:
        """Create and persist a new single-page session for event."""
        session = Session(
            visitor_id=event.visitor_id,
            entry_page=event.path,
            exit_page=event.path,
            started_at=now,
            last_active_at=now,
            duration=0,
            page_view_count=1,
            bounced=True,
            referrer=event.referrer,
            referrer_domain=extract_referrer_domain(event.referrer),
            utm_source=event.utm_source,
            utm_medium=event.utm_medium,
            utm_campaign=event.utm_campaign,
            device_type=event.device_type,
            browser=event.browser,
            browser_version=event.browser_version,
            os=event.os,
            os_version=event.os_version,
            screen_width=event.screen_width,
            screen_height=event.screen_height,
            language=event.language,
            **geo.model_dump(),
        )
        self.store.create_session(session)
        logger.debug("Opened session %s for visitor %s", session.id, session.visitor_id)
        return session

    def continue_session(self, session: Session, path: str, now: datetime) -> None:
        """
        Record another page view against an open session.

        The page count increment happens in the store as a single atomic
        update, so concurrent collects for one session never lose a count.
        """
        self.store.record_page_view_activity(session.id, path, now)
