# ==============================================================================
# Analytics Domain Models
# ==============================================================================
"""
Pydantic models for ingestion events, sessions and page views.

These models are used for:
- Validating collect/heartbeat input before any store access
- Moving rows between the event store and the domain logic
- Type safety throughout the application

This module is part of the core domain layer and has no external dependencies
beyond Pydantic.
"""

import uuid
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate an opaque unique row identifier."""
    return uuid.uuid4().hex


# ==============================================================================
# Ingestion Input
# ==============================================================================


class CollectEvent(BaseModel):
    """
    A page view reported by the tracking client.

    Attributes:
        visitor_id: Stable pseudonymous visitor identifier (required)
        session_id: Session id returned by a previous collect, if any
        path: Page path (required)
    """

    visitor_id: str = Field(..., min_length=1, description="Visitor identifier")
    session_id: Optional[str] = Field(None, description="Candidate session id")
    path: str = Field(..., min_length=1, description="Page path")
    title: Optional[str] = None
    referrer: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    device_type: Optional[str] = None
    browser: Optional[str] = None
    browser_version: Optional[str] = None
    os: Optional[str] = None
    os_version: Optional[str] = None
    screen_width: Optional[int] = Field(None, ge=0)
    screen_height: Optional[int] = Field(None, ge=0)
    language: Optional[str] = None

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}


class HeartbeatEvent(BaseModel):
    """A liveness/engagement signal for an existing session."""

    session_id: str = Field(..., min_length=1, description="Session identifier")
    scroll_depth: Optional[int] = Field(None, ge=0, le=100, description="Scroll depth percent")
    path: Optional[str] = Field(None, description="Path the scroll depth applies to")

    model_config = {"str_strip_whitespace": True}


class CollectResult(BaseModel):
    """Outcome of a collect call."""

    session_id: str
    new_session: bool


class HeartbeatResult(BaseModel):
    """Outcome of a heartbeat call. Unknown sessions are reported, not raised."""

    status: Literal["ok", "not_found"]

    @property
    def found(self) -> bool:
        return self.status == "ok"


# ==============================================================================
# Enrichment
# ==============================================================================


class GeoLocation(BaseModel):
    """Best-effort geography for a client IP. Every field is optional."""

    country: Optional[str] = None
    country_code: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        """True when the lookup produced no data at all."""
        return all(value is None for value in self.model_dump().values())


# ==============================================================================
# Stored Entities
# ==============================================================================


class Session(BaseModel):
    """
    One continuous visit by one visitor.

    A visit stays open while events keep arriving within the inactivity
    timeout of each other. Geography is written once, at creation.
    """

    id: str = Field(default_factory=new_id)
    visitor_id: str
    entry_page: str
    exit_page: Optional[str] = None
    started_at: datetime = Field(default_factory=utcnow)
    last_active_at: datetime = Field(default_factory=utcnow)
    duration: int = Field(default=0, ge=0, description="Seconds since started_at")
    page_view_count: int = Field(default=1, ge=0)
    bounced: bool = True

    referrer: Optional[str] = None
    referrer_domain: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None

    device_type: Optional[str] = None
    browser: Optional[str] = None
    browser_version: Optional[str] = None
    os: Optional[str] = None
    os_version: Optional[str] = None
    screen_width: Optional[int] = None
    screen_height: Optional[int] = None
    language: Optional[str] = None

    country: Optional[str] = None
    country_code: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = None

    def to_db_record(self) -> dict:
        """Convert session to database record format."""
        return self.model_dump()


class PageView(BaseModel):
    """One page load or in-session navigation, owned by its session."""

    id: str = Field(default_factory=new_id)
    session_id: str
    path: str
    title: Optional[str] = None
    referrer: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    time_on_page: Optional[int] = Field(default=None, ge=0)
    scroll_depth: Optional[int] = Field(default=None, ge=0, le=100)

    def to_db_record(self) -> dict:
        """Convert page view to database record format."""
        return self.model_dump()


SESSION_COLUMNS: tuple[str, ...] = tuple(Session.model_fields)
PAGE_VIEW_COLUMNS: tuple[str, ...] = tuple(PageView.model_fields)
