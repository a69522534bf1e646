# ==============================================================================
# Core Domain Logic
# ==============================================================================
"""
Domain logic for the analytics engine.

This module contains:
- Domain models (CollectEvent, HeartbeatEvent, Session, PageView, GeoLocation)
- Report models for the aggregation views
- Session boundary logic (SessionStitcher)
- Pure aggregation functions and the traffic-source taxonomy
- Range selector resolution

Everything except SessionStitcher is free of I/O and unit-testable as is.
"""

from webanalytics.core.errors import (
    AnalyticsError,
    InvalidEventError,
    QueryTimeoutError,
    StorageError,
)
from webanalytics.core.models import (
    CollectEvent,
    CollectResult,
    GeoLocation,
    HeartbeatEvent,
    HeartbeatResult,
    PageView,
    Session,
)
from webanalytics.core.session_stitcher import SESSION_TIMEOUT, SessionStitcher
from webanalytics.core.time_range import TimeRange
from webanalytics.core.traffic_sources import TrafficSource, categorize_traffic_source

__all__ = [
    "AnalyticsError",
    "CollectEvent",
    "CollectResult",
    "GeoLocation",
    "HeartbeatEvent",
    "HeartbeatResult",
    "InvalidEventError",
    "PageView",
    "QueryTimeoutError",
    "SESSION_TIMEOUT",
    "Session",
    "SessionStitcher",
    "StorageError",
    "TimeRange",
    "TrafficSource",
    "categorize_traffic_source",
]
