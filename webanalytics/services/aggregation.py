# ==============================================================================
# Aggregation Engine
# ==============================================================================
"""
Read-only dashboard views over the event store.

Each view resolves its range selector against one "now", reads every row it
needs inside a single store snapshot, then hands the rows to a pure function
in core/aggregations.py. Views are independent: a failure in one raises a
StorageError for that call only.
"""

import logging
from datetime import datetime, tzinfo
from typing import Callable, Optional

from webanalytics.base import EventStore
from webanalytics.core import aggregations
from webanalytics.core.models import utcnow
from webanalytics.core.reports import (
    CountryStats,
    DeviceBreakdown,
    PageStats,
    RealtimeStats,
    ReferrerBreakdown,
    SummaryStats,
    TimeSeries,
)
from webanalytics.core.time_range import TimeRange, resolve_window, time_series_since

logger = logging.getLogger(__name__)

RangeArg = str | TimeRange | None


class AggregationEngine:
    """
    Computes the dashboard views.

    Args:
        store: Event store to read from
        tz: Reference timezone for "today" and time-series buckets
        clock: Returns the current timezone-aware time (default: UTC now)
        default_timeout: Statement timeout in seconds when a call passes none
    """

    def __init__(
        self,
        store: EventStore,
        tz: tzinfo,
        clock: Callable[[], datetime] = utcnow,
        default_timeout: Optional[float] = None,
    ):
        self.store = store
        self.tz = tz
        self.clock = clock
        self.default_timeout = default_timeout

    def _timeout(self, timeout: Optional[float]) -> Optional[float]:
        return self.default_timeout if timeout is None else timeout

    def summary(self, range: RangeArg = None, timeout: Optional[float] = None) -> SummaryStats:
        range_ = TimeRange.parse(range)
        window = resolve_window(range_, self.clock(), self.tz)

        with self.store.snapshot(self._timeout(timeout)):
            sessions = self.store.sessions_started_between(window.since)
            page_views = self.store.count_page_views_between(window.since)
            previous_sessions = None
            previous_page_views = 0
            if window.has_previous:
                previous_sessions = self.store.sessions_started_between(
                    window.previous_since, window.previous_until
                )
                previous_page_views = self.store.count_page_views_between(
                    window.previous_since, window.previous_until
                )

        logger.debug("Summary %s: %d sessions, %d page views", range_.value, len(sessions), page_views)
        return aggregations.summarize(
            range_.value, sessions, page_views, previous_sessions, previous_page_views
        )

    def time_series(self, range: RangeArg = None, timeout: Optional[float] = None) -> TimeSeries:
        range_ = TimeRange.parse(range)
        since = time_series_since(range_, self.clock(), self.tz)
        granularity = "hour" if range_ is TimeRange.TODAY else "day"

        with self.store.snapshot(self._timeout(timeout)):
            page_views = self.store.page_views_between(since)

        return aggregations.time_series(page_views, granularity, self.tz)

    def top_pages(
        self,
        range: RangeArg = None,
        limit: int = aggregations.DEFAULT_TOP_PAGES_LIMIT,
        timeout: Optional[float] = None,
    ) -> list[PageStats]:
        window = resolve_window(TimeRange.parse(range), self.clock(), self.tz)

        with self.store.snapshot(self._timeout(timeout)):
            page_views = self.store.page_views_between(window.since)

        return aggregations.top_pages(page_views, limit)

    def geography(self, range: RangeArg = None, timeout: Optional[float] = None) -> list[CountryStats]:
        window = resolve_window(TimeRange.parse(range), self.clock(), self.tz)

        with self.store.snapshot(self._timeout(timeout)):
            sessions = self.store.sessions_started_between(window.since)

        return aggregations.geography(sessions)

    def devices(self, range: RangeArg = None, timeout: Optional[float] = None) -> DeviceBreakdown:
        window = resolve_window(TimeRange.parse(range), self.clock(), self.tz)

        with self.store.snapshot(self._timeout(timeout)):
            sessions = self.store.sessions_started_between(window.since)

        return aggregations.device_breakdown(sessions)

    def referrers(self, range: RangeArg = None, timeout: Optional[float] = None) -> ReferrerBreakdown:
        window = resolve_window(TimeRange.parse(range), self.clock(), self.tz)

        with self.store.snapshot(self._timeout(timeout)):
            sessions = self.store.sessions_started_between(window.since)

        return aggregations.referrer_breakdown(sessions)

    def realtime(self, timeout: Optional[float] = None) -> RealtimeStats:
        """Active sessions over the trailing five minutes; not range based."""
        now = self.clock()

        with self.store.snapshot(self._timeout(timeout)):
            sessions = self.store.sessions_active_since(now - aggregations.REALTIME_WINDOW)

        return aggregations.realtime_activity(sessions, now)
