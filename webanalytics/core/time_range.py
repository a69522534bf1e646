# ==============================================================================
# Range Selector
# ==============================================================================
"""
Time windows for the aggregation views.

A range selector is one of "today", "7d", "30d" or "all". Windows are
computed against an injected "now" and a single reference timezone, which
decides where "today" starts and where time-series buckets fall.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Time series for "all" only covers the trailing 90 days
TIME_SERIES_MAX_DAYS = 90


class TimeRange(str, Enum):
    """Range selector values accepted by every aggregation view."""

    TODAY = "today"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    ALL = "all"

    @classmethod
    def parse(cls, value: "str | TimeRange | None") -> "TimeRange":
        """
        Parse a range selector, defaulting to 7d.

        Unrecognized values also fall back to 7d, matching the dashboard
        behaviour of treating anything unknown as the default window.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.LAST_7_DAYS
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.LAST_7_DAYS


@dataclass(frozen=True)
class RangeWindow:
    """Resolved bounds for a range selector.

    The current period is [since, now]. The previous period, when present,
    is [previous_since, previous_until).
    """

    range: TimeRange
    since: datetime
    previous_since: Optional[datetime] = None
    previous_until: Optional[datetime] = None

    @property
    def has_previous(self) -> bool:
        return self.previous_since is not None and self.previous_until is not None


def get_zone(name: str) -> tzinfo:
    """Resolve a reference timezone name ("UTC", "Europe/Berlin", ...)."""
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def _ensure_aware(now: datetime) -> datetime:
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    return now


def local_midnight(now: datetime, tz: tzinfo, days_back: int = 0) -> datetime:
    """Start of the local calendar day containing now, optionally shifted back."""
    local_date = _ensure_aware(now).astimezone(tz).date() - timedelta(days=days_back)
    return datetime.combine(local_date, time.min, tzinfo=tz)


def resolve_window(range_: TimeRange, now: datetime, tz: tzinfo) -> RangeWindow:
    """
    Resolve a range selector into concrete bounds.

    Args:
        range_: Range selector
        now: Current time (timezone-aware)
        tz: Reference timezone for "today"

    Returns:
        RangeWindow; "all" has no previous period
    """
    now = _ensure_aware(now)

    match range_:
        case TimeRange.TODAY:
            since = local_midnight(now, tz)
            return RangeWindow(range_, since, local_midnight(now, tz, days_back=1), since)
        case TimeRange.LAST_30_DAYS:
            since = now - timedelta(days=30)
            return RangeWindow(range_, since, since - timedelta(days=30), since)
        case TimeRange.ALL:
            return RangeWindow(range_, EPOCH)
        case _:
            since = now - timedelta(days=7)
            return RangeWindow(range_, since, since - timedelta(days=7), since)


def time_series_since(range_: TimeRange, now: datetime, tz: tzinfo) -> datetime:
    """Start of the time-series window; "all" is capped to the trailing 90 days."""
    if range_ is TimeRange.ALL:
        return _ensure_aware(now) - timedelta(days=TIME_SERIES_MAX_DAYS)
    return resolve_window(range_, now, tz).since
