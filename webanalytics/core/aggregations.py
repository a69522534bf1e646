# ==============================================================================
# Aggregation Algorithms - Pure Domain Logic
# ==============================================================================
"""
Pure aggregation functions behind the dashboard views.

Every function takes rows already read from the event store (plain Session
and PageView models) and returns a report model. No database, cache or
clock access happens here; "now" is passed in where a view needs it.

Rounding is half-up throughout so that 0.05 -> 0.1 and 2.5 -> 3.
"""

import math
from collections import Counter, defaultdict
from datetime import datetime, timedelta, tzinfo
from typing import Iterable, Literal, Sequence

from webanalytics.core.models import PageView, Session
from webanalytics.core.reports import (
    ActivePage,
    CityStats,
    CountryStats,
    DeviceBreakdown,
    DistributionEntry,
    PageStats,
    RealtimeStats,
    ReferrerBreakdown,
    ReferrerStats,
    SourceStats,
    SummaryStats,
    TimeSeries,
    TimeSeriesPoint,
)
from webanalytics.core.traffic_sources import categorize_traffic_source

# Realtime window is fixed and independent of the range selector
REALTIME_WINDOW = timedelta(minutes=5)
REALTIME_TOP_PAGES = 10

DEFAULT_TOP_PAGES_LIMIT = 20
TOP_REFERRERS_LIMIT = 20
MAX_COUNTRIES = 50
MAX_CITIES_PER_COUNTRY = 5

UNKNOWN_COUNTRY_CODE = "XX"
UNKNOWN_COUNTRY = "Unknown"
UNKNOWN_VALUE = "unknown"

Granularity = Literal["hour", "day"]


# ==============================================================================
# Numeric Helpers
# ==============================================================================


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with ties going up (towards +infinity)."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def percentage(part: int, total: int) -> float:
    """Share of total as a percent with one decimal; 0.0 for an empty total."""
    if total <= 0:
        return 0.0
    return round_half_up(part / total * 100, 1)


def percent_change(current: float, previous: float) -> float:
    """
    Percentage change from previous to current, one decimal.

    A zero previous value yields 100.0 when current is positive and 0.0
    otherwise, so the result is always defined.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round_half_up((current - previous) / previous * 100, 1)


def _mean_int(total: float, count: int) -> int:
    return int(round_half_up(total / count)) if count else 0


# ==============================================================================
# Summary
# ==============================================================================


def session_metrics(sessions: Sequence[Session]) -> dict:
    """Per-period KPIs derived from session rows alone."""
    total = len(sessions)
    if total == 0:
        return {
            "visitors": 0,
            "sessions": 0,
            "avg_duration": 0,
            "bounce_rate": 0.0,
            "pages_per_session": 0.0,
        }
    return {
        "visitors": len({s.visitor_id for s in sessions}),
        "sessions": total,
        "avg_duration": _mean_int(sum(s.duration for s in sessions), total),
        "bounce_rate": percentage(sum(1 for s in sessions if s.bounced), total),
        "pages_per_session": round_half_up(sum(s.page_view_count for s in sessions) / total, 1),
    }


def summarize(
    range_name: str,
    sessions: Sequence[Session],
    page_views: int,
    previous_sessions: Sequence[Session] | None = None,
    previous_page_views: int = 0,
) -> SummaryStats:
    """
    Build summary KPIs.

    Args:
        range_name: Range selector value, echoed in the result
        sessions: Sessions started in the current period
        page_views: Page views in the current period
        previous_sessions: Sessions of the preceding period, or None to skip
            the comparison (range "all")
        previous_page_views: Page views of the preceding period
    """
    current = session_metrics(sessions)
    stats = SummaryStats(range=range_name, page_views=page_views, **current)

    if previous_sessions is None:
        return stats

    previous = session_metrics(previous_sessions)
    previous["page_views"] = previous_page_views
    current["page_views"] = page_views
    changes = {f"{key}_change": percent_change(current[key], previous[key]) for key in current}
    return stats.model_copy(update=changes)


# ==============================================================================
# Time Series
# ==============================================================================


def bucket_label(timestamp: datetime, granularity: Granularity, tz: tzinfo) -> str:
    """
    Truncate a timestamp to its bucket in the reference timezone.

    Labels are local wall-clock time, so the repeated hour at a DST fall-back
    covers two real hours.
    """
    local = timestamp.astimezone(tz)
    if granularity == "hour":
        return local.strftime("%Y-%m-%dT%H:00")
    return local.strftime("%Y-%m-%d")


def time_series(page_views: Iterable[PageView], granularity: Granularity, tz: tzinfo) -> TimeSeries:
    """
    Bucket page views by hour or day.

    Each bucket counts views and distinct session ids. Empty buckets are not
    emitted; consumers needing a dense series fill the gaps themselves.
    """
    views: Counter[str] = Counter()
    sessions: dict[str, set[str]] = defaultdict(set)

    for pv in page_views:
        key = bucket_label(pv.timestamp, granularity, tz)
        views[key] += 1
        sessions[key].add(pv.session_id)

    points = [
        TimeSeriesPoint(time=key, views=views[key], sessions=len(sessions[key]))
        for key in sorted(views)
    ]
    return TimeSeries(granularity=granularity, points=points)


# ==============================================================================
# Top Pages
# ==============================================================================


def top_pages(page_views: Sequence[PageView], limit: int = DEFAULT_TOP_PAGES_LIMIT) -> list[PageStats]:
    """
    Per-path engagement, most viewed first.

    Page bounce rate: among the sessions that viewed a path, the share with
    exactly one in-range page view across all paths. This is independent of
    the per-session bounced flag used by the summary.
    """
    views_per_session: Counter[str] = Counter(pv.session_id for pv in page_views)

    pages: dict[str, dict] = {}
    for pv in page_views:
        page = pages.setdefault(
            pv.path,
            {
                "title": pv.path,
                "views": 0,
                "time_total": 0,
                "time_count": 0,
                "scroll_total": 0,
                "scroll_count": 0,
                "sessions": set(),
            },
        )
        page["views"] += 1
        if pv.title:
            page["title"] = pv.title
        if pv.time_on_page is not None:
            page["time_total"] += pv.time_on_page
            page["time_count"] += 1
        if pv.scroll_depth is not None:
            page["scroll_total"] += pv.scroll_depth
            page["scroll_count"] += 1
        page["sessions"].add(pv.session_id)

    results = []
    for path, page in pages.items():
        unique_sessions = len(page["sessions"])
        bounced = sum(1 for sid in page["sessions"] if views_per_session[sid] == 1)
        results.append(
            PageStats(
                path=path,
                title=page["title"],
                views=page["views"],
                unique_sessions=unique_sessions,
                avg_time_on_page=_mean_int(page["time_total"], page["time_count"]),
                avg_scroll_depth=_mean_int(page["scroll_total"], page["scroll_count"]),
                bounce_rate=_mean_int(bounced * 100, unique_sessions),
            )
        )

    results.sort(key=lambda p: p.views, reverse=True)
    return results[: max(limit, 0)]


# ==============================================================================
# Geography
# ==============================================================================


def geography(sessions: Sequence[Session]) -> list[CountryStats]:
    """Sessions grouped by country code, with the top cities of each country."""
    total = len(sessions)
    countries: dict[str, dict] = {}

    for s in sessions:
        code = s.country_code or UNKNOWN_COUNTRY_CODE
        country = countries.setdefault(
            code,
            {
                "country": s.country or UNKNOWN_COUNTRY,
                "visitors": set(),
                "sessions": 0,
                "duration": 0,
                "cities": {},
            },
        )
        country["visitors"].add(s.visitor_id)
        country["sessions"] += 1
        country["duration"] += s.duration

        if s.city:
            city = country["cities"].setdefault(s.city, {"sessions": 0, "visitors": set()})
            city["sessions"] += 1
            city["visitors"].add(s.visitor_id)

    results = []
    for code, c in countries.items():
        cities = sorted(
            (
                CityStats(name=name, sessions=data["sessions"], visitors=len(data["visitors"]))
                for name, data in c["cities"].items()
            ),
            key=lambda city: city.sessions,
            reverse=True,
        )
        results.append(
            CountryStats(
                country=c["country"],
                country_code=code,
                visitors=len(c["visitors"]),
                sessions=c["sessions"],
                percentage=percentage(c["sessions"], total),
                avg_duration=_mean_int(c["duration"], c["sessions"]),
                top_cities=cities[:MAX_CITIES_PER_COUNTRY],
            )
        )

    results.sort(key=lambda c: c.sessions, reverse=True)
    return results[:MAX_COUNTRIES]


# ==============================================================================
# Devices
# ==============================================================================


def distribution(values: Iterable[str | None], total: int) -> list[DistributionEntry]:
    """Frequency distribution, most common first; missing values count as unknown."""
    counts = Counter(value or UNKNOWN_VALUE for value in values)
    entries = [
        DistributionEntry(name=name, count=count, percentage=percentage(count, total))
        for name, count in counts.items()
    ]
    entries.sort(key=lambda e: e.count, reverse=True)
    return entries


def device_breakdown(sessions: Sequence[Session]) -> DeviceBreakdown:
    """Device type, browser and OS distributions over sessions."""
    total = len(sessions)
    return DeviceBreakdown(
        devices=distribution((s.device_type for s in sessions), total),
        browsers=distribution((s.browser for s in sessions), total),
        os=distribution((s.os for s in sessions), total),
        total=total,
    )


# ==============================================================================
# Referrers
# ==============================================================================


def referrer_breakdown(sessions: Sequence[Session]) -> ReferrerBreakdown:
    """Traffic-source categories plus the top raw referrer domains."""
    total = len(sessions)
    sources: dict[str, dict] = {}
    referrers: dict[str, dict] = {}

    for s in sessions:
        source = categorize_traffic_source(s.referrer_domain, s.utm_source).value
        bucket = sources.setdefault(source, {"sessions": 0, "visitors": set()})
        bucket["sessions"] += 1
        bucket["visitors"].add(s.visitor_id)

        if s.referrer_domain:
            bucket = referrers.setdefault(s.referrer_domain, {"sessions": 0, "visitors": set()})
            bucket["sessions"] += 1
            bucket["visitors"].add(s.visitor_id)

    source_stats = [
        SourceStats(
            name=name,
            sessions=data["sessions"],
            visitors=len(data["visitors"]),
            percentage=percentage(data["sessions"], total),
        )
        for name, data in sources.items()
    ]
    source_stats.sort(key=lambda s: s.sessions, reverse=True)

    referrer_stats = [
        ReferrerStats(
            domain=domain,
            sessions=data["sessions"],
            visitors=len(data["visitors"]),
            percentage=percentage(data["sessions"], total),
        )
        for domain, data in referrers.items()
    ]
    referrer_stats.sort(key=lambda r: r.sessions, reverse=True)

    return ReferrerBreakdown(sources=source_stats, referrers=referrer_stats[:TOP_REFERRERS_LIMIT])


# ==============================================================================
# Realtime
# ==============================================================================


def realtime_activity(sessions: Iterable[Session], now: datetime) -> RealtimeStats:
    """
    Activity over the trailing five minutes.

    A session is active when last_active_at >= now - 5 minutes. Pages are
    counted by each session's current exit page.
    """
    cutoff = now - REALTIME_WINDOW
    active = [s for s in sessions if s.last_active_at >= cutoff]

    pages = Counter(s.exit_page or "/" for s in active)
    top = sorted(pages.items(), key=lambda item: item[1], reverse=True)[:REALTIME_TOP_PAGES]

    return RealtimeStats(
        active_visitors=len({s.visitor_id for s in active}),
        active_sessions=len(active),
        active_pages=[ActivePage(page=page, sessions=count) for page, count in top],
    )
