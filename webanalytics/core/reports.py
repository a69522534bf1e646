# ==============================================================================
# Aggregate View Models
# ==============================================================================
"""
Pydantic models for the dashboard views produced by the aggregation engine.

Each view serializes with model_dump() for JSON output.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class SummaryStats(BaseModel):
    """Headline KPIs for a range, with change against the preceding period.

    Change fields are percentages rounded to one decimal and are None when
    there is no preceding period (range "all").
    """

    range: str
    visitors: int
    sessions: int
    page_views: int
    avg_duration: int = Field(description="Mean session duration in whole seconds")
    bounce_rate: float = Field(description="Percent of sessions that bounced")
    pages_per_session: float
    visitors_change: Optional[float] = None
    sessions_change: Optional[float] = None
    page_views_change: Optional[float] = None
    avg_duration_change: Optional[float] = None
    bounce_rate_change: Optional[float] = None
    pages_per_session_change: Optional[float] = None


class TimeSeriesPoint(BaseModel):
    time: str = Field(description="Bucket label: YYYY-MM-DDTHH:00 or YYYY-MM-DD")
    views: int
    sessions: int = Field(description="Distinct sessions seen in the bucket")


class TimeSeries(BaseModel):
    granularity: Literal["hour", "day"]
    points: list[TimeSeriesPoint]


class PageStats(BaseModel):
    path: str
    title: str
    views: int
    unique_sessions: int
    avg_time_on_page: int
    avg_scroll_depth: int
    bounce_rate: int = Field(description="Whole percent of this page's sessions that bounced")


class CityStats(BaseModel):
    name: str
    sessions: int
    visitors: int


class CountryStats(BaseModel):
    country: str
    country_code: str
    visitors: int
    sessions: int
    percentage: float
    avg_duration: int
    top_cities: list[CityStats]


class DistributionEntry(BaseModel):
    name: str
    count: int
    percentage: float


class DeviceBreakdown(BaseModel):
    devices: list[DistributionEntry]
    browsers: list[DistributionEntry]
    os: list[DistributionEntry]
    total: int


class SourceStats(BaseModel):
    name: str
    sessions: int
    visitors: int
    percentage: float


class ReferrerStats(BaseModel):
    domain: str
    sessions: int
    visitors: int
    percentage: float


class ReferrerBreakdown(BaseModel):
    sources: list[SourceStats]
    referrers: list[ReferrerStats]


class ActivePage(BaseModel):
    page: str
    sessions: int


class RealtimeStats(BaseModel):
    active_visitors: int
    active_sessions: int
    active_pages: list[ActivePage]
