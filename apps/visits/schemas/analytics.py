"""Analytics dashboard response schemas."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from apps.visits.schemas.visits import CountryCount, DailyCount


class PageCount(BaseModel):
    """Visits per page path."""

    model_config = ConfigDict(extra="forbid")

    page_url: str
    visits: int


class SourceCount(BaseModel):
    """Visits per traffic source bucket."""

    model_config = ConfigDict(extra="forbid")

    source: str
    visits: int


class BrowserCount(BaseModel):
    """Visits per browser bucket."""

    model_config = ConfigDict(extra="forbid")

    browser: str
    count: int


class AnalyticsDebug(BaseModel):
    """Which sub-metrics succeeded; failed maps metric name to error class."""

    model_config = ConfigDict(extra="forbid")

    today_date: date
    succeeded: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)
    cached: bool = False


class AnalyticsResponse(BaseModel):
    """Response for GET /api/visits/analytics."""

    model_config = ConfigDict(extra="forbid")

    today_views: int = 0
    total_views: int = 0
    unique_visitors: int = 0
    new_visitors: int = 0
    returning_visitors: int = 0
    popular_pages: list[PageCount] = Field(default_factory=list)
    traffic_sources: list[SourceCount] = Field(default_factory=list)
    browser_stats: list[BrowserCount] = Field(default_factory=list)
    top_countries: list[CountryCount] = Field(default_factory=list)
    daily_trend: list[DailyCount] = Field(default_factory=list)
    avg_session_time: str = "0m 0s"
    period_days: int
    enhanced_tracking: bool = False
    debug_info: AnalyticsDebug
    generated_at: datetime
