"""Visit counter response schemas: record, stats, history."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CountryCount(BaseModel):
    """Visits per country."""

    model_config = ConfigDict(extra="forbid")

    country: str
    count: int


class DailyCount(BaseModel):
    """One daily summary row."""

    model_config = ConfigDict(extra="forbid")

    visit_date: date
    daily_count: int


class RecordVisitResponse(BaseModel):
    """Response for POST /api/visits/record. Serialized with camelCase keys."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    daily_views: int
    lifetime_views: int
    visit_date: date
    country: str
    city: str
    timestamp: datetime


class StatsResponse(BaseModel):
    """Response for GET /api/visits/stats. Serialized with camelCase keys except enhanced_tracking."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    today_views: int = 0
    lifetime_views: int = 0
    visit_date: date
    last_updated: datetime | None = None
    top_countries: list[CountryCount] = Field(default_factory=list)
    top_country: str = "Unknown"
    recent_activity: list[DailyCount] = Field(default_factory=list)
    avg_session_time: str = "0m 0s"
    total_countries: int = 0
    enhanced_tracking: bool = Field(False, alias="enhanced_tracking")
    failed_metrics: list[str] = Field(default_factory=list)


class HistoryRow(BaseModel):
    """Raw daily summary row for history."""

    model_config = ConfigDict(extra="forbid")

    visit_date: date
    daily_count: int
    created_at: datetime | None = None


class HistoryResponse(BaseModel):
    """Response for GET /api/visits/history. Serialized with camelCase keys."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    history: list[HistoryRow] = Field(default_factory=list)
    total_visits: int = 0
    total_days: int = 0
    records_shown: int = 0
