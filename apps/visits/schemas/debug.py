"""Debug endpoint schemas (development/test only)."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class VisitLogOut(BaseModel):
    """One visit_logs row."""

    model_config = ConfigDict(from_attributes=True, extra="forbid")

    id: int
    ip_address: str | None = None
    country: str | None = None
    city: str | None = None
    region: str | None = None
    user_agent: str | None = None
    referrer: str | None = None
    page_url: str | None = None
    visit_date: date
    session_duration: int
    timezone: str | None = None
    screen_resolution: str | None = None
    viewport_size: str | None = None
    is_final: bool
    created_at: datetime


class DebugLogsResponse(BaseModel):
    """Response for GET /api/visits/debug/logs."""

    model_config = ConfigDict(extra="forbid")

    data: list[VisitLogOut] = Field(default_factory=list)
    count: int = 0


class RouteInfo(BaseModel):
    """One registered route."""

    model_config = ConfigDict(extra="forbid")

    path: str
    methods: list[str]


class DebugRoutesResponse(BaseModel):
    """Response for GET /api/visits/debug/routes."""

    model_config = ConfigDict(extra="forbid")

    available_routes: list[RouteInfo] = Field(default_factory=list)
    total_routes: int = 0
    base_path: str
    server_time: str
