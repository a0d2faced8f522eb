"""Health check response schemas."""

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Health check response. ok is True only when storage is reachable and all tables exist."""

    model_config = ConfigDict(extra="forbid")

    ok: bool
    version: str
    time: str
    database: str
    tables: str
    missing_tables: list[str] = Field(default_factory=list)
