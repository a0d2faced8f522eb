"""Request schemas for visit endpoints. Every recognized field is declared with its default."""

from pydantic import BaseModel, ConfigDict, Field


class RecordVisitRequest(BaseModel):
    """Request body for POST /api/visits/record. The whole body is optional.

    Unknown keys are ignored so older tracker builds keep working.
    """

    model_config = ConfigDict(extra="ignore")

    page_url: str | None = Field("/", description="Requested page path; '/' when missing")
    session_duration: float | None = Field(0, ge=0, description="Seconds on page; floored to an int")
    is_final: bool = Field(False, description="True on the end-of-session beacon")
    screen_resolution: str | None = Field(None, description="e.g. 1920x1080")
    viewport_size: str | None = Field(None, description="e.g. 1280x720")
    timezone: str | None = Field(None, description="Browser timezone; geo timezone when missing")
