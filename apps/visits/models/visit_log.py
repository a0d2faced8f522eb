"""visit_logs model. Append-only page-view events."""

from datetime import date, datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Date, DateTime, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from apps.visits.models.base import Base


class VisitLog(Base):
    """One recorded page view. Never updated; visit_date is derived from created_at at insert."""

    __tablename__ = "visit_logs"
    __table_args__ = (
        Index("ix_visit_logs_visit_date", "visit_date"),
        Index("ix_visit_logs_ip_address", "ip_address"),
        Index("ix_visit_logs_country", "country"),
        CheckConstraint("session_duration >= 0", name="ck_visit_logs_session_duration"),
    )

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)
    page_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    visit_date: Mapped[date] = mapped_column(Date, nullable=False)
    session_duration: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    timezone: Mapped[str | None] = mapped_column(String(100), nullable=True)
    screen_resolution: Mapped[str | None] = mapped_column(String(20), nullable=True)
    viewport_size: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_final: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
