"""visits model. One row per calendar date holding the authoritative visit count."""

from datetime import date, datetime

from sqlalchemy import BigInteger, Date, DateTime, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from apps.visits.models.base import Base


class DailySummary(Base):
    """Per-day visit counter. daily_count only grows, via the atomic upsert in repo."""

    __tablename__ = "visits"
    __table_args__ = (UniqueConstraint("visit_date", name="uq_visits_visit_date"),)

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    visit_date: Mapped[date] = mapped_column(Date, nullable=False)
    daily_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("1"))
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
