"""SQLAlchemy models for the visit counter and the visit event log."""

from apps.visits.models.base import Base
from apps.visits.models.daily_summary import DailySummary
from apps.visits.models.visit_log import VisitLog

__all__ = [
    "Base",
    "DailySummary",
    "VisitLog",
]
