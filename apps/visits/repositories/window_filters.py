"""Date-window SQL helpers. All windowed aggregation queries MUST use these.

Provides:
  - since_where(model, since): WHERE model.visit_date >= since
  - select_daily_summaries_since(since): Select on visits with the window filter applied
"""

from datetime import date

from sqlalchemy import BinaryExpression, Select, select

from apps.visits.models.daily_summary import DailySummary


def since_where(model: type, since: date) -> BinaryExpression[bool]:
    """Return WHERE clause: model.visit_date >= since (inclusive)."""
    col = getattr(model, "visit_date", None)
    if col is None:
        raise ValueError(f"Model {model.__name__} has no visit_date column")
    return col >= since


def select_daily_summaries_since(since: date) -> Select[tuple[DailySummary]]:
    """Select from visits with window filter. Add .where() for further filters."""
    return select(DailySummary).where(since_where(DailySummary, since))
