"""Window filter helpers: inclusive visit_date >= since."""

from datetime import date

import pytest

from apps.visits.models import DailySummary, VisitLog
from apps.visits.repositories.window_filters import (
    select_daily_summaries_since,
    since_where,
)


def test_since_where_is_inclusive_on_visit_date() -> None:
    clause = since_where(VisitLog, date(2026, 3, 1))
    assert clause.left.key == "visit_date"
    assert clause.operator.__name__ == "ge"


def test_since_where_rejects_model_without_visit_date() -> None:
    class NoDate:
        pass

    with pytest.raises(ValueError):
        since_where(NoDate, date(2026, 3, 1))


def test_select_daily_summaries_targets_visits_table() -> None:
    stmt = select_daily_summaries_since(date(2026, 3, 1))
    assert stmt.get_final_froms()[0].name == DailySummary.__tablename__
    assert "visit_date >=" in str(stmt.whereclause)
