"""Repository layer for the visit counter and the visit event log.

RULE: Repo is the ONLY place allowed to run DB reads/writes (session.execute, get_db).
All windowed queries MUST use window_filters (since_where / select_daily_summaries_since).

The daily counter is only ever changed through upsert_daily_summary, a single
INSERT ... ON CONFLICT DO UPDATE statement; never read-then-write it.
"""

from datetime import date, datetime
from typing import Any

from sqlalchemy import func, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from apps.visits.db import get_db
from apps.visits.models.daily_summary import DailySummary
from apps.visits.models.visit_log import VisitLog
from apps.visits.repositories.window_filters import (
    select_daily_summaries_since,
    since_where,
)

UNKNOWN = "Unknown"


class UnsupportedDialectError(RuntimeError):
    """Raised when the bound database has no INSERT ... ON CONFLICT support in SQLAlchemy."""

    pass


def _insert_for(session: Session):
    """Dialect-specific insert() that supports on_conflict_do_update."""
    name = session.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise UnsupportedDialectError(f"Atomic upsert not supported for dialect {name!r}")


def ping() -> None:
    """Run SELECT 1. Raises if storage is unreachable."""
    with get_db() as session:
        session.execute(text("SELECT 1"))


# ---------------------------------------------------------------------------
# Write path
# ---------------------------------------------------------------------------


def insert_visit_log(record: dict[str, Any]) -> None:
    """Append one visit_logs row. Keys mirror VisitLog columns."""
    with get_db() as session:
        session.add(VisitLog(**record))


def upsert_daily_summary(
    visit_date: date,
    ip_address: str | None,
    user_agent: str | None,
    now: datetime,
) -> int:
    """Atomically create today's row with count 1 or increment it. Returns the day's count
    as seen inside the same transaction (includes this increment)."""
    with get_db() as session:
        insert = _insert_for(session)
        stmt = insert(DailySummary).values(
            visit_date=visit_date,
            daily_count=1,
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DailySummary.visit_date],
            set_={
                "daily_count": DailySummary.daily_count + 1,
                "ip_address": stmt.excluded.ip_address,
                "user_agent": stmt.excluded.user_agent,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        session.execute(stmt)
        count = session.execute(
            select(DailySummary.daily_count).where(DailySummary.visit_date == visit_date)
        ).scalar_one()
        return int(count)


# ---------------------------------------------------------------------------
# Daily summary reads
# ---------------------------------------------------------------------------


def get_daily_summary(visit_date: date) -> dict[str, Any] | None:
    """Return {visit_date, daily_count, created_at, updated_at} for the date, or None."""
    stmt = select(
        DailySummary.visit_date,
        DailySummary.daily_count,
        DailySummary.created_at,
        DailySummary.updated_at,
    ).where(DailySummary.visit_date == visit_date)
    with get_db() as session:
        row = session.execute(stmt).first()
        if not row:
            return None
        return {
            "visit_date": row[0],
            "daily_count": int(row[1] or 0),
            "created_at": row[2],
            "updated_at": row[3],
        }


def get_daily_count(visit_date: date) -> int:
    """Return the count for the date, 0 if no row exists."""
    stmt = select(DailySummary.daily_count).where(DailySummary.visit_date == visit_date)
    with get_db() as session:
        return int(session.execute(stmt).scalar() or 0)


def get_lifetime_total() -> int:
    """SUM(daily_count) over every row. Full-table aggregate: O(number of days stored)."""
    stmt = select(func.coalesce(func.sum(DailySummary.daily_count), 0))
    with get_db() as session:
        return int(session.execute(stmt).scalar() or 0)


def get_recent_activity(since: date, limit: int) -> list[dict[str, Any]]:
    """Return daily rows since date, newest first."""
    stmt = (
        select_daily_summaries_since(since)
        .with_only_columns(DailySummary.visit_date, DailySummary.daily_count)
        .order_by(DailySummary.visit_date.desc())
        .limit(limit)
    )
    with get_db() as session:
        rows = session.execute(stmt).all()
        return [{"visit_date": r[0], "daily_count": int(r[1])} for r in rows]


def get_daily_trend(since: date) -> list[dict[str, Any]]:
    """Return daily rows since date, oldest first."""
    stmt = (
        select_daily_summaries_since(since)
        .with_only_columns(DailySummary.visit_date, DailySummary.daily_count)
        .order_by(DailySummary.visit_date.asc())
    )
    with get_db() as session:
        rows = session.execute(stmt).all()
        return [{"visit_date": r[0], "daily_count": int(r[1])} for r in rows]


def get_history(since: date, limit: int) -> list[dict[str, Any]]:
    """Return raw daily rows since date, newest first, at most limit."""
    stmt = (
        select_daily_summaries_since(since)
        .with_only_columns(DailySummary.visit_date, DailySummary.daily_count, DailySummary.created_at)
        .order_by(DailySummary.visit_date.desc())
        .limit(limit)
    )
    with get_db() as session:
        rows = session.execute(stmt).all()
        return [{"visit_date": r[0], "daily_count": int(r[1]), "created_at": r[2]} for r in rows]


def get_history_totals() -> tuple[int, int]:
    """Return (total visits, number of days with a row)."""
    stmt = select(
        func.coalesce(func.sum(DailySummary.daily_count), 0),
        func.count(DailySummary.id),
    )
    with get_db() as session:
        row = session.execute(stmt).one()
        return int(row[0] or 0), int(row[1] or 0)


# ---------------------------------------------------------------------------
# Visit log aggregations
# ---------------------------------------------------------------------------


def count_unique_ips(since: date) -> int:
    """COUNT(DISTINCT ip_address) within the window."""
    stmt = select(func.count(func.distinct(VisitLog.ip_address))).where(since_where(VisitLog, since))
    with get_db() as session:
        return int(session.execute(stmt).scalar() or 0)


def get_visitor_first_seen(since: date) -> list[dict[str, Any]]:
    """Per IP seen in the window: visit_count within the window and first_visit over all time."""
    in_window = (
        select(
            VisitLog.ip_address.label("ip_address"),
            func.count(VisitLog.id).label("visit_count"),
        )
        .where(since_where(VisitLog, since))
        .group_by(VisitLog.ip_address)
        .subquery()
    )
    first_seen = (
        select(
            VisitLog.ip_address.label("ip_address"),
            func.min(VisitLog.created_at).label("first_visit"),
        )
        .group_by(VisitLog.ip_address)
        .subquery()
    )
    stmt = select(
        in_window.c.ip_address,
        in_window.c.visit_count,
        first_seen.c.first_visit,
    ).join(first_seen, first_seen.c.ip_address.is_not_distinct_from(in_window.c.ip_address))
    with get_db() as session:
        rows = session.execute(stmt).all()
        return [{"ip_address": r[0], "visit_count": int(r[1]), "first_visit": r[2]} for r in rows]


def get_popular_pages(since: date, limit: int) -> list[dict[str, Any]]:
    """Top page_url values by visit count, excluding null/empty."""
    visits = func.count(VisitLog.id).label("visits")
    stmt = (
        select(VisitLog.page_url, visits)
        .where(
            since_where(VisitLog, since),
            VisitLog.page_url.is_not(None),
            VisitLog.page_url != "",
        )
        .group_by(VisitLog.page_url)
        .order_by(visits.desc(), VisitLog.page_url.asc())
        .limit(limit)
    )
    with get_db() as session:
        rows = session.execute(stmt).all()
        return [{"page_url": r[0], "visits": int(r[1])} for r in rows]


def get_top_countries(since: date, limit: int) -> list[dict[str, Any]]:
    """Top countries by visit count, excluding null, empty and the Unknown sentinel."""
    count = func.count(VisitLog.id).label("count")
    stmt = (
        select(VisitLog.country, count)
        .where(
            since_where(VisitLog, since),
            VisitLog.country.is_not(None),
            VisitLog.country != "",
            VisitLog.country != UNKNOWN,
        )
        .group_by(VisitLog.country)
        .order_by(count.desc(), VisitLog.country.asc())
        .limit(limit)
    )
    with get_db() as session:
        rows = session.execute(stmt).all()
        return [{"country": r[0], "count": int(r[1])} for r in rows]


def get_referrer_counts(since: date) -> list[tuple[str | None, int]]:
    """(referrer, count) pairs within the window. Bucketing happens in the service layer."""
    stmt = (
        select(VisitLog.referrer, func.count(VisitLog.id))
        .where(since_where(VisitLog, since))
        .group_by(VisitLog.referrer)
    )
    with get_db() as session:
        return [(r[0], int(r[1])) for r in session.execute(stmt).all()]


def get_user_agent_counts(since: date) -> list[tuple[str, int]]:
    """(user_agent, count) pairs within the window, user_agent not null."""
    stmt = (
        select(VisitLog.user_agent, func.count(VisitLog.id))
        .where(since_where(VisitLog, since), VisitLog.user_agent.is_not(None))
        .group_by(VisitLog.user_agent)
    )
    with get_db() as session:
        return [(r[0], int(r[1])) for r in session.execute(stmt).all()]


def get_avg_session_duration(since: date) -> float:
    """AVG(session_duration) over rows with duration > 0 in the window; 0.0 if none."""
    stmt = select(func.avg(VisitLog.session_duration)).where(
        since_where(VisitLog, since),
        VisitLog.session_duration > 0,
    )
    with get_db() as session:
        return float(session.execute(stmt).scalar() or 0.0)


def list_recent_visit_logs(limit: int) -> list[VisitLog]:
    """Latest visit_logs rows, newest first."""
    stmt = select(VisitLog).order_by(VisitLog.created_at.desc(), VisitLog.id.desc()).limit(limit)
    with get_db() as session:
        return list(session.scalars(stmt).all())


def get_reconciliation_rows(since: date) -> list[dict[str, Any]]:
    """Per date since: summary daily_count vs number of visit_logs rows. Dates present in either table."""
    summary_stmt = select_daily_summaries_since(since).with_only_columns(
        DailySummary.visit_date, DailySummary.daily_count
    )
    log_stmt = (
        select(VisitLog.visit_date, func.count(VisitLog.id))
        .where(since_where(VisitLog, since))
        .group_by(VisitLog.visit_date)
    )
    with get_db() as session:
        summary = {r[0]: int(r[1]) for r in session.execute(summary_stmt).all()}
        logs = {r[0]: int(r[1]) for r in session.execute(log_stmt).all()}
    return [
        {"visit_date": d, "summary_count": summary.get(d, 0), "log_count": logs.get(d, 0)}
        for d in sorted(set(summary) | set(logs))
    ]
