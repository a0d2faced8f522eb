"""Visit tracking endpoints: record, stats, analytics, history.

Handlers are sync (def) so FastAPI runs the blocking DB work in its threadpool.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Body, HTTPException, Query

from apps.visits.schemas.analytics import AnalyticsResponse
from apps.visits.schemas.requests import RecordVisitRequest
from apps.visits.schemas.visits import HistoryResponse, HistoryRow, RecordVisitResponse, StatsResponse
from apps.visits.services.analytics import DEFAULT_WINDOW_DAYS, clamp_days, compute_analytics, compute_stats, window_start
from apps.visits.services.recorder import StorageUnavailableError, record_visit
from apps.visits.services.repo import get_history, get_history_totals
from apps.visits.services.request_context import ClientContextDep

logger = logging.getLogger(__name__)

router = APIRouter()

HISTORY_DEFAULT_LIMIT = 100
HISTORY_MAX_LIMIT = 1000


@router.post("/record", response_model=RecordVisitResponse)
def record(
    client: ClientContextDep,
    body: RecordVisitRequest | None = Body(None),
) -> RecordVisitResponse:
    """Record one page view. Partial backend trouble still returns 200 with best-effort counts;
    500 only when the daily counter can be neither updated nor read."""
    try:
        result = record_visit(client, body)
    except StorageUnavailableError:
        raise HTTPException(status_code=500, detail="Failed to record visit")
    return RecordVisitResponse(
        daily_views=result.daily_count,
        lifetime_views=result.lifetime_count,
        visit_date=result.visit_date,
        country=client.country,
        city=client.city,
        timestamp=result.timestamp,
    )


@router.get("/stats", response_model=StatsResponse)
def stats() -> StatsResponse:
    """Today's and lifetime counts, top countries, last 7 days, average session time."""
    return compute_stats()


@router.get("/analytics", response_model=AnalyticsResponse)
def analytics(
    days: int = Query(DEFAULT_WINDOW_DAYS, description="Trailing window in days; clamped to 1..365"),
) -> AnalyticsResponse:
    """Dashboard metrics. Failed sub-metrics are empty and listed in debug_info.failed."""
    return compute_analytics(days)


@router.get("/history", response_model=HistoryResponse)
def history(
    days: int = Query(DEFAULT_WINDOW_DAYS, description="Trailing window in days; clamped to 1..365"),
    limit: int = Query(HISTORY_DEFAULT_LIMIT, description="Max rows; clamped to 1..1000"),
) -> HistoryResponse:
    """Raw per-day rows, newest first, plus all-time totals."""
    days = clamp_days(days)
    limit = max(1, min(HISTORY_MAX_LIMIT, limit))
    today = datetime.now(timezone.utc).date()
    try:
        rows = get_history(window_start(today, days), limit)
        total_visits, total_days = get_history_totals()
    except Exception:
        logger.exception("Failed to fetch visit history")
        raise HTTPException(status_code=500, detail="Failed to fetch visit history")
    return HistoryResponse(
        history=[HistoryRow(**r) for r in rows],
        total_visits=total_visits,
        total_days=total_days,
        records_shown=len(rows),
    )
