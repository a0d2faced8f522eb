"""Visit recording: one event-log row plus an atomic increment of the day's counter.

The event-log insert is best-effort. The counter upsert is the authoritative write; if it
fails we fall back to reading current counts, and only if that read fails too is the
caller told storage is unavailable.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone

from apps.visits.config import config
from apps.visits.schemas.requests import RecordVisitRequest
from apps.visits.services.client_context import ClientContext, truncate
from apps.visits.services.repo import (
    get_daily_count,
    get_lifetime_total,
    insert_visit_log,
    upsert_daily_summary,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_URL = "/"


class StorageUnavailableError(RuntimeError):
    """Raised when the daily counter can be neither updated nor read."""

    pass


@dataclass(frozen=True)
class RecordResult:
    """Counts after recording one visit."""

    daily_count: int
    lifetime_count: int
    visit_date: date
    timestamp: datetime


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime. Naive values (SQLite round-trips) are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_visit_log(
    context: ClientContext,
    payload: RecordVisitRequest,
    now: datetime,
) -> dict:
    """visit_logs column values for one event. visit_date comes from the event timestamp."""
    limit = config.MAX_FIELD_LENGTH
    return {
        "ip_address": context.ip,
        "country": context.country,
        "city": context.city,
        "region": context.region,
        "user_agent": truncate(context.user_agent, limit),
        "referrer": truncate(context.referrer, limit),
        "page_url": truncate(payload.page_url or DEFAULT_PAGE_URL, limit),
        "visit_date": now.date(),
        "session_duration": max(0, int(payload.session_duration or 0)),
        "timezone": truncate(payload.timezone or context.timezone, 100),
        "screen_resolution": truncate(payload.screen_resolution or None, 20),
        "viewport_size": truncate(payload.viewport_size or None, 20),
        "is_final": bool(payload.is_final),
        "created_at": now,
    }


def record_visit(
    context: ClientContext,
    payload: RecordVisitRequest | None = None,
    now: datetime | None = None,
) -> RecordResult:
    """Record one page view. Returns today's and lifetime counts.
    Raises StorageUnavailableError only when the counter can be neither updated nor read."""
    payload = payload or RecordVisitRequest()
    now = as_utc(now or utc_now())
    visit_date = now.date()

    try:
        insert_visit_log(build_visit_log(context, payload, now))
    except Exception as e:
        logger.warning("Failed to insert visit log (date=%s ip=%s): %s", visit_date, context.ip, e)

    try:
        daily_count = upsert_daily_summary(visit_date, context.ip, context.user_agent, now)
        lifetime_count = get_lifetime_total()
    except Exception:
        logger.exception("Failed to update visit summary for %s; reading current counts", visit_date)
        try:
            daily_count = get_daily_count(visit_date)
            lifetime_count = get_lifetime_total()
        except Exception as fallback_error:
            logger.exception("Fallback visit count read failed for %s", visit_date)
            raise StorageUnavailableError("visit summary storage unavailable") from fallback_error

    logger.debug("visit recorded date=%s daily=%s lifetime=%s", visit_date, daily_count, lifetime_count)
    return RecordResult(
        daily_count=daily_count,
        lifetime_count=lifetime_count,
        visit_date=visit_date,
        timestamp=now,
    )
