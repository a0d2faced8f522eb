"""Dashboard aggregation over the visit counter and the visit event log.

Each sub-metric runs on its own (worker thread, own DB session) under one request deadline.
A metric that raises or misses the deadline keeps its empty/zero default and is listed in
the diagnostics; compute_stats and compute_analytics never raise.

Visitor identity is the raw IP address: shared NAT undercounts, rotating IPs overcount.
"""

import logging
import time
from collections import Counter
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import date, datetime, timedelta
from typing import Any

from apps.visits.config import config
from apps.visits.schemas.analytics import AnalyticsDebug, AnalyticsResponse, BrowserCount, PageCount, SourceCount
from apps.visits.schemas.visits import CountryCount, DailyCount, StatsResponse
from apps.visits.services.cache import TTLCache, get_analytics_cache
from apps.visits.services.classify import classify_browser, classify_referrer, format_session_time
from apps.visits.services.recorder import as_utc, utc_now
from apps.visits.services.repo import (
    count_unique_ips,
    get_avg_session_duration,
    get_daily_summary,
    get_daily_trend,
    get_lifetime_total,
    get_popular_pages,
    get_recent_activity,
    get_referrer_counts,
    get_top_countries,
    get_user_agent_counts,
    get_visitor_first_seen,
)

logger = logging.getLogger(__name__)

MIN_WINDOW_DAYS = 1
MAX_WINDOW_DAYS = 365
DEFAULT_WINDOW_DAYS = 30

# Metrics read from visit_logs; enhanced_tracking is true only if all of them succeeded.
EVENT_LOG_METRICS = (
    "unique_visitors",
    "new_vs_returning",
    "popular_pages",
    "top_countries",
    "traffic_sources",
    "browser_stats",
    "avg_session",
)


def clamp_days(days: int | None, default: int = DEFAULT_WINDOW_DAYS) -> int:
    """Clamp window to [1, 365]. None => default."""
    if days is None:
        days = default
    return max(MIN_WINDOW_DAYS, min(MAX_WINDOW_DAYS, int(days)))


def window_start(today: date, days: int) -> date:
    """First date of a trailing window: today - days, inclusive."""
    return today - timedelta(days=days)


def run_metrics(
    tasks: dict[str, Callable[[], Any]],
    timeout: float | None = None,
    max_workers: int | None = None,
) -> tuple[dict[str, Any], dict[str, str]]:
    """
    Run independent metric callables concurrently under one deadline.
    Returns (results for metrics that succeeded, {metric: error class name} for the rest).
    Timed-out metrics are reported as "Timeout"; their threads are abandoned, and the
    storage statement timeout bounds how long they keep running.
    """
    timeout = config.ANALYTICS_TIMEOUT_SECONDS if timeout is None else timeout
    results: dict[str, Any] = {}
    failed: dict[str, str] = {}
    pool = ThreadPoolExecutor(
        max_workers=max_workers or config.ANALYTICS_WORKERS,
        thread_name_prefix="analytics",
    )
    deadline = time.monotonic() + timeout
    try:
        futures = {name: pool.submit(fn) for name, fn in tasks.items()}
        for name, fut in futures.items():
            remaining = max(0.0, deadline - time.monotonic())
            try:
                results[name] = fut.result(timeout=remaining)
            except FutureTimeoutError:
                fut.cancel()
                failed[name] = "Timeout"
                logger.warning("analytics metric %s timed out after %.1fs", name, timeout)
            except Exception as e:
                failed[name] = e.__class__.__name__
                logger.warning("analytics metric %s failed: %s", name, e)
    finally:
        pool.shutdown(wait=False, cancel_futures=True)
    return results, failed


def split_new_and_returning(
    visitors: list[dict[str, Any]],
    now: datetime,
    new_visitor_days: int | None = None,
) -> tuple[int, int]:
    """
    Count new and returning visitors from per-IP rows (visit_count in window, first_visit ever).
    new: first visit within the last new_visitor_days.
    returning: more than one visit in the window, or first visit before that.
    The two are independent predicates, not a partition: a new IP with two visits counts in both.
    """
    days = config.NEW_VISITOR_DAYS if new_visitor_days is None else new_visitor_days
    cutoff = as_utc(now) - timedelta(days=days)
    new = 0
    returning = 0
    for v in visitors:
        first_visit = as_utc(v["first_visit"])
        if first_visit >= cutoff:
            new += 1
        if v["visit_count"] > 1 or first_visit < cutoff:
            returning += 1
    return new, returning


def bucket_traffic_sources(referrer_counts: list[tuple[str | None, int]]) -> list[dict[str, Any]]:
    """Sum (referrer, count) pairs into source buckets, most visits first."""
    totals: Counter[str] = Counter()
    for referrer, n in referrer_counts:
        totals[classify_referrer(referrer)] += n
    return [
        {"source": source, "visits": visits}
        for source, visits in sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def bucket_browsers(user_agent_counts: list[tuple[str, int]]) -> list[dict[str, Any]]:
    """Sum (user_agent, count) pairs into browser buckets, most visits first."""
    totals: Counter[str] = Counter()
    for user_agent, n in user_agent_counts:
        totals[classify_browser(user_agent)] += n
    return [
        {"browser": browser, "count": count}
        for browser, count in sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def compute_stats(now: datetime | None = None) -> StatsResponse:
    """Counter summary for the public widget. Never cached, so a record is visible immediately."""
    now = as_utc(now or utc_now())
    today = now.date()
    tasks: dict[str, Callable[[], Any]] = {
        "today": lambda: get_daily_summary(today),
        "lifetime": get_lifetime_total,
        "top_countries": lambda: get_top_countries(
            window_start(today, config.STATS_COUNTRY_WINDOW_DAYS), config.TOP_N
        ),
        "recent_activity": lambda: get_recent_activity(
            window_start(today, config.RECENT_ACTIVITY_DAYS), config.RECENT_ACTIVITY_DAYS
        ),
        "avg_session": lambda: get_avg_session_duration(window_start(today, config.SESSION_WINDOW_DAYS)),
    }
    results, failed = run_metrics(tasks)

    today_row = results.get("today")
    top_countries = results.get("top_countries") or []
    if failed:
        logger.warning("stats degraded for %s: %s", today, failed)
    return StatsResponse(
        today_views=today_row["daily_count"] if today_row else 0,
        lifetime_views=results.get("lifetime") or 0,
        visit_date=today,
        last_updated=today_row["created_at"] if today_row else None,
        top_countries=[CountryCount(**c) for c in top_countries],
        top_country=top_countries[0]["country"] if top_countries else "Unknown",
        recent_activity=[DailyCount(**r) for r in results.get("recent_activity") or []],
        avg_session_time=format_session_time(results.get("avg_session") or 0.0),
        total_countries=len(top_countries),
        enhanced_tracking=len(top_countries) > 0,
        failed_metrics=sorted(failed),
    )


def compute_analytics(
    days: int | None = DEFAULT_WINDOW_DAYS,
    now: datetime | None = None,
    cache: TTLCache | None = None,
) -> AnalyticsResponse:
    """Dashboard metrics over a trailing window of days (clamped to [1, 365]).
    Fully successful results are cached per (window, date) for the cache TTL."""
    days = clamp_days(days)
    now = as_utc(now or utc_now())
    today = now.date()
    since = window_start(today, days)

    cache = cache if cache is not None else get_analytics_cache()
    cache_key = f"analytics:{days}:{today.isoformat()}"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached.model_copy(update={"debug_info": cached.debug_info.model_copy(update={"cached": True})})

    tasks: dict[str, Callable[[], Any]] = {
        "today": lambda: get_daily_summary(today),
        "lifetime": get_lifetime_total,
        "unique_visitors": lambda: count_unique_ips(since),
        "new_vs_returning": lambda: split_new_and_returning(get_visitor_first_seen(since), now),
        "popular_pages": lambda: get_popular_pages(since, config.TOP_N),
        "top_countries": lambda: get_top_countries(since, config.TOP_N),
        "traffic_sources": lambda: bucket_traffic_sources(get_referrer_counts(since)),
        "browser_stats": lambda: bucket_browsers(get_user_agent_counts(since)),
        "avg_session": lambda: get_avg_session_duration(window_start(today, config.SESSION_WINDOW_DAYS)),
        "daily_trend": lambda: get_daily_trend(since),
    }
    results, failed = run_metrics(tasks)

    today_row = results.get("today")
    new_visitors, returning_visitors = results.get("new_vs_returning") or (0, 0)
    response = AnalyticsResponse(
        today_views=today_row["daily_count"] if today_row else 0,
        total_views=results.get("lifetime") or 0,
        unique_visitors=results.get("unique_visitors") or 0,
        new_visitors=new_visitors,
        returning_visitors=returning_visitors,
        popular_pages=[PageCount(**p) for p in results.get("popular_pages") or []],
        traffic_sources=[SourceCount(**s) for s in results.get("traffic_sources") or []],
        browser_stats=[BrowserCount(**b) for b in results.get("browser_stats") or []],
        top_countries=[CountryCount(**c) for c in results.get("top_countries") or []],
        daily_trend=[DailyCount(**d) for d in results.get("daily_trend") or []],
        avg_session_time=format_session_time(results.get("avg_session") or 0.0),
        period_days=days,
        enhanced_tracking=not any(name in failed for name in EVENT_LOG_METRICS),
        debug_info=AnalyticsDebug(
            today_date=today,
            succeeded=sorted(results),
            failed=failed,
        ),
        generated_at=utc_now(),
    )
    if failed:
        logger.warning("analytics degraded days=%s: %s", days, failed)
    else:
        cache.set(cache_key, response)
    return response
