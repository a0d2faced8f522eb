#!/usr/bin/env python3
"""Nightly reconciliation: visits.daily_count vs COUNT(visit_logs) per date.

- Look back RECONCILE_LOOKBACK_DAYS from today (UTC), inclusive.
- summary < logs: the counter lost increments. Logged as an error; exit code 1.
- summary > logs: expected when event-log inserts failed (they are best-effort). Warning only.

Read-only: never rewrites counts.

Run with: python -m cron.reconcile_nightly
"""

import sys
from datetime import date, datetime, timedelta, timezone
from typing import Any

from cron.config import config
from cron.logging import get_logger

logger = get_logger("reconcile_nightly")


def reconcile(today: date | None = None, lookback_days: int | None = None) -> dict[str, list[dict[str, Any]]]:
    """Return {"undercounted": [...], "log_gaps": [...]} rows for the lookback window."""
    from apps.visits.services.repo import get_reconciliation_rows

    today = today or datetime.now(timezone.utc).date()
    lookback = config.RECONCILE_LOOKBACK_DAYS if lookback_days is None else lookback_days
    since = today - timedelta(days=max(0, lookback))

    undercounted: list[dict[str, Any]] = []
    log_gaps: list[dict[str, Any]] = []
    for row in get_reconciliation_rows(since):
        delta = row["summary_count"] - row["log_count"]
        if delta < 0:
            undercounted.append({**row, "delta": delta})
            logger.error(
                "date=%s summary=%s logs=%s: counter below event log",
                row["visit_date"], row["summary_count"], row["log_count"],
            )
        elif delta > 0:
            log_gaps.append({**row, "delta": delta})
            logger.warning(
                "date=%s summary=%s logs=%s: %s events missing from visit_logs",
                row["visit_date"], row["summary_count"], row["log_count"], delta,
            )
    return {"undercounted": undercounted, "log_gaps": log_gaps}


def main() -> int:
    logger.info("reconcile_nightly start lookback_days=%s", config.RECONCILE_LOOKBACK_DAYS)
    try:
        result = reconcile()
    except Exception as e:
        logger.exception("reconcile_nightly error: %s", e)
        return 1

    logger.info(
        "reconcile_nightly done undercounted=%s log_gaps=%s",
        len(result["undercounted"]), len(result["log_gaps"]),
    )
    return 1 if result["undercounted"] else 0


if __name__ == "__main__":
    sys.exit(main())
