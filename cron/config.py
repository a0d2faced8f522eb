"""Cron config from environment."""

import os


def _int(val: str | None, default: int) -> int:
    if val is None or val.strip() == "":
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


class Config:
    """Cron configuration from env vars."""

    # Days back from today (inclusive) compared by reconcile_nightly
    RECONCILE_LOOKBACK_DAYS: int = _int(os.getenv("RECONCILE_LOOKBACK_DAYS"), 7)
    # Directory for cron_<script>.log files; empty disables file logging
    LOG_DIR: str = os.getenv("CRON_LOG_DIR", "logs")


config = Config()
