"""Repository layer: date-window queries and helpers."""

from apps.visits.repositories.window_filters import (
    select_daily_summaries_since,
    since_where,
)

__all__ = [
    "since_where",
    "select_daily_summaries_since",
]
