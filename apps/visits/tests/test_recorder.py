"""Tests for visit recording: atomic counter, best-effort event log, fallback read."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from apps.visits.schemas.requests import RecordVisitRequest
from apps.visits.services.recorder import (
    StorageUnavailableError,
    as_utc,
    build_visit_log,
    record_visit,
)
from apps.visits.services.repo import (
    get_daily_count,
    get_lifetime_total,
    list_recent_visit_logs,
    upsert_daily_summary,
)
from apps.visits.tests.conftest import make_context

NOON = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def test_first_record_creates_day_with_count_one() -> None:
    result = record_visit(make_context(), now=NOON)
    assert result.daily_count == 1
    assert result.lifetime_count == 1
    assert result.visit_date == NOON.date()
    assert result.timestamp == NOON


def test_sequential_records_increment() -> None:
    for i in range(1, 4):
        result = record_visit(make_context(), now=NOON + timedelta(minutes=i))
        assert result.daily_count == i
    assert get_daily_count(NOON.date()) == 3


def test_concurrent_records_lose_no_increment() -> None:
    n = 12

    def one(i: int) -> int:
        return record_visit(make_context(ip=f"203.0.113.{i}"), now=NOON).daily_count

    with ThreadPoolExecutor(max_workers=6) as pool:
        counts = list(pool.map(one, range(n)))

    assert get_daily_count(NOON.date()) == n
    # Each caller saw a count including its own increment; the last writer saw n
    assert max(counts) == n
    assert all(1 <= c <= n for c in counts)


def test_lifetime_equals_sum_of_daily_counts() -> None:
    yesterday = NOON - timedelta(days=1)
    for _ in range(2):
        record_visit(make_context(), now=yesterday)
    for _ in range(3):
        result = record_visit(make_context(), now=NOON)
    assert result.daily_count == 3
    assert result.lifetime_count == 5
    assert get_lifetime_total() == 5


def test_visit_date_uses_utc_date_of_event() -> None:
    late_evening_west = datetime(2026, 3, 10, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    result = record_visit(make_context(), now=late_evening_west)
    assert result.visit_date.isoformat() == "2026-03-11"


def test_event_log_row_written_with_payload_fields() -> None:
    payload = RecordVisitRequest(
        page_url="/pricing",
        session_duration=42.7,
        is_final=True,
        screen_resolution="1920x1080",
        viewport_size="1280x720",
        timezone="Europe/Berlin",
    )
    record_visit(make_context(user_agent="UA/2", referrer="https://google.com"), payload, now=NOON)
    logs = list_recent_visit_logs(10)
    assert len(logs) == 1
    log = logs[0]
    assert log.page_url == "/pricing"
    assert log.session_duration == 42
    assert log.is_final is True
    assert log.timezone == "Europe/Berlin"
    assert log.country == "Unknown"
    assert log.referrer == "https://google.com"
    assert log.visit_date == NOON.date()


def test_build_visit_log_defaults() -> None:
    row = build_visit_log(make_context(timezone="America/Denver"), RecordVisitRequest(page_url=None, session_duration=None), NOON)
    assert row["page_url"] == "/"
    assert row["session_duration"] == 0
    assert row["timezone"] == "America/Denver"
    assert row["is_final"] is False
    assert row["created_at"] == NOON


def test_final_beacon_still_increments_counter() -> None:
    record_visit(make_context(), RecordVisitRequest(session_duration=0), now=NOON)
    result = record_visit(make_context(), RecordVisitRequest(session_duration=30, is_final=True), now=NOON)
    assert result.daily_count == 2


@patch("apps.visits.services.recorder.insert_visit_log", side_effect=RuntimeError("visit_logs missing"))
def test_event_log_failure_still_counts(mock_insert) -> None:
    result = record_visit(make_context(), now=NOON)
    assert mock_insert.called
    assert result.daily_count == 1
    assert result.lifetime_count == 1
    assert list_recent_visit_logs(10) == []


def test_upsert_failure_falls_back_to_current_counts() -> None:
    upsert_daily_summary(NOON.date(), "203.0.113.1", "UA", NOON)
    upsert_daily_summary(NOON.date(), "203.0.113.1", "UA", NOON)
    with patch("apps.visits.services.recorder.upsert_daily_summary", side_effect=RuntimeError("lock timeout")):
        result = record_visit(make_context(), now=NOON)
    assert result.daily_count == 2
    assert result.lifetime_count == 2


def test_storage_unavailable_when_fallback_read_fails_too() -> None:
    with (
        patch("apps.visits.services.recorder.upsert_daily_summary", side_effect=RuntimeError("down")),
        patch("apps.visits.services.recorder.get_daily_count", side_effect=RuntimeError("down")),
    ):
        with pytest.raises(StorageUnavailableError):
            record_visit(make_context(), now=NOON)


def test_as_utc_treats_naive_as_utc() -> None:
    naive = datetime(2026, 1, 1, 8, 0)
    assert as_utc(naive) == datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)
    aware = datetime(2026, 1, 1, 8, 0, tzinfo=timezone(timedelta(hours=2)))
    assert as_utc(aware).hour == 6
