"""Regression: alembic upgrade head is idempotent and yields the tables the app checks for."""

import os

import pytest
from sqlalchemy import create_engine

from apps.visits.db import missing_tables
from tests._db_bootstrap import get_test_schema_strategy, run_alembic_downgrade_base, run_alembic_upgrade
from tests.conftest import requires_db


@requires_db
@pytest.mark.skipif(
    get_test_schema_strategy() == "ensure_tables",
    reason="Alembic idempotency test only applies when TEST_SCHEMA_STRATEGY=alembic",
)
def test_alembic_upgrade_head_twice_no_exception():
    """Run alembic upgrade head twice in the same session; must not raise."""
    url = os.environ["DATABASE_TEST_URL"]
    run_alembic_upgrade(url)
    run_alembic_upgrade(url)  # second run must be idempotent, no DuplicateTable etc.


@requires_db
@pytest.mark.skipif(
    get_test_schema_strategy() == "ensure_tables",
    reason="Alembic round-trip only applies when TEST_SCHEMA_STRATEGY=alembic",
)
def test_alembic_downgrade_then_upgrade_restores_tables():
    """downgrade base drops both tables; upgrade head brings them back."""
    url = os.environ["DATABASE_TEST_URL"]
    eng = create_engine(url)
    try:
        run_alembic_downgrade_base(url)
        assert sorted(missing_tables(bind=eng)) == ["visit_logs", "visits"]
        run_alembic_upgrade(url)
        assert missing_tables(bind=eng) == []
    finally:
        eng.dispose()
