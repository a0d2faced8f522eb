"""Root conftest: test DB selection and env, applied to ALL test paths (tests/, apps/visits/tests/).

Must run before any apps.visits import: the engine binds DATABASE_URL at import time.
"""

import os

import pytest

os.environ.setdefault("ENV", "test")
os.environ.setdefault("PYTEST_RUNNING", "1")
# Deterministic request context: no geo database, no dev IP substitution
os.environ.setdefault("GEO_PROVIDER", "null")
os.environ.setdefault("ADDRESS_NORMALIZER", "passthrough")
# Tests opt in to caching with their own TTLCache
os.environ.setdefault("ANALYTICS_CACHE_TTL_SECONDS", "0")
os.environ.setdefault("CRON_LOG_DIR", "")

from tests._db_bootstrap import run_test_db_schema_fixture, select_test_database_url

TEST_DATABASE_URL = select_test_database_url()
os.environ["DATABASE_URL"] = TEST_DATABASE_URL


@pytest.fixture(scope="session", autouse=True)
def test_db_schema():
    """Create visit tables once per session (Alembic on Postgres, create_all on SQLite)."""
    run_test_db_schema_fixture(TEST_DATABASE_URL)


@pytest.fixture(autouse=True)
def clean_visit_tables(test_db_schema):
    """Empty visits and visit_logs before each test."""
    from apps.visits.db import engine
    from apps.visits.models import Base

    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    yield
