"""Pytest fixtures for root-level tests (migrations, cron jobs, repo rules)."""

import os

import pytest

from tests._db_bootstrap import postgres_reachable

# Marker for Postgres-only tests (Alembic migrations): skip unless DATABASE_TEST_URL is reachable
requires_db = pytest.mark.skipif(
    not postgres_reachable(os.environ.get("DATABASE_TEST_URL")),
    reason="DATABASE_TEST_URL not set or Postgres not reachable",
)
