"""Test DB bootstrap: pick the database, guard resets, build the schema. Used by the root conftest."""

import logging
import os
import tempfile
from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

_ROOT = Path(__file__).resolve().parent.parent

_LOG = logging.getLogger(__name__)

SCHEMA_STRATEGIES = ("alembic", "ensure_tables")


def get_test_schema_strategy() -> str:
    """TEST_SCHEMA_STRATEGY for Postgres runs: 'alembic' (default) or 'ensure_tables'."""
    v = (os.environ.get("TEST_SCHEMA_STRATEGY") or "alembic").strip().lower()
    if v not in SCHEMA_STRATEGIES:
        raise RuntimeError(f"TEST_SCHEMA_STRATEGY must be one of {SCHEMA_STRATEGIES}, got {v!r}")
    return v


def masked(url: str) -> str:
    """URL with the password hidden, for log lines."""
    return make_url(url).render_as_string(hide_password=True)


def postgres_reachable(url: str | None, timeout: int = 2) -> bool:
    """True if a Postgres URL accepts a connection within timeout seconds."""
    if not url or not url.strip().lower().startswith("postgresql"):
        return False
    eng = create_engine(url, connect_args={"connect_timeout": timeout})
    try:
        with eng.connect():
            return True
    except Exception as e:
        _LOG.info("Postgres not reachable at %s: %s", masked(url), e)
        return False
    finally:
        eng.dispose()


def assert_reset_allowed(url: str) -> None:
    """Refuse to wipe a database whose name lacks '_test' unless ALLOW_TEST_DB_RESET=true."""
    if os.environ.get("ALLOW_TEST_DB_RESET", "").lower() in ("1", "true", "yes"):
        return
    name = make_url(url).database or ""
    if "_test" not in name:
        raise RuntimeError(
            f"Refusing to reset {name!r}: DATABASE_TEST_URL must name a *_test database "
            "(or set ALLOW_TEST_DB_RESET=true)"
        )


def select_test_database_url() -> str:
    """Reachable DATABASE_TEST_URL, else a SQLite file in a fresh temp dir (shared by worker threads)."""
    url = os.environ.get("DATABASE_TEST_URL")
    if url and postgres_reachable(url):
        assert_reset_allowed(url)
        return url
    if url:
        _LOG.warning("DATABASE_TEST_URL unreachable; using SQLite")
    tmp = Path(tempfile.mkdtemp(prefix="visits_test_"))
    return f"sqlite:///{tmp / 'visits_test.db'}"


def _alembic(db_url: str, action: str) -> None:
    """Run `alembic upgrade head` or `alembic downgrade base` against db_url."""
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(_ROOT / "alembic"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    prev = os.environ.get("DATABASE_URL")
    os.environ["DATABASE_URL"] = db_url
    try:
        if action == "upgrade":
            command.upgrade(cfg, "head")
        else:
            command.downgrade(cfg, "base")
        _LOG.info("alembic %s done on %s", action, masked(db_url))
    finally:
        if prev is None:
            os.environ.pop("DATABASE_URL", None)
        else:
            os.environ["DATABASE_URL"] = prev


def run_alembic_upgrade(db_url: str) -> None:
    _alembic(db_url, "upgrade")


def run_alembic_downgrade_base(db_url: str) -> None:
    _alembic(db_url, "downgrade")


def run_test_db_schema_fixture(url: str) -> None:
    """Build the visit schema on the selected test DB.
    Postgres: fresh public schema, then Alembic (or ensure_tables per TEST_SCHEMA_STRATEGY).
    SQLite: ensure_tables (create_all)."""
    print(f"\n[pytest] using test DB: {masked(url)}\n")
    from apps.visits.db import engine, ensure_tables

    if url.startswith("postgresql"):
        admin = create_engine(url, isolation_level="AUTOCOMMIT")
        try:
            with admin.connect() as conn:
                conn.execute(text("DROP SCHEMA IF EXISTS public CASCADE"))
                conn.execute(text("CREATE SCHEMA public"))
        finally:
            admin.dispose()
        if get_test_schema_strategy() == "alembic":
            run_alembic_upgrade(url)
        else:
            os.environ["SCHEMA_AUTHORITY"] = "ensure_tables"
            ensure_tables()
    else:
        ensure_tables()
    # Drop pooled connections opened before the schema existed
    engine.dispose()
