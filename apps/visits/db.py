"""Database session factory and bootstrap."""

import os
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import Session, sessionmaker

from apps.visits.config import config
from apps.visits.models import Base

DATABASE_URL = os.getenv("DATABASE_URL", config.DATABASE_URL)

REQUIRED_TABLES = ("visits", "visit_logs")


def _is_sqlite(url: str) -> bool:
    return url.strip().lower().startswith("sqlite")


def _is_postgres(url: str) -> bool:
    return url.strip().lower().startswith("postgresql")


def storage_connect_args(url: str, timeout_seconds: float | None = None) -> dict[str, Any]:
    """Driver connect args that bound every storage call.
    Postgres: connect_timeout + statement_timeout. SQLite: busy timeout, shared across threads."""
    timeout = config.STORAGE_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
    if _is_sqlite(url):
        return {"timeout": timeout, "check_same_thread": False}
    if _is_postgres(url):
        return {
            "connect_timeout": max(1, int(timeout)),
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        }
    return {}


engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    connect_args=storage_connect_args(DATABASE_URL),
    echo=os.getenv("SQL_ECHO", "").lower() in ("1", "true", "yes"),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@contextmanager
def get_db() -> Generator[Session, None, None]:
    """Provide a transactional scope for DB operations."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def ensure_tables(bind=None) -> None:
    """Create visit tables if they do not exist. Idempotent (checkfirst=True).
    Postgres is migrated by Alembic unless SCHEMA_AUTHORITY=ensure_tables."""
    bind = bind if bind is not None else engine
    url = str(bind.url)
    strategy = (os.environ.get("SCHEMA_AUTHORITY") or "alembic").strip().lower()
    if _is_postgres(url) and strategy != "ensure_tables":
        return
    Base.metadata.create_all(bind=bind, checkfirst=True)


def missing_tables(bind=None) -> list[str]:
    """Return required table names absent from the database. Raises if the DB is unreachable."""
    inspector = inspect(bind if bind is not None else engine)
    return [name for name in REQUIRED_TABLES if not inspector.has_table(name)]
