"""Declarative base shared by the visit tables; Alembic env.py reads Base.metadata."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
