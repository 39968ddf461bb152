"""
Shared SQLAlchemy base and helpers.
"""
from datetime import datetime, UTC
from sqlalchemy.orm import declarative_base

from .. import sqlite_compiler_shims  # noqa: F401 - registers JSONB for sqlite


def now_utc():
    """Return an aware UTC datetime for default/updated timestamps."""
    return datetime.now(UTC)


def as_utc(value):
    """Attach UTC to naive datetimes read back from SQLite; pass aware ones through."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


Base = declarative_base()
