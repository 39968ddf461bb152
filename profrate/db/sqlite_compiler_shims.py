"""SQLite compilation shim for the PostgreSQL JSONB type.

Session bodies and activity metadata are stored as JSONB in PostgreSQL. Tests
run against in-memory SQLite, where `Base.metadata.create_all()` needs a type
it can render; JSONB is emitted as the generic JSON affinity there.

Usage: imported for side-effects by profrate.db.models.
"""
from __future__ import annotations

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(element, compiler, **kw):  # pragma: no cover - trivial
    # No JSONB operators or GIN indexes in SQLite; plain JSON storage is enough.
    return "JSON"
