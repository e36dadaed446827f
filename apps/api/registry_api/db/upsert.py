from __future__ import annotations

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def dialect_insert(session: Session, entity):  # type: ignore[no-untyped-def]
    """`INSERT` construct that supports `ON CONFLICT` for the bound database."""
    name = session.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert(entity)
    if name == "sqlite":
        return sqlite.insert(entity)
    raise RuntimeError(f"ON CONFLICT upserts are not supported on {name!r}")
