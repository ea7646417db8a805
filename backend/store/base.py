"""
Helpers shared by the per-user stores.

Writes go through a single dialect-specific ``INSERT .. ON CONFLICT`` so that
an upsert is one atomic statement on both PostgreSQL and SQLite.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from shared.errors import NotFound, Unauthorized


def upsert_for(dialect_name: str, entity: Any) -> Any:
    """Return an insert construct that supports ``on_conflict_do_update``."""
    if dialect_name == "postgresql":
        return postgresql.insert(entity)
    if dialect_name == "sqlite":
        return sqlite.insert(entity)
    raise RuntimeError(f"Unsupported database dialect for upserts: {dialect_name}")


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def require_user(user_id: str | None) -> str:
    """Every store call is scoped to an authenticated user."""
    if not user_id or not str(user_id).strip():
        raise Unauthorized("A signed-in user is required.")
    return str(user_id)


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    text = str(exc.orig).lower()
    return "foreign key" in text or "violates foreign key constraint" in text


def raise_for_integrity(exc: IntegrityError, user_id: str) -> None:
    """Map a constraint violation onto the error taxonomy, re-raising anything else."""
    if is_foreign_key_violation(exc):
        raise NotFound(f"User {user_id} does not exist.") from exc
    raise exc
