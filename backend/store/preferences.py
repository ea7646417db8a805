"""
Preference store.

One JSON document per user. Updates are partial: each top-level key in the
patch replaces the stored value, absent keys are untouched. The merge runs
inside the upsert itself (JSONB ``||`` on PostgreSQL, ``json_patch`` on
SQLite), so two devices writing different keys at the same time never lose
either write.
"""
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, func, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import IntegrityError

from shared.models.domain import PreferencesPatch, PreferencesUpdate, UserPreferences
from shared.models.orm import UserPreferencesORM
from shared.utils.clock import Clock, SystemClock
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger
from shared.utils.metrics import PREFERENCE_UPDATES
from store.base import as_utc, raise_for_integrity, require_user, upsert_for

logger = get_logger(__name__)

_table = UserPreferencesORM.__table__


def _merge_expression(dialect_name: str, incoming: Any) -> Any:
    """SQL expression merging the stored document with the incoming one, key by key."""
    if dialect_name == "postgresql":
        return _table.c.preferences.op("||", return_type=JSONB)(incoming)
    return func.json_patch(_table.c.preferences, incoming, type_=JSON)


class PreferenceStore:
    def __init__(self, db: DatabaseManager, clock: Optional[Clock] = None) -> None:
        self._db = db
        self._clock = clock or SystemClock()

    async def get_preferences(self, user_id: str) -> UserPreferences:
        """Stored preferences, or the empty defaults if the user never saved any."""
        user_id = require_user(user_id)
        async with self._db.read_session() as session:
            document = await session.scalar(
                select(UserPreferencesORM.preferences).where(UserPreferencesORM.user_id == user_id)
            )
        return UserPreferences.from_document(document)

    async def update_preferences(self, user_id: str, patch: PreferencesPatch) -> PreferencesUpdate:
        user_id = require_user(user_id)
        now = self._clock.now()
        document = patch.to_document()

        stmt = upsert_for(self._db.dialect_name, UserPreferencesORM).values(
            user_id=user_id,
            preferences=document,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={
                "preferences": _merge_expression(self._db.dialect_name, stmt.excluded.preferences),
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(UserPreferencesORM.preferences, UserPreferencesORM.updated_at)

        try:
            async with self._db.write_session() as session:
                stored, updated_at = (await session.execute(stmt)).one()
        except IntegrityError as exc:
            raise_for_integrity(exc, user_id)

        PREFERENCE_UPDATES.inc()
        logger.info("preferences_updated", user_id=user_id, keys=sorted(document))
        return PreferencesUpdate(
            preferences=UserPreferences.from_document(stored),
            updated_at=as_utc(updated_at),
        )
