"""
Dependency injection for the API service.
Provides the database, stores and the view composer to route handlers.
"""
from __future__ import annotations

from typing import Optional

from shared.utils.clock import Clock, SystemClock
from shared.utils.database import DatabaseManager
from store.marks import MarkStore
from store.preferences import PreferenceStore

from api.composer import FixtureViewComposer

# Module-level singletons, initialized at startup
_db: DatabaseManager | None = None
_marks: MarkStore | None = None
_preferences: PreferenceStore | None = None
_composer: FixtureViewComposer | None = None
_clock: Clock = SystemClock()


def init_dependencies(
    db: DatabaseManager,
    marks: MarkStore,
    preferences: PreferenceStore,
    composer: FixtureViewComposer,
    clock: Optional[Clock] = None,
) -> None:
    """Initialize module-level singletons. Called once at startup."""
    global _db, _marks, _preferences, _composer, _clock
    _db = db
    _marks = marks
    _preferences = preferences
    _composer = composer
    _clock = clock or SystemClock()


def reset_dependencies() -> None:
    global _db, _marks, _preferences, _composer, _clock
    _db = _marks = _preferences = _composer = None
    _clock = SystemClock()


def get_db() -> DatabaseManager:
    """FastAPI dependency: returns the shared DatabaseManager."""
    if _db is None:
        raise RuntimeError("DatabaseManager not initialized; call init_dependencies first")
    return _db


def get_marks() -> MarkStore:
    if _marks is None:
        raise RuntimeError("MarkStore not initialized; call init_dependencies first")
    return _marks


def get_preference_store() -> PreferenceStore:
    if _preferences is None:
        raise RuntimeError("PreferenceStore not initialized; call init_dependencies first")
    return _preferences


def get_composer() -> FixtureViewComposer:
    if _composer is None:
        raise RuntimeError("FixtureViewComposer not initialized; call init_dependencies first")
    return _composer


def get_clock() -> Clock:
    return _clock
