"""
Offline-first preference sync.

The local cache file only ever holds preferences the server confirmed. UI
state moves ahead of it optimistically: each toggle is applied in memory,
sent to the server, and then either confirmed (server response becomes both
UI state and cache) or rolled back (UI state reverts, cache untouched).
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Sequence, Union

from shared.models.domain import (
    PREFERENCE_KEYS,
    PreferenceCacheEntry,
    PreferencesPatch,
    UserPreferences,
    merge_preferences,
)
from shared.models.enums import SyncOutcome, ToggleState
from shared.utils.logging import get_logger

from client.api_client import PreferenceAPIClient, PreferenceAPIError

logger = get_logger(__name__)


class PreferenceSyncError(Exception):
    """Server unreachable and nothing cached locally to fall back on."""


class InvalidTransition(Exception):
    def __init__(self, current: ToggleState, target: ToggleState) -> None:
        super().__init__(f"cannot move toggle from {current.value} to {target.value}")
        self.current = current
        self.target = target


class LocalPreferenceCache:
    """Single JSON file holding the last server-confirmed preferences."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> Optional[PreferenceCacheEntry]:
        """Missing, unreadable or corrupt file all mean "nothing cached"."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError:
            return None
        try:
            return PreferenceCacheEntry.model_validate_json(raw)
        except ValueError:
            logger.warning("preference_cache_corrupt", path=str(self.path))
            return None

    def save(self, entry: PreferenceCacheEntry) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(entry.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)


class PendingToggle:
    """One optimistic change and the state it replaced."""

    def __init__(self, patch: PreferencesPatch, previous: UserPreferences) -> None:
        self.patch = patch
        self.previous = previous
        self.state = ToggleState.IDLE
        self.error: Optional[Exception] = None

    def transition(self, target: ToggleState) -> None:
        if not self.state.can_transition_to(target):
            raise InvalidTransition(self.state, target)
        self.state = target

    def __repr__(self) -> str:
        return f"PendingToggle(state={self.state.value}, keys={sorted(self.patch.model_fields_set)})"


class PreferenceSync:
    def __init__(self, api: PreferenceAPIClient, cache: LocalPreferenceCache) -> None:
        self._api = api
        self._cache = cache
        self._current: Optional[UserPreferences] = None
        self._confirmed: Optional[PreferenceCacheEntry] = None
        self._stale = False

    @property
    def current(self) -> UserPreferences:
        """What the UI should render right now, optimistic changes included."""
        return self._current if self._current is not None else UserPreferences()

    @property
    def stale(self) -> bool:
        """True when the last refresh fell back to the local cache."""
        return self._stale

    def load_cached(self) -> Optional[UserPreferences]:
        entry = self._cache.load()
        if entry is None:
            return None
        self._confirmed = entry
        if self._current is None:
            self._current = entry.preferences
        return entry.preferences

    async def refresh(self) -> UserPreferences:
        try:
            preferences = await self._api.get_preferences()
        except PreferenceAPIError as exc:
            cached = self._confirmed or self._cache.load()
            if cached is None:
                raise PreferenceSyncError("preferences unavailable: server unreachable and no local cache") from exc
            self._confirmed = cached
            self._stale = True
            if self._current is None:
                self._current = cached.preferences
            logger.info("preferences_served_stale", error=str(exc))
            return cached.preferences

        entry = PreferenceCacheEntry(
            preferences=preferences,
            updated_at=self._confirmed.updated_at if self._confirmed else None,
        )
        self._write_cache(entry)
        self._current = preferences
        self._stale = False
        return preferences

    def apply_optimistic(self, patch: PreferencesPatch) -> PendingToggle:
        toggle = PendingToggle(patch, previous=self.current)
        self._current = merge_preferences(self.current, patch)
        toggle.transition(ToggleState.PENDING_SYNC)
        return toggle

    async def commit(self, toggle: PendingToggle) -> SyncOutcome:
        if toggle.state is not ToggleState.PENDING_SYNC:
            raise InvalidTransition(toggle.state, ToggleState.CONFIRMED)

        try:
            update = await self._api.update_preferences(toggle.patch)
        except PreferenceAPIError as exc:
            self._current = self._revert(toggle)
            toggle.error = exc
            toggle.transition(ToggleState.ROLLED_BACK)
            logger.warning(
                "preference_toggle_rolled_back",
                keys=sorted(toggle.patch.to_document()),
                error=str(exc),
            )
            return SyncOutcome.ROLLED_BACK

        self._write_cache(PreferenceCacheEntry(preferences=update.preferences, updated_at=update.updated_at))
        self._current = update.preferences
        self._stale = False
        toggle.transition(ToggleState.CONFIRMED)
        return SyncOutcome.CONFIRMED

    async def toggle_collapsed(self, league_id: str) -> PendingToggle:
        patch = PreferencesPatch(collapsed_leagues=_flip(self.current.collapsed_leagues, league_id))
        return await self._apply_and_commit(patch)

    async def toggle_hidden(self, league_id: str) -> PendingToggle:
        patch = PreferencesPatch(hidden_leagues=_flip(self.current.hidden_leagues, league_id))
        return await self._apply_and_commit(patch)

    async def reorder(self, league_ids: Sequence[str]) -> PendingToggle:
        return await self._apply_and_commit(PreferencesPatch(league_order=list(league_ids)))

    async def _apply_and_commit(self, patch: PreferencesPatch) -> PendingToggle:
        toggle = self.apply_optimistic(patch)
        await self.commit(toggle)
        return toggle

    def _revert(self, toggle: PendingToggle) -> UserPreferences:
        # Only the keys this toggle touched go back; later toggles on other keys survive.
        restored = self.current.model_dump()
        for key in PREFERENCE_KEYS:
            if key in toggle.patch.model_fields_set:
                restored[key] = list(getattr(toggle.previous, key))
        return UserPreferences.model_validate(restored)

    def _write_cache(self, entry: PreferenceCacheEntry) -> None:
        try:
            self._cache.save(entry)
        except OSError as exc:
            logger.warning("preference_cache_write_failed", path=str(self._cache.path), error=str(exc))
        self._confirmed = entry


def _flip(values: Sequence[str], league_id: str) -> list[str]:
    if league_id in values:
        return [v for v in values if v != league_id]
    return [*values, league_id]
