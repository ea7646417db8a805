"""
Pydantic v2 domain models shared across the Match Log services.
These are the canonical wire/internal representations, NOT ORM models.
Field names are snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from shared.errors import ValidationError
from shared.utils.clock import parse_calendar_date


def _strict_calendar_date(value: Any) -> dt.date:
    # Only date objects or YYYY-MM-DD strings; no epoch numbers or datetime strings
    if isinstance(value, (int, float)):
        raise ValueError(f"Invalid date: {value!r}. Use YYYY-MM-DD.")
    try:
        return parse_calendar_date(value)
    except ValidationError as exc:
        raise ValueError(exc.message) from exc


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using the camelCase wire names."""
        return self.model_dump(mode="json", by_alias=True)


# ── Reference data ──────────────────────────────────────────────────────
class League(DomainModel):
    model_config = ConfigDict(frozen=True)

    league_id: str
    display_name: str
    upstream_query_key: str
    badge_url: Optional[str] = None


# ── Fixtures ────────────────────────────────────────────────────────────
class Fixture(DomainModel):
    """A normalized match record, independent of the upstream schema."""

    model_config = ConfigDict(frozen=True)

    fixture_id: str
    league_id: str
    league_name: str
    date: dt.date
    kickoff_time: str = ""
    home_team: str = "TBD"
    away_team: str = "TBD"
    home_score: Optional[int] = None
    away_score: Optional[int] = None


class CacheEntry(DomainModel):
    """Merged fixture set for one date; replaced wholesale on expiry."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    fixtures: tuple[Fixture, ...] = ()
    expires_at: dt.datetime

    def is_valid(self, now: dt.datetime) -> bool:
        return now < self.expires_at


# ── Marks ───────────────────────────────────────────────────────────────
class FixtureSnapshot(DomainModel):
    """Fixture fields captured when a user marks it watched."""

    fixture_id: str = Field(min_length=1)
    league_id: str = Field(min_length=1)
    league_name: str = Field(min_length=1)
    date: dt.date
    kickoff_time: str = ""
    home_team: str = Field(min_length=1)
    away_team: str = Field(min_length=1)
    home_score: Optional[int] = None
    away_score: Optional[int] = None

    check_date = field_validator("date", mode="before")(_strict_calendar_date)

    @classmethod
    def from_fixture(cls, fixture: Fixture) -> "FixtureSnapshot":
        return cls.model_validate(fixture.model_dump())


class NotifySnapshot(DomainModel):
    """Fixture fields captured when a local reminder is scheduled."""

    fixture_id: str = Field(min_length=1)
    league_id: str = Field(min_length=1)
    league_name: str = Field(min_length=1)
    date: dt.date
    kickoff_time: str = Field(min_length=1)
    home_team: str = Field(min_length=1)
    away_team: str = Field(min_length=1)
    notification_handle: Optional[str] = None

    check_date = field_validator("date", mode="before")(_strict_calendar_date)


class WatchedMark(FixtureSnapshot):
    user_id: str
    created_at: dt.datetime


class NotifiedMark(NotifySnapshot):
    user_id: str
    created_at: dt.datetime


class WatchedStats(DomainModel):
    week_count: int = 0
    month_count: int = 0
    total_count: int = 0


class TeamsByLeague(DomainModel):
    league_id: str
    league_name: str
    teams: list[str] = Field(default_factory=list)


# ── Preferences ─────────────────────────────────────────────────────────
PREFERENCE_KEYS: tuple[str, ...] = ("collapsed_leagues", "hidden_leagues", "league_order")


class UserPreferences(DomainModel):
    collapsed_leagues: list[str] = Field(default_factory=list)
    hidden_leagues: list[str] = Field(default_factory=list)
    league_order: list[str] = Field(default_factory=list)

    @classmethod
    def from_document(cls, document: Optional[dict[str, Any]]) -> "UserPreferences":
        """Build from a stored JSON document, ignoring keys this version does not know."""
        if not document:
            return cls()
        known = {to_camel(key) for key in PREFERENCE_KEYS}
        return cls.model_validate({k: v for k, v in document.items() if k in known})


class PreferencesPatch(DomainModel):
    """
    Partial preference update.

    Only keys the caller actually supplied take part in a merge; a supplied
    key replaces the stored list entirely.
    """

    model_config = ConfigDict(extra="forbid")

    collapsed_leagues: Optional[list[str]] = None
    hidden_leagues: Optional[list[str]] = None
    league_order: Optional[list[str]] = None

    @model_validator(mode="after")
    def reject_null_values(self) -> "PreferencesPatch":
        for key in self.model_fields_set:
            if getattr(self, key) is None:
                raise ValueError(f"{to_camel(key)} must be a list of league ids, not null")
        return self

    def to_document(self) -> dict[str, list[str]]:
        """Supplied keys only, camelCase, ready for a JSON merge."""
        return {to_camel(key): list(getattr(self, key)) for key in PREFERENCE_KEYS if key in self.model_fields_set}

    def is_empty(self) -> bool:
        return not self.model_fields_set


def merge_preferences(stored: UserPreferences, patch: PreferencesPatch) -> UserPreferences:
    """Per-key shallow merge: supplied keys replace, absent keys stay."""
    merged = stored.model_dump()
    for key in PREFERENCE_KEYS:
        if key in patch.model_fields_set:
            merged[key] = list(getattr(patch, key))
    return UserPreferences.model_validate(merged)


class PreferencesUpdate(DomainModel):
    preferences: UserPreferences
    updated_at: dt.datetime


class PreferenceCacheEntry(DomainModel):
    """Client-local mirror of the last server-confirmed preferences."""

    preferences: UserPreferences
    updated_at: Optional[dt.datetime] = None
    stale: bool = False


# ── Composed view ───────────────────────────────────────────────────────
class LeagueGroup(DomainModel):
    league_id: str
    league_name: str
    badge_url: Optional[str] = None
    collapsed: bool = False
    fixture_count: int = 0
    fixtures: list[Fixture] = Field(default_factory=list)


class DayView(DomainModel):
    date: dt.date
    leagues: list[LeagueGroup] = Field(default_factory=list)
    watched_ids: list[str] = Field(default_factory=list)
    notified_ids: list[str] = Field(default_factory=list)
    stats: WatchedStats = Field(default_factory=WatchedStats)
