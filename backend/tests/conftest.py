"""Shared fixtures: a controllable clock, an in-memory database and a scripted provider."""
from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional, Union

import pytest
import pytest_asyncio

from shared.config import Settings
from shared.errors import UpstreamUnavailable
from shared.leagues import TRACKED_LEAGUES
from shared.models.domain import Fixture, League
from shared.models.orm import SessionORM, UserORM
from shared.utils.database import DatabaseManager
from shared.utils.http_client import ProviderHTTPClient

from ingest.providers.base import BaseProvider

UTC = timezone.utc
EPL = TRACKED_LEAGUES[0]
LA_LIGA = TRACKED_LEAGUES[1]


class FixedClock:
    """Clock the test moves by hand; ``today`` follows ``now`` unless pinned."""

    def __init__(self, now: datetime, today: Optional[date] = None) -> None:
        self.current = now
        self._today = today

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self._today or self.current.date()

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


Outcome = Union[list[Fixture], Exception]


class ScriptedProvider(BaseProvider):
    """Answers per league from a script and counts the calls it receives."""

    def __init__(self, script: Optional[dict[str, Outcome]] = None) -> None:
        super().__init__(name="scripted", http_client=ProviderHTTPClient("scripted", "http://upstream.test"))
        self.script: dict[str, Outcome] = script or {}
        self.calls: list[tuple[date, str]] = []

    async def _fetch_league_fixtures(self, day: date, league: League) -> list[Fixture]:
        self.calls.append((day, league.league_id))
        outcome = self.script.get(league.league_id, [])
        if isinstance(outcome, Exception):
            raise outcome
        return list(outcome)


def make_fixture(
    fixture_id: str,
    league: League = EPL,
    day: date = date(2026, 2, 1),
    kickoff: str = "15:00:00",
    home: str = "Arsenal",
    away: str = "Chelsea",
) -> Fixture:
    return Fixture(
        fixture_id=fixture_id,
        league_id=league.league_id,
        league_name=league.display_name,
        date=day,
        kickoff_time=kickoff,
        home_team=home,
        away_team=away,
    )


def upstream_down(league: League = EPL, status: int = 500) -> UpstreamUnavailable:
    return UpstreamUnavailable("feed failed", upstream_status=status, league_id=league.league_id)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 2, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[DatabaseManager, None]:
    manager = DatabaseManager(Settings(database_url="sqlite+aiosqlite:///:memory:"))
    await manager.connect()
    await manager.create_all()
    yield manager
    await manager.disconnect()


@pytest_asyncio.fixture
async def add_user(db: DatabaseManager) -> Callable:
    """Insert a user, optionally with a bearer session expiring ``expires``."""

    async def _add(user_id: str, token: Optional[str] = None, expires: Optional[datetime] = None) -> str:
        async with db.write_session() as session:
            session.add(UserORM(id=user_id, name=user_id, email=f"{user_id}@example.com"))
            if token:
                await session.flush()
                session.add(
                    SessionORM(
                        session_token=token,
                        user_id=user_id,
                        expires=expires or datetime(2030, 1, 1, tzinfo=UTC),
                    )
                )
        return user_id

    return _add
