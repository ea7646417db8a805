"""
Watched / notified mark store.

A mark is owned by exactly one user and unique per (user, fixture). Marking
twice replaces the stored snapshot; unmarking something never marked is a
no-op. Every statement filters on ``user_id``.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import case, delete, func, select
from sqlalchemy.exc import IntegrityError

from shared.errors import NotFound
from shared.models.domain import (
    FixtureSnapshot,
    NotifiedMark,
    NotifySnapshot,
    TeamsByLeague,
    WatchedMark,
    WatchedStats,
)
from shared.models.orm import NotifiedEventORM, WatchedEventORM
from shared.utils.clock import Clock, SystemClock
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger
from store.base import as_utc, raise_for_integrity, require_user, upsert_for

logger = get_logger(__name__)

_WATCHED_SNAPSHOT_COLUMNS = (
    "league_id", "league_name", "date", "time",
    "home_team", "away_team", "home_score", "away_score", "created_at",
)
_NOTIFIED_SNAPSHOT_COLUMNS = (
    "league_id", "league_name", "date", "time",
    "home_team", "away_team", "notification_id", "created_at",
)


def _watched_from_row(row: WatchedEventORM) -> WatchedMark:
    return WatchedMark(
        user_id=row.user_id,
        fixture_id=row.event_id,
        league_id=row.league_id,
        league_name=row.league_name,
        date=row.date,
        kickoff_time=row.time or "",
        home_team=row.home_team,
        away_team=row.away_team,
        home_score=row.home_score,
        away_score=row.away_score,
        created_at=as_utc(row.created_at),
    )


def _notified_from_row(row: NotifiedEventORM) -> NotifiedMark:
    return NotifiedMark(
        user_id=row.user_id,
        fixture_id=row.event_id,
        league_id=row.league_id,
        league_name=row.league_name,
        date=row.date,
        kickoff_time=row.time,
        home_team=row.home_team,
        away_team=row.away_team,
        notification_handle=row.notification_id,
        created_at=as_utc(row.created_at),
    )


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


class MarkStore:
    """Per-user watched and notified marks backed by SQLAlchemy."""

    def __init__(self, db: DatabaseManager, clock: Optional[Clock] = None) -> None:
        self._db = db
        self._clock = clock or SystemClock()

    # ── Watched ─────────────────────────────────────────────────────────
    async def mark_watched(self, user_id: str, snapshot: FixtureSnapshot) -> WatchedMark:
        user_id = require_user(user_id)
        stmt = upsert_for(self._db.dialect_name, WatchedEventORM).values(
            user_id=user_id,
            event_id=snapshot.fixture_id,
            league_id=snapshot.league_id,
            league_name=snapshot.league_name,
            date=snapshot.date,
            time=snapshot.kickoff_time,
            home_team=snapshot.home_team,
            away_team=snapshot.away_team,
            home_score=snapshot.home_score,
            away_score=snapshot.away_score,
            created_at=self._clock.now(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "event_id"],
            set_={col: stmt.excluded[col] for col in _WATCHED_SNAPSHOT_COLUMNS},
        ).returning(WatchedEventORM)

        try:
            async with self._db.write_session() as session:
                row = (await session.scalars(stmt)).one()
                mark = _watched_from_row(row)
        except IntegrityError as exc:
            raise_for_integrity(exc, user_id)

        logger.info("watched_marked", user_id=user_id, fixture_id=snapshot.fixture_id)
        return mark

    async def unmark_watched(self, user_id: str, fixture_id: str) -> None:
        user_id = require_user(user_id)
        async with self._db.write_session() as session:
            result = await session.execute(
                delete(WatchedEventORM).where(
                    WatchedEventORM.user_id == user_id,
                    WatchedEventORM.event_id == fixture_id,
                )
            )
        if result.rowcount:
            logger.info("watched_unmarked", user_id=user_id, fixture_id=fixture_id)

    async def list_watched_ids_for_date(self, user_id: str, day: date) -> set[str]:
        user_id = require_user(user_id)
        async with self._db.read_session() as session:
            rows = await session.scalars(
                select(WatchedEventORM.event_id).where(
                    WatchedEventORM.user_id == user_id,
                    WatchedEventORM.date == day,
                )
            )
            return set(rows.all())

    async def list_watched_for_user(self, user_id: str) -> list[WatchedMark]:
        """Most recent first, matching the watched history screen."""
        user_id = require_user(user_id)
        async with self._db.read_session() as session:
            rows = await session.scalars(
                select(WatchedEventORM)
                .where(WatchedEventORM.user_id == user_id)
                .order_by(
                    WatchedEventORM.date.desc(),
                    WatchedEventORM.time.desc(),
                    WatchedEventORM.id.desc(),
                )
            )
            return [_watched_from_row(row) for row in rows.all()]

    async def watched_stats(self, user_id: str) -> WatchedStats:
        """Watched counts for the current week (from Monday), month and all time."""
        user_id = require_user(user_id)
        today = self._clock.today()
        since_week = week_start(today)
        since_month = today.replace(day=1)

        stmt = select(
            func.coalesce(func.sum(case((WatchedEventORM.date >= since_week, 1), else_=0)), 0),
            func.coalesce(func.sum(case((WatchedEventORM.date >= since_month, 1), else_=0)), 0),
            func.count(WatchedEventORM.id),
        ).where(WatchedEventORM.user_id == user_id)

        async with self._db.read_session() as session:
            week_count, month_count, total_count = (await session.execute(stmt)).one()

        return WatchedStats(
            week_count=int(week_count),
            month_count=int(month_count),
            total_count=int(total_count),
        )

    async def teams_by_league(self, user_id: str) -> list[TeamsByLeague]:
        """Distinct teams the user has watched, grouped by league in first-seen order."""
        marks = await self.list_watched_for_user(user_id)
        teams: dict[str, set[str]] = defaultdict(set)
        names: dict[str, str] = {}
        for mark in marks:
            names.setdefault(mark.league_id, mark.league_name)
            teams[mark.league_id].update((mark.home_team, mark.away_team))
        return [
            TeamsByLeague(league_id=league_id, league_name=names[league_id], teams=sorted(teams[league_id]))
            for league_id in names
        ]

    # ── Notified ────────────────────────────────────────────────────────
    async def mark_notified(self, user_id: str, snapshot: NotifySnapshot) -> NotifiedMark:
        user_id = require_user(user_id)
        stmt = upsert_for(self._db.dialect_name, NotifiedEventORM).values(
            user_id=user_id,
            event_id=snapshot.fixture_id,
            league_id=snapshot.league_id,
            league_name=snapshot.league_name,
            date=snapshot.date,
            time=snapshot.kickoff_time,
            home_team=snapshot.home_team,
            away_team=snapshot.away_team,
            notification_id=snapshot.notification_handle,
            created_at=self._clock.now(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "event_id"],
            set_={col: stmt.excluded[col] for col in _NOTIFIED_SNAPSHOT_COLUMNS},
        ).returning(NotifiedEventORM)

        try:
            async with self._db.write_session() as session:
                row = (await session.scalars(stmt)).one()
                mark = _notified_from_row(row)
        except IntegrityError as exc:
            raise_for_integrity(exc, user_id)

        logger.info("notified_marked", user_id=user_id, fixture_id=snapshot.fixture_id)
        return mark

    async def unmark_notified(self, user_id: str, fixture_id: str) -> None:
        user_id = require_user(user_id)
        async with self._db.write_session() as session:
            result = await session.execute(
                delete(NotifiedEventORM).where(
                    NotifiedEventORM.user_id == user_id,
                    NotifiedEventORM.event_id == fixture_id,
                )
            )
        if result.rowcount:
            logger.info("notified_unmarked", user_id=user_id, fixture_id=fixture_id)

    async def get_notified(self, user_id: str, fixture_id: str) -> NotifiedMark:
        user_id = require_user(user_id)
        async with self._db.read_session() as session:
            row = await session.scalar(
                select(NotifiedEventORM).where(
                    NotifiedEventORM.user_id == user_id,
                    NotifiedEventORM.event_id == fixture_id,
                )
            )
        if row is None:
            raise NotFound(f"No reminder scheduled for fixture {fixture_id}.")
        return _notified_from_row(row)

    async def list_notified_ids_for_date(self, user_id: str, day: date) -> set[str]:
        user_id = require_user(user_id)
        async with self._db.read_session() as session:
            rows = await session.scalars(
                select(NotifiedEventORM.event_id).where(
                    NotifiedEventORM.user_id == user_id,
                    NotifiedEventORM.date == day,
                )
            )
            return set(rows.all())

    async def list_notified_for_user(self, user_id: str) -> list[NotifiedMark]:
        """Soonest first."""
        user_id = require_user(user_id)
        async with self._db.read_session() as session:
            rows = await session.scalars(
                select(NotifiedEventORM)
                .where(NotifiedEventORM.user_id == user_id)
                .order_by(NotifiedEventORM.date.asc(), NotifiedEventORM.time.asc())
            )
            return [_notified_from_row(row) for row in rows.all()]
