"""
Watched and notified mark store against an in-memory SQLite database.

Run: pytest backend/tests/test_marks.py -v
"""
from __future__ import annotations

from datetime import date
from typing import Callable

import pytest
import pytest_asyncio
from pydantic import ValidationError as PydanticValidationError

from shared.errors import NotFound, Unauthorized
from shared.models.domain import FixtureSnapshot, NotifySnapshot
from shared.utils.database import DatabaseManager
from store.marks import MarkStore, week_start

from conftest import EPL, LA_LIGA, FixedClock, make_fixture

DAY = date(2026, 2, 1)


@pytest_asyncio.fixture
async def marks(db: DatabaseManager, clock: FixedClock, add_user: Callable) -> MarkStore:
    await add_user("alice")
    await add_user("bob")
    return MarkStore(db, clock)


def _snapshot(fixture_id: str, **overrides) -> FixtureSnapshot:
    snapshot = FixtureSnapshot.from_fixture(make_fixture(fixture_id))
    return snapshot.model_copy(update=overrides)


def _notify(fixture_id: str, day: date = DAY, kickoff: str = "15:00:00") -> NotifySnapshot:
    return NotifySnapshot(
        fixture_id=fixture_id,
        league_id=EPL.league_id,
        league_name=EPL.display_name,
        date=day,
        kickoff_time=kickoff,
        home_team="Arsenal",
        away_team="Chelsea",
        notification_handle=f"local-{fixture_id}",
    )


def test_week_start_is_monday() -> None:
    assert week_start(date(2026, 2, 1)) == date(2026, 1, 26)  # Sunday
    assert week_start(date(2026, 1, 26)) == date(2026, 1, 26)  # Monday


@pytest.mark.asyncio
async def test_mark_then_list_ids_for_date(marks: MarkStore) -> None:
    record = await marks.mark_watched("alice", _snapshot("100"))

    assert record.user_id == "alice"
    assert record.fixture_id == "100"
    assert await marks.list_watched_ids_for_date("alice", DAY) == {"100"}
    assert await marks.list_watched_ids_for_date("alice", date(2026, 2, 2)) == set()


@pytest.mark.asyncio
async def test_remark_replaces_snapshot(marks: MarkStore, clock: FixedClock) -> None:
    await marks.mark_watched("alice", _snapshot("100"))
    clock.advance(minutes=90)
    await marks.mark_watched("alice", _snapshot("100", home_score=2, away_score=1))

    records = await marks.list_watched_for_user("alice")
    assert len(records) == 1
    assert (records[0].home_score, records[0].away_score) == (2, 1)
    assert records[0].created_at == clock.now()
    assert records[0].created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_unmark_removes_and_absent_unmark_is_noop(marks: MarkStore) -> None:
    await marks.mark_watched("alice", _snapshot("100"))

    await marks.unmark_watched("alice", "100")
    await marks.unmark_watched("alice", "100")
    await marks.unmark_watched("alice", "never-marked")

    assert await marks.list_watched_ids_for_date("alice", DAY) == set()


@pytest.mark.asyncio
async def test_marks_are_isolated_per_user(marks: MarkStore) -> None:
    await marks.mark_watched("alice", _snapshot("100"))
    await marks.mark_watched("bob", _snapshot("200"))

    await marks.unmark_watched("bob", "100")

    assert await marks.list_watched_ids_for_date("alice", DAY) == {"100"}
    assert await marks.list_watched_ids_for_date("bob", DAY) == {"200"}


@pytest.mark.asyncio
async def test_unknown_user_maps_to_not_found(marks: MarkStore) -> None:
    with pytest.raises(NotFound):
        await marks.mark_watched("ghost", _snapshot("100"))
    with pytest.raises(NotFound):
        await marks.mark_notified("ghost", _notify("100"))


@pytest.mark.asyncio
async def test_missing_user_is_unauthorized(marks: MarkStore) -> None:
    with pytest.raises(Unauthorized):
        await marks.list_watched_ids_for_date("", DAY)


@pytest.mark.asyncio
async def test_watched_history_newest_first(marks: MarkStore) -> None:
    await marks.mark_watched("alice", _snapshot("1", date=date(2026, 1, 10)))
    await marks.mark_watched("alice", _snapshot("2", date=date(2026, 1, 31), kickoff_time="20:00:00"))
    await marks.mark_watched("alice", _snapshot("3", date=date(2026, 1, 31), kickoff_time="12:30:00"))

    records = await marks.list_watched_for_user("alice")
    assert [r.fixture_id for r in records] == ["2", "3", "1"]


@pytest.mark.asyncio
async def test_watched_stats_week_month_total(marks: MarkStore) -> None:
    # today is Sunday 2026-02-01: week starts Monday 2026-01-26, month starts 2026-02-01
    await marks.mark_watched("alice", _snapshot("1", date=date(2026, 2, 1)))
    await marks.mark_watched("alice", _snapshot("2", date=date(2026, 1, 27)))
    await marks.mark_watched("alice", _snapshot("3", date=date(2026, 1, 20)))
    await marks.mark_watched("bob", _snapshot("4", date=date(2026, 2, 1)))

    stats = await marks.watched_stats("alice")
    assert (stats.week_count, stats.month_count, stats.total_count) == (2, 1, 3)


@pytest.mark.asyncio
async def test_watched_stats_empty(marks: MarkStore) -> None:
    stats = await marks.watched_stats("alice")
    assert (stats.week_count, stats.month_count, stats.total_count) == (0, 0, 0)


@pytest.mark.asyncio
async def test_teams_by_league(marks: MarkStore) -> None:
    await marks.mark_watched("alice", _snapshot("1", home_team="Arsenal", away_team="Chelsea"))
    await marks.mark_watched("alice", _snapshot("2", home_team="Liverpool", away_team="Arsenal"))
    la_liga = FixtureSnapshot.from_fixture(make_fixture("3", league=LA_LIGA, home="Getafe", away="Betis"))
    await marks.mark_watched("alice", la_liga)

    groups = {g.league_id: g for g in await marks.teams_by_league("alice")}
    assert groups[EPL.league_id].teams == ["Arsenal", "Chelsea", "Liverpool"]
    assert groups[LA_LIGA.league_id].teams == ["Betis", "Getafe"]
    assert groups[LA_LIGA.league_id].league_name == LA_LIGA.display_name


@pytest.mark.asyncio
async def test_notified_round_trip(marks: MarkStore) -> None:
    record = await marks.mark_notified("alice", _notify("100"))
    assert record.notification_handle == "local-100"

    fetched = await marks.get_notified("alice", "100")
    assert fetched.kickoff_time == "15:00:00"
    assert fetched.created_at.tzinfo is not None
    assert await marks.list_notified_ids_for_date("alice", DAY) == {"100"}

    await marks.unmark_notified("alice", "100")
    with pytest.raises(NotFound):
        await marks.get_notified("alice", "100")


@pytest.mark.asyncio
async def test_notified_lookup_is_scoped_to_user(marks: MarkStore) -> None:
    await marks.mark_notified("alice", _notify("100"))
    with pytest.raises(NotFound):
        await marks.get_notified("bob", "100")


@pytest.mark.asyncio
async def test_notified_list_soonest_first(marks: MarkStore) -> None:
    await marks.mark_notified("alice", _notify("late", kickoff="20:00:00"))
    await marks.mark_notified("alice", _notify("early", kickoff="12:30:00"))
    await marks.mark_notified("alice", _notify("tomorrow", day=date(2026, 2, 2), kickoff="11:00:00"))

    records = await marks.list_notified_for_user("alice")
    assert [r.fixture_id for r in records] == ["early", "late", "tomorrow"]


@pytest.mark.parametrize("field", ["fixture_id", "league_id", "league_name", "home_team", "away_team"])
def test_snapshot_requires_identity_fields(field: str) -> None:
    data = make_fixture("100").model_dump()
    data[field] = "   "
    with pytest.raises(PydanticValidationError):
        FixtureSnapshot.model_validate(data)


def test_notify_snapshot_requires_kickoff() -> None:
    with pytest.raises(PydanticValidationError):
        _notify("100", kickoff="")


@pytest.mark.parametrize("bad_date", [1769904000, "1769904000", "2026-02-01T00:00:00", "2026-02-30"])
def test_snapshots_require_calendar_date(bad_date: object) -> None:
    data = make_fixture("100").model_dump()
    data["date"] = bad_date
    with pytest.raises(PydanticValidationError):
        FixtureSnapshot.model_validate(data)
    with pytest.raises(PydanticValidationError):
        NotifySnapshot.model_validate(data)


def test_snapshot_accepts_date_string() -> None:
    data = make_fixture("100").model_dump()
    data["date"] = "2026-02-01"
    assert FixtureSnapshot.model_validate(data).date == date(2026, 2, 1)
