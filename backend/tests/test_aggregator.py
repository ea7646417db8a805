"""
Unit tests for the fixture aggregator: fan-out, caching windows and failure policy.

Run: pytest backend/tests/test_aggregator.py -v
"""
from __future__ import annotations

import asyncio
from datetime import date, timedelta

import pytest

from shared.config import PartialFailurePolicy
from shared.errors import UpstreamUnavailable, ValidationError
from shared.leagues import TRACKED_LEAGUES
from shared.models.domain import Fixture, League

from ingest.aggregator import FixtureAggregator
from ingest.cache import InMemoryFixtureCache

from conftest import EPL, LA_LIGA, FixedClock, ScriptedProvider, make_fixture, upstream_down

MATCHDAY = date(2026, 2, 1)
NEXT_WEEK = date(2026, 2, 8)


def _aggregator(
    provider: ScriptedProvider,
    clock: FixedClock,
    policy: PartialFailurePolicy = PartialFailurePolicy.FAIL_FAST,
) -> tuple[FixtureAggregator, InMemoryFixtureCache]:
    cache = InMemoryFixtureCache(clock)
    aggregator = FixtureAggregator(
        provider,
        cache,
        clock,
        today_ttl_s=30,
        default_ttl_s=300,
        policy=policy,
    )
    return aggregator, cache


@pytest.mark.asyncio
async def test_merges_every_tracked_league(provider: ScriptedProvider, clock: FixedClock) -> None:
    provider.script = {
        EPL.league_id: [make_fixture("1"), make_fixture("2")],
        LA_LIGA.league_id: [make_fixture("3", league=LA_LIGA)],
    }
    aggregator, _ = _aggregator(provider, clock)

    fixtures = await aggregator.get_fixtures_for_date(MATCHDAY)

    assert sorted(f.fixture_id for f in fixtures) == ["1", "2", "3"]
    assert sorted(league_id for _, league_id in provider.calls) == sorted(l.league_id for l in TRACKED_LEAGUES)


@pytest.mark.asyncio
async def test_second_call_within_window_is_served_from_cache(
    provider: ScriptedProvider, clock: FixedClock
) -> None:
    provider.script = {EPL.league_id: [make_fixture("1", day=NEXT_WEEK)]}
    aggregator, _ = _aggregator(provider, clock)

    first = await aggregator.get_fixtures_for_date(NEXT_WEEK)
    clock.advance(seconds=299)
    second = await aggregator.get_fixtures_for_date("2026-02-08")

    assert first == second
    assert len(provider.calls) == len(TRACKED_LEAGUES)


@pytest.mark.asyncio
async def test_expired_entry_triggers_full_refetch(provider: ScriptedProvider, clock: FixedClock) -> None:
    aggregator, _ = _aggregator(provider, clock)

    await aggregator.get_fixtures_for_date(NEXT_WEEK)
    clock.advance(seconds=300)
    await aggregator.get_fixtures_for_date(NEXT_WEEK)

    assert len(provider.calls) == 2 * len(TRACKED_LEAGUES)


@pytest.mark.asyncio
async def test_today_uses_the_shorter_window(provider: ScriptedProvider, clock: FixedClock) -> None:
    aggregator, _ = _aggregator(provider, clock)
    assert clock.today() == MATCHDAY

    await aggregator.get_fixtures_for_date(MATCHDAY)
    clock.advance(seconds=31)
    await aggregator.get_fixtures_for_date(MATCHDAY)

    assert len(provider.calls) == 2 * len(TRACKED_LEAGUES)


def test_freshness_window_by_date(provider: ScriptedProvider, clock: FixedClock) -> None:
    aggregator, _ = _aggregator(provider, clock)
    assert aggregator.freshness_window(MATCHDAY) == timedelta(seconds=30)
    assert aggregator.freshness_window(NEXT_WEEK) == timedelta(seconds=300)
    assert aggregator.freshness_window(MATCHDAY) < aggregator.freshness_window(NEXT_WEEK)


def test_today_window_must_be_shorter(provider: ScriptedProvider, clock: FixedClock) -> None:
    with pytest.raises(ValueError):
        FixtureAggregator(provider, InMemoryFixtureCache(clock), clock, today_ttl_s=300, default_ttl_s=300)


def test_zero_today_window_is_honoured(provider: ScriptedProvider, clock: FixedClock) -> None:
    aggregator = FixtureAggregator(provider, InMemoryFixtureCache(clock), clock, today_ttl_s=0, default_ttl_s=300)
    assert aggregator.freshness_window(MATCHDAY) == timedelta(0)


@pytest.mark.asyncio
async def test_one_league_failing_fails_the_date_and_caches_nothing(
    provider: ScriptedProvider, clock: FixedClock
) -> None:
    provider.script = {
        EPL.league_id: upstream_down(EPL, status=500),
        LA_LIGA.league_id: [make_fixture("3", league=LA_LIGA)],
    }
    aggregator, cache = _aggregator(provider, clock)

    with pytest.raises(UpstreamUnavailable) as excinfo:
        await aggregator.get_fixtures_for_date("2026-02-01")

    assert excinfo.value.upstream_status == 500
    assert await cache.get(MATCHDAY) is None


@pytest.mark.asyncio
async def test_failure_is_not_remembered(provider: ScriptedProvider, clock: FixedClock) -> None:
    provider.script = {EPL.league_id: upstream_down(EPL)}
    aggregator, _ = _aggregator(provider, clock)
    with pytest.raises(UpstreamUnavailable):
        await aggregator.get_fixtures_for_date(MATCHDAY)

    provider.script = {EPL.league_id: [make_fixture("1")]}
    fixtures = await aggregator.get_fixtures_for_date(MATCHDAY)

    assert [f.fixture_id for f in fixtures] == ["1"]


class _StallingProvider(ScriptedProvider):
    """One league never answers; records whether it was cancelled."""

    def __init__(self, stalled: League, failing: League) -> None:
        super().__init__({failing.league_id: upstream_down(failing)})
        self.stalled = stalled
        self.cancelled = False

    async def _fetch_league_fixtures(self, day: date, league: League) -> list[Fixture]:
        if league == self.stalled:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        return await super()._fetch_league_fixtures(day, league)


@pytest.mark.asyncio
async def test_fail_fast_cancels_outstanding_fetches(clock: FixedClock) -> None:
    provider = _StallingProvider(stalled=LA_LIGA, failing=EPL)
    aggregator, _ = _aggregator(provider, clock)

    with pytest.raises(UpstreamUnavailable):
        await asyncio.wait_for(aggregator.get_fixtures_for_date(MATCHDAY), timeout=5)

    assert provider.cancelled is True


@pytest.mark.asyncio
async def test_best_effort_serves_partial_but_does_not_cache(
    provider: ScriptedProvider, clock: FixedClock
) -> None:
    provider.script = {
        EPL.league_id: upstream_down(EPL),
        LA_LIGA.league_id: [make_fixture("3", league=LA_LIGA)],
    }
    aggregator, cache = _aggregator(provider, clock, PartialFailurePolicy.BEST_EFFORT)

    fixtures = await aggregator.get_fixtures_for_date(MATCHDAY)

    assert [f.fixture_id for f in fixtures] == ["3"]
    assert await cache.get(MATCHDAY) is None


@pytest.mark.asyncio
async def test_best_effort_all_failing_raises(provider: ScriptedProvider, clock: FixedClock) -> None:
    provider.script = {league.league_id: upstream_down(league) for league in TRACKED_LEAGUES}
    aggregator, _ = _aggregator(provider, clock, PartialFailurePolicy.BEST_EFFORT)

    with pytest.raises(UpstreamUnavailable):
        await aggregator.get_fixtures_for_date(MATCHDAY)


@pytest.mark.asyncio
async def test_invalid_date_never_reaches_upstream(provider: ScriptedProvider, clock: FixedClock) -> None:
    aggregator, _ = _aggregator(provider, clock)

    with pytest.raises(ValidationError):
        await aggregator.get_fixtures_for_date("2026-2-1")

    assert provider.calls == []
