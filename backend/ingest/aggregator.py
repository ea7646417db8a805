"""
Fixture aggregator.

Fans a provider out across every tracked league for one date, merges the
results and caches the merged set. The cache is all-or-nothing per date: a
valid entry is served verbatim, anything else triggers a full re-fetch.
"""
from __future__ import annotations

import asyncio
from datetime import date, timedelta
from typing import Optional, Sequence

from shared.config import PartialFailurePolicy, get_settings
from shared.errors import UpstreamUnavailable
from shared.leagues import TRACKED_LEAGUES
from shared.models.domain import CacheEntry, Fixture, League
from shared.utils.clock import Clock, DateLike, SystemClock, parse_calendar_date
from shared.utils.logging import get_logger
from shared.utils.metrics import AGGREGATION_FAILURES, AGGREGATION_LATENCY, atrack_latency

from ingest.cache import FixtureCache
from ingest.providers.base import BaseProvider

logger = get_logger(__name__)


class FixtureAggregator:
    def __init__(
        self,
        provider: BaseProvider,
        cache: FixtureCache,
        clock: Optional[Clock] = None,
        leagues: Sequence[League] = TRACKED_LEAGUES,
        today_ttl_s: Optional[int] = None,
        default_ttl_s: Optional[int] = None,
        policy: Optional[PartialFailurePolicy] = None,
    ) -> None:
        settings = get_settings()
        self._provider = provider
        self._cache = cache
        self._clock = clock or SystemClock()
        self._leagues = tuple(leagues)
        if today_ttl_s is None:
            today_ttl_s = settings.fixture_cache_today_ttl_s
        if default_ttl_s is None:
            default_ttl_s = settings.fixture_cache_default_ttl_s
        self._today_ttl = timedelta(seconds=today_ttl_s)
        self._default_ttl = timedelta(seconds=default_ttl_s)
        self._policy = policy or settings.fixture_partial_policy
        if self._today_ttl >= self._default_ttl:
            raise ValueError("today freshness window must be shorter than the default window")

    def freshness_window(self, day: date) -> timedelta:
        """Short window for today's live scores, long for every other date."""
        return self._today_ttl if day == self._clock.today() else self._default_ttl

    async def get_fixtures_for_date(self, day: DateLike) -> list[Fixture]:
        target = parse_calendar_date(day)

        entry = await self._cache.get(target)
        if entry is not None:
            return list(entry.fixtures)

        async with atrack_latency(AGGREGATION_LATENCY):
            if self._policy == PartialFailurePolicy.BEST_EFFORT:
                fixtures, complete = await self._fan_out_best_effort(target)
            else:
                fixtures, complete = await self._fan_out_fail_fast(target), True

        if complete:
            expires_at = self._clock.now() + self.freshness_window(target)
            await self._cache.put(CacheEntry(date=target, fixtures=tuple(fixtures), expires_at=expires_at))
            logger.info(
                "fixtures_aggregated",
                date=target.isoformat(),
                leagues=len(self._leagues),
                fixtures=len(fixtures),
                expires_at=expires_at.isoformat(),
            )
        return fixtures

    async def _fan_out_fail_fast(self, day: date) -> list[Fixture]:
        """All leagues concurrently; the first failure cancels the rest and propagates."""
        tasks = [
            asyncio.create_task(self._provider.fetch_league_fixtures(day, league), name=league.league_id)
            for league in self._leagues
        ]
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        for task in tasks:
            if task in done and task.exception() is not None:
                exc = task.exception()
                AGGREGATION_FAILURES.labels(league=task.get_name()).inc()
                logger.warning(
                    "fixture_aggregation_failed",
                    date=day.isoformat(),
                    league=task.get_name(),
                    error=str(exc),
                )
                raise exc

        fixtures: list[Fixture] = []
        for task in tasks:
            fixtures.extend(task.result())
        return fixtures

    async def _fan_out_best_effort(self, day: date) -> tuple[list[Fixture], bool]:
        """Serve whichever leagues answered; a partial result is never cached."""
        results = await asyncio.gather(
            *(self._provider.fetch_league_fixtures(day, league) for league in self._leagues),
            return_exceptions=True,
        )

        fixtures: list[Fixture] = []
        failures: list[UpstreamUnavailable] = []
        for league, result in zip(self._leagues, results):
            if isinstance(result, UpstreamUnavailable):
                AGGREGATION_FAILURES.labels(league=league.league_id).inc()
                failures.append(result)
                continue
            if isinstance(result, BaseException):
                raise result
            fixtures.extend(result)

        if failures and len(failures) == len(self._leagues):
            raise failures[0]
        if failures:
            logger.warning(
                "fixture_aggregation_partial",
                date=day.isoformat(),
                failed_leagues=[exc.league_id for exc in failures],
            )
        return fixtures, not failures
