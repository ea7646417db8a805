"""
Fixture cache backends.

One entry per date, holding the merged fixture set of every tracked league.
Entries are immutable values replaced wholesale; validity is decided by the
injected clock against the entry's ``expires_at``.
"""
from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from shared.models.domain import CacheEntry
from shared.utils.clock import Clock, SystemClock
from shared.utils.logging import get_logger
from shared.utils.metrics import FIXTURE_CACHE_LOOKUPS
from shared.utils.redis_manager import FIXTURES_KEY, RedisManager

logger = get_logger(__name__)


class FixtureCache(Protocol):
    async def get(self, day: date) -> Optional[CacheEntry]:
        """Return the entry for ``day`` only if it is still valid."""
        ...

    async def put(self, entry: CacheEntry) -> None:
        ...


class InMemoryFixtureCache:
    """Process-local cache. Safe for concurrent readers: entries are never mutated."""

    backend = "memory"

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or SystemClock()
        self._entries: dict[date, CacheEntry] = {}

    async def get(self, day: date) -> Optional[CacheEntry]:
        entry = self._entries.get(day)
        if entry is None:
            FIXTURE_CACHE_LOOKUPS.labels(backend=self.backend, outcome="miss").inc()
            return None
        if not entry.is_valid(self._clock.now()):
            self._entries.pop(day, None)
            FIXTURE_CACHE_LOOKUPS.labels(backend=self.backend, outcome="expired").inc()
            return None
        FIXTURE_CACHE_LOOKUPS.labels(backend=self.backend, outcome="hit").inc()
        return entry

    async def put(self, entry: CacheEntry) -> None:
        self._entries[entry.date] = entry


class RedisFixtureCache:
    """
    Shared cache across API workers.

    ``expires_at`` travels inside the snapshot and is checked against the
    clock; the Redis TTL only bounds how long stale keys linger.
    """

    backend = "redis"

    def __init__(self, redis: RedisManager, clock: Optional[Clock] = None) -> None:
        self._redis = redis
        self._clock = clock or SystemClock()

    async def get(self, day: date) -> Optional[CacheEntry]:
        raw = await self._redis.get_snapshot(FIXTURES_KEY.format(date=day.isoformat()))
        if not raw:
            FIXTURE_CACHE_LOOKUPS.labels(backend=self.backend, outcome="miss").inc()
            return None
        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValueError:
            logger.warning("fixture_cache_corrupt_entry", date=day.isoformat())
            FIXTURE_CACHE_LOOKUPS.labels(backend=self.backend, outcome="corrupt").inc()
            return None
        if not entry.is_valid(self._clock.now()):
            FIXTURE_CACHE_LOOKUPS.labels(backend=self.backend, outcome="expired").inc()
            return None
        FIXTURE_CACHE_LOOKUPS.labels(backend=self.backend, outcome="hit").inc()
        return entry

    async def put(self, entry: CacheEntry) -> None:
        ttl_s = max(1, int((entry.expires_at - self._clock.now()).total_seconds()) + 1)
        await self._redis.set_snapshot(
            FIXTURES_KEY.format(date=entry.date.isoformat()),
            entry.model_dump_json(),
            ttl_s=ttl_s,
        )
