"""
Redis connection manager for Match Log.
Provides the async connection pool and key namespace for shared snapshots.
"""
from __future__ import annotations

from typing import Optional

import redis.asyncio as aioredis
from redis.asyncio import Redis

from shared.config import Settings, get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Key namespaces ──────────────────────────────────────────────────────
FIXTURES_KEY = "fixtures:date:{date}"


class RedisManager:
    """Manages async Redis connection pool and provides typed helpers."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._pool: Optional[Redis] = None

    async def connect(self) -> None:
        """Initialize the connection pool."""
        self._pool = aioredis.from_url(
            self._settings.redis_url_str,
            max_connections=self._settings.redis_max_connections,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
            retry_on_timeout=True,
        )
        await self._pool.ping()
        logger.info("redis_connected", url=self._settings.redis_url_str)

    async def disconnect(self) -> None:
        """Graceful shutdown."""
        if self._pool:
            await self._pool.aclose()
            logger.info("redis_disconnected")

    @property
    def client(self) -> Redis:
        if self._pool is None:
            raise RuntimeError("RedisManager not connected. Call connect() first.")
        return self._pool

    # ── Snapshot helpers ────────────────────────────────────────────────
    async def set_snapshot(self, key: str, data: str, ttl_s: int = 300) -> None:
        """Store a JSON snapshot with TTL."""
        await self.client.set(key, data, ex=ttl_s)

    async def get_snapshot(self, key: str) -> Optional[str]:
        """Retrieve a JSON snapshot."""
        return await self.client.get(key)
