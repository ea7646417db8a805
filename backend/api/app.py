"""
FastAPI application factory for the Match Log API service.

Creates the app with:
- REST routes (fixtures, watched, notified, preferences, teams, leagues)
- Middleware stack
- Health check endpoints
- Lifespan management (startup/shutdown)
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional, Union

from fastapi import FastAPI
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from shared.config import FixtureCacheBackend, Settings, get_settings
from shared.utils.clock import Clock, SystemClock
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server
from shared.utils.redis_manager import RedisManager
from store.marks import MarkStore
from store.preferences import PreferenceStore

from api.composer import FixtureViewComposer
from api.dependencies import get_db, init_dependencies, reset_dependencies
from api.middleware import setup_middleware
from api.routes.fixtures import router as fixtures_router
from api.routes.leagues import router as leagues_router
from api.routes.notified import router as notified_router
from api.routes.preferences import router as preferences_router
from api.routes.teams import router as teams_router
from api.routes.watched import router as watched_router
from ingest.aggregator import FixtureAggregator
from ingest.cache import FixtureCache, InMemoryFixtureCache, RedisFixtureCache
from ingest.providers.base import BaseProvider
from ingest.providers.thesportsdb import TheSportsDBProvider

logger = get_logger(__name__)

# Retry connection on startup (Redis/DB may not be ready yet)
_CONNECT_RETRY_ATTEMPTS = 10
_CONNECT_RETRY_BASE_DELAY_S = 2.0


async def _connect_with_retry(connect_fn, name: str) -> None:
    """Call async connect_fn(); retry with exponential backoff on failure."""
    for attempt in range(1, _CONNECT_RETRY_ATTEMPTS + 1):
        try:
            await connect_fn()
            return
        except (OSError, SQLAlchemyError, ConnectionError) as exc:
            if attempt == _CONNECT_RETRY_ATTEMPTS:
                raise
            delay = _CONNECT_RETRY_BASE_DELAY_S * (2 ** (attempt - 1))
            logger.warning(
                "connect_retry",
                name=name,
                attempt=attempt,
                max_attempts=_CONNECT_RETRY_ATTEMPTS,
                delay_s=delay,
                error=str(exc),
            )
            await asyncio.sleep(delay)


def build_services(
    db: DatabaseManager,
    provider: BaseProvider,
    cache: FixtureCache,
    clock: Optional[Clock] = None,
) -> FixtureViewComposer:
    """Wire stores, aggregator and composer and publish them to the route dependencies."""
    clock = clock or SystemClock()
    marks = MarkStore(db, clock)
    preferences = PreferenceStore(db, clock)
    aggregator = FixtureAggregator(provider, cache, clock)
    composer = FixtureViewComposer(aggregator, marks, preferences)
    init_dependencies(db, marks, preferences, composer, clock)
    return composer


async def _build_cache(settings: Settings, clock: Clock) -> tuple[FixtureCache, Optional[RedisManager]]:
    if settings.fixture_cache_backend == FixtureCacheBackend.REDIS:
        redis = RedisManager(settings)
        await _connect_with_retry(redis.connect, "Redis")
        return RedisFixtureCache(redis, clock), redis
    return InMemoryFixtureCache(clock), None


@asynccontextmanager
async def _noop_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """No-op lifespan for testing without DB/Redis."""
    yield


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup (database, fixture cache, upstream client) and
    shutdown (graceful cleanup).
    """
    settings = get_settings()
    setup_logging("api")
    start_metrics_server()

    clock = SystemClock()
    db = DatabaseManager(settings)
    await _connect_with_retry(db.connect, "Database")
    await db.create_all()

    cache, redis = await _build_cache(settings, clock)
    provider = TheSportsDBProvider()
    await provider.start()

    build_services(db, provider, cache, clock)

    logger.info(
        "api_service_started",
        host=settings.api_host,
        port=settings.api_port,
        cache_backend=settings.fixture_cache_backend.value,
        partial_policy=settings.fixture_partial_policy.value,
    )

    yield

    # Shutdown
    await provider.close()
    if redis is not None:
        await redis.disconnect()
    await db.disconnect()
    reset_dependencies()
    logger.info("api_service_stopped")


def create_app(*, use_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application. Set use_lifespan=False for testing without DB/Redis."""
    app = FastAPI(
        title="Match Log API",
        description="Daily football fixtures with per-user marks and preferences",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else _noop_lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Middleware
    setup_middleware(app)

    # REST routes
    app.include_router(fixtures_router)
    app.include_router(watched_router)
    app.include_router(notified_router)
    app.include_router(preferences_router)
    app.include_router(teams_router)
    app.include_router(leagues_router)

    # Health check
    @app.get("/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": "api"}

    @app.get("/ready", tags=["system"])
    async def readiness() -> Dict[str, Union[str, bool]]:
        """Readiness probe: checks the database."""
        db_ok = False
        try:
            async with get_db().read_session() as session:
                await session.execute(text("SELECT 1"))
                db_ok = True
        except (RuntimeError, SQLAlchemyError, OSError) as exc:
            logger.warning("readiness_db_check_failed", error=str(exc))

        return {"status": "ok" if db_ok else "degraded", "database": db_ok}

    return app


# For running with uvicorn directly
app = create_app()
