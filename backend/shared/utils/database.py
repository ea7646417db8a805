"""
Async database connection manager using SQLAlchemy 2.0+ async engine.
PostgreSQL (asyncpg) in production, SQLite (aiosqlite) for local runs and tests.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from shared.config import Settings, get_settings
from shared.models.orm import Base
from shared.utils.logging import get_logger

logger = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseManager:
    """Manages async SQLAlchemy engine and session factory."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    async def connect(self) -> None:
        """Create the async engine and session factory."""
        url = self._settings.database_url
        if self._settings.is_sqlite:
            engine_kwargs: dict[str, Any] = {
                "echo": self._settings.debug,
                "connect_args": {"check_same_thread": False},
            }
            # One shared connection, otherwise every session sees a fresh in-memory database
            if ":memory:" in url or url.endswith("://"):
                engine_kwargs["poolclass"] = StaticPool
            self._engine = create_async_engine(url, **engine_kwargs)
            event.listen(self._engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            self._engine = create_async_engine(
                url,
                pool_size=self._settings.db_pool_min,
                max_overflow=self._settings.db_pool_max - self._settings.db_pool_min,
                pool_pre_ping=True,
                pool_recycle=300,
                echo=self._settings.debug,
                connect_args={
                    "timeout": self._settings.db_command_timeout,
                    "command_timeout": self._settings.db_command_timeout,
                },
            )
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("database_connected", url=self._settings.database_url_safe_log)

    async def disconnect(self) -> None:
        """Dispose of the engine and all connections."""
        if self._engine:
            await self._engine.dispose()
            logger.info("database_disconnected")

    async def create_all(self) -> None:
        """Create any missing tables. Idempotent."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("DatabaseManager not connected.")
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @asynccontextmanager
    async def read_session(self) -> AsyncIterator[AsyncSession]:
        """Provide a read-only session (no commit)."""
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not connected.")
        async with self._session_factory() as session:
            yield session

    @asynccontextmanager
    async def write_session(self) -> AsyncIterator[AsyncSession]:
        """Provide a transactional session that auto-commits on success."""
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not connected.")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
