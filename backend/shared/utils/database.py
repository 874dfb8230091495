"""
Postgres access for live-sync stores.

One async engine per process. Stores open a short session per operation: reads never
commit, writes commit on success and roll back on any error.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from shared.config import Settings, get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    async def connect(self) -> None:
        """Create the engine and fail fast if Postgres is unreachable."""
        s = self._settings
        engine = create_async_engine(
            s.database_url,
            pool_size=s.db_pool_min,
            max_overflow=max(s.db_pool_max - s.db_pool_min, 0),
            pool_pre_ping=True,
            pool_recycle=300,
            echo=s.debug,
            connect_args={"timeout": s.db_command_timeout, "command_timeout": s.db_command_timeout},
        )
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception:
            await engine.dispose()
            logger.error("database_unreachable", url=s.database_url_safe_log)
            raise
        self._engine = engine
        self._sessions = async_sessionmaker(bind=engine, expire_on_commit=False)
        logger.info("database_connected", url=s.database_url_safe_log, pool_size=s.db_pool_min)

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        logger.info("database_disconnected")

    def _factory(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is None:
            raise RuntimeError("DatabaseManager.connect() has not been awaited")
        return self._sessions

    @asynccontextmanager
    async def read_session(self) -> AsyncIterator[AsyncSession]:
        async with self._factory()() as session:
            yield session

    @asynccontextmanager
    async def write_session(self) -> AsyncIterator[AsyncSession]:
        """Commit on clean exit; roll back and re-raise otherwise."""
        async with self._factory()() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
