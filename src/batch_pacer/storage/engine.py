"""Async SQLAlchemy engine and session management.

A ``Database`` is an explicit instance owned by the caller; nothing here is
a module-level singleton. Construct one per database URL and pass it to the
cache and progress stores that need it.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from batch_pacer.config import get_settings
from batch_pacer.storage.models import Base


class Database:
    """Async engine plus session factory for one database URL.

    Usage:
        database = Database("sqlite+aiosqlite:///./batch_pacer.db")
        await database.create_tables()

        async with database.session() as session:
            result = await session.execute(select(CacheEntry))

        await database.dispose()
    """

    def __init__(self, url: str | None = None, *, echo: bool = False) -> None:
        """Initialize the database.

        Args:
            url: Async connection string (uses settings if not provided)
            echo: Log every SQL statement
        """
        self._url = url or get_settings().database_url
        self._engine: AsyncEngine = create_async_engine(
            self._url,
            echo=echo,
            future=True,
            poolclass=self._pool_class(self._url),
        )
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    @staticmethod
    def _pool_class(url: str) -> type[pool.Pool]:
        # In-memory SQLite lives inside one connection, so it must be kept open.
        if ":memory:" in url:
            return pool.StaticPool
        return pool.NullPool  # Required for SQLite to prevent "database is locked"

    @property
    def url(self) -> str:
        return self._url

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get an async database session with automatic commit/rollback."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create all tables that do not exist yet."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        """Drop all tables.

        WARNING: This will delete all cached responses and progress.
        """
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        """Dispose the engine and close all connections."""
        await self._engine.dispose()

    async def __aenter__(self) -> Database:
        await self.create_tables()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.dispose()
