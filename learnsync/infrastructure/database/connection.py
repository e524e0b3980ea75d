# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Local database connection management using SQLAlchemy async.

The local store is an embedded SQLite file opened through the aiosqlite
driver. The file is put in WAL journal mode so that readers keep seeing
the last committed state while a write transaction is open: a reader
never observes a half-applied bulk write. An in-memory store cannot use
WAL and shares one connection, so its sessions are serialised instead.

Example:
    from learnsync.infrastructure.database.connection import LocalDatabase

    database = LocalDatabase(settings.local_store)
    await database.create_schema()

    async with database.session() as session:
        result = await session.execute(select(Subject))
        subjects = result.scalars().all()

    await database.dispose()
"""

import asyncio
from contextlib import asynccontextmanager, nullcontext
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from learnsync.infrastructure.database.models import Base

if TYPE_CHECKING:
    from learnsync.core.config.settings import LocalStoreSettings


class StoreError(Exception):
    """Base exception for local store operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the store error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def _configure_sqlite(dbapi_connection: Any, connection_record: Any, *, wal: bool) -> None:
    cursor = dbapi_connection.cursor()
    if wal:
        cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


class LocalDatabase:
    """Owns the async engine and sessionmaker for one local store file.

    Attributes:
        engine: The SQLAlchemy async engine.
        sessionmaker: Factory for AsyncSession objects.
    """

    def __init__(self, settings: "LocalStoreSettings") -> None:
        """Create the engine and sessionmaker.

        Args:
            settings: Local store configuration.

        Raises:
            StoreError: If engine creation fails.
        """
        self._exclusive: asyncio.Lock | None = None
        engine_kwargs: dict[str, Any] = {"echo": settings.echo}
        if settings.is_memory:
            # One shared connection, otherwise every connection gets its own database
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            self._exclusive = asyncio.Lock()
        else:
            engine_kwargs["connect_args"] = {"timeout": 30}

        try:
            self.engine: AsyncEngine = create_async_engine(settings.url, **engine_kwargs)
        except SQLAlchemyError as e:
            raise StoreError("Failed to initialize local database", e) from e

        wal = not settings.is_memory
        event.listen(
            self.engine.sync_engine,
            "connect",
            lambda conn, record: _configure_sqlite(conn, record, wal=wal),
        )

        self.sessionmaker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_schema(self) -> None:
        """Create any missing tables and indexes.

        Raises:
            StoreError: If the schema cannot be created.
        """
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StoreError("Failed to create local schema", e) from e

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Get an async session for the local database.

        The session is committed on success and rolled back on exception,
        so every ``async with`` block is one transaction.

        An in-memory store has a single shared connection, so its sessions
        run one at a time. Sessions must not be nested.

        Yields:
            AsyncSession for database operations.

        Raises:
            StoreError: If a database operation fails.
        """
        async with self._exclusive or nullcontext():
            async with self.sessionmaker() as session:
                try:
                    yield session
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    raise StoreError("Local store operation failed", e) from e
                except BaseException:
                    await session.rollback()
                    raise

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()
