# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

The service talks to a single PostgreSQL database: the host platform's,
which also holds the tracking table.

Two access paths exist:
- The API process initializes one module-level DatabaseManager at startup
  (init_database / get_database / close_database).
- Dramatiq worker threads each own a DatabaseManager (get_worker_db_manager),
  because async engines are bound to the event loop they were created in.

Example:
    from src.infrastructure.database.connection import get_database

    async with get_database().session() as session:
        result = await session.execute(select(TrackingRecord))
        records = result.scalars().all()
"""

import threading
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

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


class DatabaseManager:
    """Owns an async engine and its sessionmaker.

    The engine is created lazily on first use so a manager can be built
    outside of a running event loop.

    Attributes:
        url: Database connection URL.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
    ) -> None:
        """Initialize the manager.

        Args:
            url: Async database URL.
            pool_size: Connection pool size.
            max_overflow: Maximum overflow connections.
            echo: Log SQL statements.
        """
        self.url = url
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "DatabaseManager":
        """Build a manager from application settings."""
        return cls(
            url=settings.database.url,
            pool_size=settings.database.pool_size,
            max_overflow=settings.database.max_overflow,
            echo=settings.debug,
        )

    @property
    def engine(self) -> AsyncEngine:
        """Get the async engine, creating it on first access.

        Raises:
            DatabaseError: If the engine cannot be created.
        """
        if self._engine is None:
            try:
                self._engine = create_async_engine(
                    self.url,
                    pool_size=self._pool_size,
                    max_overflow=self._max_overflow,
                    pool_pre_ping=True,
                    pool_recycle=1800,
                    echo=self._echo,
                )
            except SQLAlchemyError as e:
                raise DatabaseError("Failed to initialize database connection", e) from e
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        """Get the sessionmaker bound to the engine."""
        if self._sessionmaker is None:
            self._sessionmaker = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._sessionmaker

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session that commits on success and rolls back on error.

        Yields:
            AsyncSession for database operations.

        Raises:
            DatabaseError: If a database operation fails.
        """
        async with self.sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError("Database operation failed", e) from e
            except Exception:
                await session.rollback()
                raise

    async def check_connection(self) -> bool:
        """Check if the database is reachable.

        Returns:
            True if the database is reachable, False otherwise.
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, DatabaseError, OSError):
            return False

    async def dispose(self) -> None:
        """Close all pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
        self.forget()

    def forget(self) -> None:
        """Drop the cached engine without awaiting its disposal.

        Used when the event loop the engine was bound to has gone away.
        """
        self._engine = None
        self._sessionmaker = None


# Module-level state for the API process
_database: DatabaseManager | None = None


def init_database(settings: "Settings") -> DatabaseManager:
    """Initialize the process-wide database manager.

    Args:
        settings: Application settings containing database configuration.

    Returns:
        The initialized manager.
    """
    global _database
    if _database is None:
        _database = DatabaseManager.from_settings(settings)
    return _database


async def close_database() -> None:
    """Close the process-wide database connection pool."""
    global _database
    if _database is not None:
        await _database.dispose()
        _database = None


def get_database() -> DatabaseManager:
    """Get the process-wide database manager.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _database is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _database


# Thread-local managers for Dramatiq worker threads
_thread_local = threading.local()


def get_worker_db_manager() -> DatabaseManager:
    """Get the DatabaseManager of the current worker thread.

    Each Dramatiq worker thread runs its own persistent event loop
    (see background.tasks.base), so each gets its own engine.

    Returns:
        DatabaseManager bound to this thread.
    """
    manager = getattr(_thread_local, "db_manager", None)

    if manager is None:
        from src.core.config import get_settings

        manager = DatabaseManager.from_settings(get_settings())
        _thread_local.db_manager = manager

    return manager


def _clear_thread_db_connections() -> None:
    """Forget the current thread's engine.

    Called by run_async() when a new event loop is created for a thread.
    Safe to call even if no manager exists for the thread.
    """
    manager = getattr(_thread_local, "db_manager", None)
    if manager is not None:
        manager.forget()

