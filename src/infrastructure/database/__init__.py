# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the platform PostgreSQL database.

The service reads and writes the host platform's tables and keeps its
own tracking table in the same database.

Example:
    from src.infrastructure.database import get_database, init_database

    init_database(settings)

    async with get_database().session() as session:
        result = await session.execute(select(TrackingRecord))
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    DatabaseManager,
    _clear_thread_db_connections,
    close_database,
    get_database,
    get_worker_db_manager,
    init_database,
)

__all__ = [
    "DatabaseError",
    "DatabaseManager",
    "init_database",
    "close_database",
    "get_database",
    # Worker thread-local manager
    "get_worker_db_manager",
    "_clear_thread_db_connections",
]
