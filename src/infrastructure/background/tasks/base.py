# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base utilities for Dramatiq tasks.

Thread-Local Event Loop Management:
    Dramatiq workers use multiple threads (--threads N) to process tasks
    concurrently. SQLAlchemy async engines and asyncpg connections are
    bound to specific event loops and cannot be used across different loops.

    Each worker thread therefore keeps one persistent event loop and
    reuses it for every task, so the thread's database engine stays
    bound to the loop it was created in.
"""

import asyncio
import logging
import threading
from typing import Any, Coroutine, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Thread-local storage for event loops
_thread_local = threading.local()


def _get_thread_event_loop() -> asyncio.AbstractEventLoop:
    """Get or create a persistent event loop for the current thread.

    When a new loop is created (first task in thread or after loop closure),
    the thread's cached database engine is dropped so it is rebuilt on the
    new loop.

    Returns:
        Event loop for current thread.
    """
    loop = getattr(_thread_local, "event_loop", None)

    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        _thread_local.event_loop = loop

        # Import here to avoid circular imports
        from src.infrastructure.database.connection import _clear_thread_db_connections

        _clear_thread_db_connections()

        logger.debug(
            "Created new event loop for thread %s",
            threading.current_thread().name,
        )

    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run async coroutine in sync Dramatiq worker context.

    Args:
        coro: Coroutine to run.

    Returns:
        Result of coroutine.

    Example:
        @dramatiq.actor
        def my_task():
            async def _process():
                db = get_worker_db_manager()
                async with db.session() as session:
                    ...
            return run_async(_process())
    """
    loop = _get_thread_event_loop()
    return loop.run_until_complete(coro)
