# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task infrastructure.

Provides background sweep processing with Dramatiq:
- Redis broker for message persistence and durability
- Actor-based sweep definitions
- APScheduler integration for periodic sweeps

Quick Start:
    # Setup broker (call once at startup)
    from src.infrastructure.background import setup_dramatiq
    setup_dramatiq()

    # Send a sweep
    from src.infrastructure.background.tasks import expire_temporary_enrolments
    expire_temporary_enrolments.send()

Running Workers:
    dramatiq src.infrastructure.background.tasks --processes 1 --threads 2

Scheduler:
    from src.infrastructure.background import start_scheduler, stop_scheduler

    await start_scheduler()
    await stop_scheduler()
"""

from src.infrastructure.background.broker import (
    BrokerManager,
    Priority,
    Queues,
    get_broker,
    get_broker_manager,
    setup_dramatiq,
    shutdown_dramatiq,
)
from src.infrastructure.background.scheduler import (
    DramatiqScheduler,
    ScheduledTask,
    get_scheduler,
    start_scheduler,
    stop_scheduler,
)

# Task actors are imported lazily to avoid circular imports
# Use: from src.infrastructure.background.tasks import expire_temporary_enrolments

__all__ = [
    # Broker
    "BrokerManager",
    "Priority",
    "Queues",
    "get_broker",
    "get_broker_manager",
    "setup_dramatiq",
    "shutdown_dramatiq",
    # Scheduler
    "DramatiqScheduler",
    "ScheduledTask",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
]
