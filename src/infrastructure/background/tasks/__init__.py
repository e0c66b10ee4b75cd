# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task actors.

Usage:
    from src.infrastructure.background.tasks import expire_temporary_enrolments

    # Send a task
    expire_temporary_enrolments.send()

Running Workers:
    dramatiq src.infrastructure.background.tasks --processes 1 --threads 2
"""

from src.infrastructure.background.tasks.enrolment import (
    SWEEP_ACTORS,
    backfill_existing_assignments,
    execute_sweep,
    expire_temporary_enrolments,
    get_enrolment_actors,
    reconcile_enrolment_durations,
    send_enrolment_reminders,
)

# Re-export run_async for convenience
from src.infrastructure.background.tasks.base import run_async

__all__ = [
    "SWEEP_ACTORS",
    "backfill_existing_assignments",
    "execute_sweep",
    "expire_temporary_enrolments",
    "get_enrolment_actors",
    "reconcile_enrolment_durations",
    "send_enrolment_reminders",
    "get_all_actors",
    "run_async",
]


def get_all_actors() -> list:
    """Get all registered actors for worker startup."""
    return get_enrolment_actors()
