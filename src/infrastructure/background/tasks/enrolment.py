# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Temporary enrolment sweep actors.

These actors are sent by APScheduler (see scheduler.start_scheduler) or
on demand through the API. Each run opens its own unit of work on the
worker thread's database manager and commits when the sweep succeeds.

Actors:
    - expire_temporary_enrolments: Revoke expired marker role assignments
    - send_enrolment_reminders: Send due reminder emails
    - backfill_existing_assignments: Purge stale records, track existing assignments
    - reconcile_enrolment_durations: Re-derive end times after a duration change
"""

import logging
from typing import Any

import dramatiq

from src.core.config import get_settings
from src.domains.temporary_enrolment.service import enrolment_unit_of_work
from src.infrastructure.background.broker import Priority, Queues, setup_dramatiq
from src.infrastructure.background.tasks.base import run_async
from src.infrastructure.database.connection import get_worker_db_manager
from src.utils.logging import bind_context, clear_context

setup_dramatiq()

logger = logging.getLogger(__name__)


async def execute_sweep(name: str) -> dict[str, Any]:
    """Run one sweep in its own unit of work.

    Args:
        name: Sweep name (expire, remind, backfill, reconcile).

    Returns:
        SweepResult as a dictionary.
    """
    async with enrolment_unit_of_work(get_worker_db_manager(), get_settings()) as service:
        result = await service.sweeps.run(name)
    return result.to_dict()


def _run_sweep(name: str) -> dict[str, Any]:
    bind_context(sweep=name)
    try:
        result = run_async(execute_sweep(name))
        logger.info(
            "Sweep %s completed: %d processed, %d created, %d deleted",
            name,
            result.get("processed", 0),
            result.get("created", 0),
            result.get("deleted", 0),
        )
        return result
    except Exception as e:
        logger.error("Sweep %s failed: %s", name, e, exc_info=True)
        return {"sweep": name, "status": "failed", "error": str(e)}
    finally:
        clear_context()


@dramatiq.actor(
    queue_name=Queues.ENROLMENTS,
    max_retries=1,
    time_limit=300000,  # 5 minutes
    priority=Priority.HIGH,
)
def expire_temporary_enrolments() -> dict[str, Any]:
    """Revoke marker role assignments whose window has ended.

    Returns:
        Sweep statistics, or a failed status.
    """
    logger.info("Expiration sweep triggered")
    return _run_sweep("expire")


@dramatiq.actor(
    queue_name=Queues.ENROLMENTS,
    max_retries=1,
    time_limit=600000,  # 10 minutes
    priority=Priority.NORMAL,
)
def send_enrolment_reminders() -> dict[str, Any]:
    """Send reminder emails for active temporary enrolments.

    Returns:
        Sweep statistics, or a failed status.
    """
    logger.info("Reminder sweep triggered")
    return _run_sweep("remind")


@dramatiq.actor(
    queue_name=Queues.MAINTENANCE,
    max_retries=1,
    time_limit=600000,  # 10 minutes
    priority=Priority.LOW,
)
def backfill_existing_assignments() -> dict[str, Any]:
    """Reconcile tracking records with the configured marker role.

    Returns:
        Sweep statistics, or a failed status.
    """
    logger.info("Backfill triggered")
    return _run_sweep("backfill")


@dramatiq.actor(
    queue_name=Queues.MAINTENANCE,
    max_retries=1,
    time_limit=300000,  # 5 minutes
    priority=Priority.LOW,
)
def reconcile_enrolment_durations() -> dict[str, Any]:
    """Apply the configured duration to every tracking record.

    Returns:
        Sweep statistics, or a failed status.
    """
    logger.info("Duration reconciliation triggered")
    return _run_sweep("reconcile")


SWEEP_ACTORS = {
    "expire": expire_temporary_enrolments,
    "remind": send_enrolment_reminders,
    "backfill": backfill_existing_assignments,
    "reconcile": reconcile_enrolment_durations,
}


def get_enrolment_actors() -> list:
    """Get all temporary enrolment actors.

    Returns:
        List of actor functions.
    """
    return list(SWEEP_ACTORS.values())
