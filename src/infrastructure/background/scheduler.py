# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduler for periodic Dramatiq tasks.

Uses APScheduler for cron-style job scheduling integrated with Dramatiq
actors. The scheduler only enqueues messages; the sweeps themselves run
in the Dramatiq workers.

Default jobs (see start_scheduler):
- expiration sweep every WORKER_EXPIRE_INTERVAL_MINUTES
- reminder sweep on WORKER_REMINDER_CRON
- backfill and duration reconciliation once at start
  (WORKER_MAINTENANCE_ON_START)

Example:
    from src.infrastructure.background.scheduler import get_scheduler

    scheduler = get_scheduler()
    await scheduler.start()

    scheduler.add_interval_task(
        name="Expire Temporary Enrolments",
        actor_name="expire_temporary_enrolments",
        minutes=5,
    )
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import uuid4

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from src.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class ScheduledTask:
    """Configuration for a scheduled Dramatiq task.

    Attributes:
        id: Unique task identifier.
        name: Human-readable task name.
        actor_name: Name of the Dramatiq actor to call.
        args: Positional arguments for the actor.
        kwargs: Keyword arguments for the actor.
        enabled: Whether the task is enabled.
        last_run: Last run timestamp.
        run_count: Total number of runs.
        error_count: Number of failed runs.
    """

    name: str
    actor_name: str
    args: tuple = field(default_factory=tuple)
    kwargs: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid4()))
    enabled: bool = True
    last_run: datetime | None = None
    run_count: int = 0
    error_count: int = 0


class DramatiqScheduler:
    """Scheduler for periodic Dramatiq task execution.

    Integrates APScheduler with Dramatiq actors for cron-style,
    interval-based and one-off job scheduling.

    Attributes:
        _scheduler: APScheduler instance.
        _tasks: Dictionary of scheduled tasks.
        _running: Whether scheduler is running.
    """

    def __init__(self) -> None:
        """Initialize the scheduler."""
        self._scheduler: AsyncIOScheduler | None = None
        self._tasks: dict[str, ScheduledTask] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    def _get_actor(self, actor_name: str) -> Callable[..., Any] | None:
        """Get a Dramatiq actor by name.

        Args:
            actor_name: Name of the actor.

        Returns:
            Actor or None.
        """
        from src.infrastructure.background import tasks

        return getattr(tasks, actor_name, None)

    def _register(
        self,
        name: str,
        actor_name: str,
        args: tuple,
        kwargs: dict[str, Any] | None,
        enabled: bool,
    ) -> ScheduledTask:
        task = ScheduledTask(
            name=name,
            actor_name=actor_name,
            args=args,
            kwargs=kwargs or {},
            enabled=enabled,
        )
        self._tasks[task.id] = task
        return task

    def add_cron_task(
        self,
        name: str,
        actor_name: str,
        cron_expression: str,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
        enabled: bool = True,
    ) -> ScheduledTask:
        """Add a cron-scheduled task.

        Args:
            name: Task name.
            actor_name: Dramatiq actor to call.
            cron_expression: Cron expression (minute hour day month weekday).
            args: Actor arguments.
            kwargs: Actor keyword arguments.
            enabled: Whether task is enabled.

        Returns:
            Created ScheduledTask.

        Raises:
            ValueError: If the cron expression is invalid.
        """
        parts = cron_expression.split()
        if len(parts) != 5:
            raise ValueError(f"Invalid cron expression: {cron_expression}")

        task = self._register(name, actor_name, args, kwargs, enabled)

        if self._scheduler and enabled:
            trigger = CronTrigger(
                minute=parts[0],
                hour=parts[1],
                day=parts[2],
                month=parts[3],
                day_of_week=parts[4],
            )
            self._scheduler.add_job(
                self._execute_task,
                trigger=trigger,
                args=[task.id],
                id=task.id,
                name=name,
            )

        logger.info("Added cron task: %s (%s)", name, cron_expression)
        return task

    def add_interval_task(
        self,
        name: str,
        actor_name: str,
        seconds: int = 0,
        minutes: int = 0,
        hours: int = 0,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
        enabled: bool = True,
        start_immediately: bool = False,
    ) -> ScheduledTask:
        """Add an interval-scheduled task.

        Args:
            name: Task name.
            actor_name: Dramatiq actor to call.
            seconds: Interval seconds.
            minutes: Interval minutes.
            hours: Interval hours.
            args: Actor arguments.
            kwargs: Actor keyword arguments.
            enabled: Whether task is enabled.
            start_immediately: Run immediately on start.

        Returns:
            Created ScheduledTask.
        """
        task = self._register(name, actor_name, args, kwargs, enabled)

        if self._scheduler and enabled:
            trigger = IntervalTrigger(seconds=seconds, minutes=minutes, hours=hours)
            next_run = datetime.now(timezone.utc) if start_immediately else None

            self._scheduler.add_job(
                self._execute_task,
                trigger=trigger,
                args=[task.id],
                id=task.id,
                name=name,
                next_run_time=next_run,
            )

        logger.info(
            "Added interval task: %s (every %dh %dm %ds)",
            name,
            hours,
            minutes,
            seconds,
        )
        return task

    def add_startup_task(
        self,
        name: str,
        actor_name: str,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
    ) -> ScheduledTask:
        """Add a task that runs once, right away.

        Args:
            name: Task name.
            actor_name: Dramatiq actor to call.
            args: Actor arguments.
            kwargs: Actor keyword arguments.

        Returns:
            Created ScheduledTask.
        """
        task = self._register(name, actor_name, args, kwargs, True)

        if self._scheduler:
            self._scheduler.add_job(
                self._execute_task,
                trigger=DateTrigger(run_date=datetime.now(timezone.utc)),
                args=[task.id],
                id=task.id,
                name=name,
            )

        logger.info("Added startup task: %s", name)
        return task

    async def _execute_task(self, task_id: str) -> None:
        """Send a scheduled task to Dramatiq.

        Args:
            task_id: ID of the task to execute.
        """
        task = self._tasks.get(task_id)
        if not task or not task.enabled:
            return

        logger.debug("Executing scheduled task: %s", task.name)

        actor = self._get_actor(task.actor_name)
        if actor is None:
            task.error_count += 1
            logger.error("Scheduled task %s failed: actor not found: %s", task.name, task.actor_name)
            return

        try:
            actor.send(*task.args, **task.kwargs)
        except Exception as e:
            task.error_count += 1
            logger.error("Scheduled task %s failed: %s", task.name, str(e))
            return

        task.last_run = datetime.now(timezone.utc)
        task.run_count += 1
        logger.debug("Scheduled task %s sent to queue", task.name)

    def list_tasks(self) -> list[ScheduledTask]:
        """List all scheduled tasks."""
        return list(self._tasks.values())

    async def start(self) -> None:
        """Start the scheduler."""
        if self._running:
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.start()
        self._running = True

        logger.info("Dramatiq scheduler started")

    async def stop(self) -> None:
        """Stop the scheduler."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self._running = False
        logger.info("Dramatiq scheduler stopped")


# Singleton instance
_scheduler: DramatiqScheduler | None = None


def get_scheduler() -> DramatiqScheduler:
    """Get the singleton scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = DramatiqScheduler()
    return _scheduler


async def start_scheduler() -> DramatiqScheduler:
    """Start the scheduler and register the sweep jobs.

    Returns:
        Started scheduler instance.
    """
    worker = get_settings().worker
    scheduler = get_scheduler()
    await scheduler.start()

    if not scheduler.is_running:
        return scheduler

    scheduler.add_interval_task(
        name="Expire Temporary Enrolments",
        actor_name="expire_temporary_enrolments",
        minutes=worker.expire_interval_minutes,
    )

    scheduler.add_cron_task(
        name="Temporary Enrolment Reminders",
        actor_name="send_enrolment_reminders",
        cron_expression=worker.reminder_cron,
    )

    if worker.maintenance_on_start:
        scheduler.add_startup_task(
            name="Backfill Existing Assignments",
            actor_name="backfill_existing_assignments",
        )
        scheduler.add_startup_task(
            name="Reconcile Enrolment Durations",
            actor_name="reconcile_enrolment_durations",
        )

    logger.info("Registered %d default scheduled tasks", len(scheduler.list_tasks()))
    return scheduler


async def stop_scheduler() -> None:
    """Stop the scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None
