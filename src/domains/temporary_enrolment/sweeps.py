# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduled sweeps over tracking records.

- expire: revoke marker roles whose window has ended
- remind: send reminder emails at the configured interval
- backfill: purge records of a previous marker role and bring existing
  marker role assignments under management
- reconcile_durations: re-derive time_end after the duration changed

Each sweep re-derives what to do from persisted state, so a sweep that
failed half-way is completed by its next run.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable

from src.domains.temporary_enrolment.config import EnrolmentConfig
from src.domains.temporary_enrolment.engine import LifecycleEngine
from src.domains.temporary_enrolment.exceptions import UnknownSweepError
from src.domains.temporary_enrolment.mailer import EnrolmentMailer
from src.domains.temporary_enrolment.store import TrackingStore
from src.domains.temporary_enrolment.templates import EmailKind
from src.infrastructure.database.models.tracking import TrackingRecord
from src.infrastructure.platform.base import PlatformGateway
from src.utils.datetime import epoch_now

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Counters of one sweep run.

    Attributes:
        sweep: Sweep name.
        processed: Records (or assignments) acted upon.
        skipped: Records left alone.
        created: Records created (backfill).
        deleted: Records deleted without revoking anything.
        emails_sent: Emails the channel accepted.
        emails_failed: Emails that were attempted but not delivered.
        reason: Why the sweep did nothing, when it did nothing.
        details: Per-record notes (revoked assignments).
    """

    sweep: str
    processed: int = 0
    skipped: int = 0
    created: int = 0
    deleted: int = 0
    emails_sent: int = 0
    emails_failed: int = 0
    reason: str | None = None
    details: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return asdict(self)


class SweepJobs:
    """The four maintenance sweeps.

    Attributes:
        store: Tracking record storage.
        gateway: Host platform access.
        engine: Lifecycle engine used to revoke expired assignments.
        mailer: Lifecycle email sender.
        config: Configuration snapshot of this invocation.
    """

    def __init__(
        self,
        store: TrackingStore,
        gateway: PlatformGateway,
        engine: LifecycleEngine,
        mailer: EnrolmentMailer,
        config: EnrolmentConfig,
        clock: Callable[[], int] = epoch_now,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.engine = engine
        self.mailer = mailer
        self.config = config
        self._clock = clock

    async def expire(self) -> SweepResult:
        """Revoke the marker role of every expired, non-upgraded record.

        A record whose role assignment no longer exists is deleted.

        Returns:
            SweepResult; processed counts revoked assignments.
        """
        result = SweepResult(sweep="expire")
        if not self.config.is_active:
            result.reason = "inactive"
            logger.debug("Expiration sweep skipped: temporary enrolments inactive")
            return result

        now = self._clock()
        records = await self.store.list_expired(self.config.marker_role_id, now)

        for record in records:
            assignment = await self.gateway.get_role_assignment(record.role_assignment_id)
            if assignment is None:
                await self.store.delete(record.role_assignment_id)
                result.deleted += 1
                logger.info(
                    "Deleted tracking record of vanished role assignment %s",
                    record.role_assignment_id,
                )
                continue

            outcome = await self.engine.revoke_marker_role(
                assignment, actor_id=self.config.system_user_id
            )
            result.processed += 1
            result.emails_sent += len(outcome.emails_sent)
            result.details.append(
                {"role_assignment_id": assignment.id, "user_id": assignment.user_id}
            )

        if records:
            logger.info(
                "Expiration sweep: %d revoked, %d vanished",
                result.processed,
                result.deleted,
            )
        return result

    async def remind(self) -> SweepResult:
        """Send due reminder emails.

        A reminder is due when reminder_interval_days have passed since
        the last reminder, or since the start when none was sent yet.
        last_reminder_sent_at is only stamped when the email went out.

        Returns:
            SweepResult; processed counts records a reminder was due for.
        """
        result = SweepResult(sweep="remind")
        if not self.config.is_active:
            result.reason = "inactive"
            logger.debug("Reminder sweep skipped: temporary enrolments inactive")
            return result
        if not self.config.email_enabled(EmailKind.REMINDER):
            result.reason = "reminder email disabled"
            logger.debug("Reminder sweep skipped: reminder email disabled")
            return result

        now = self._clock()
        interval = self.config.reminder_interval_seconds

        for record in await self.store.list_active(self.config.marker_role_id, now):
            last_sent = record.last_reminder_sent_at or record.time_start
            if now - last_sent < interval:
                result.skipped += 1
                continue

            assignment = await self.gateway.get_role_assignment(record.role_assignment_id)
            if assignment is None:
                logger.warning(
                    "Role assignment %s of tracking record %s no longer exists",
                    record.role_assignment_id,
                    record.id,
                )
                result.skipped += 1
                continue

            result.processed += 1
            sent = await self.mailer.send(
                EmailKind.REMINDER,
                self.config,
                recipient_id=assignment.user_id,
                subject_id=assignment.user_id,
                assigner_id=assignment.modifier_id or self.config.system_user_id,
                course_id=assignment.course_id,
                time_end=record.time_end,
            )
            if sent is not None and sent.succeeded:
                record.last_reminder_sent_at = now
                await self.store.update(record)
                result.emails_sent += 1
            else:
                result.emails_failed += 1

        if result.processed:
            logger.info(
                "Reminder sweep: %d sent, %d failed",
                result.emails_sent,
                result.emails_failed,
            )
        return result

    async def backfill(self) -> SweepResult:
        """Reconcile tracking records with the configured marker role.

        Records created under another marker role are purged. With
        manage_existing_assignments on, every marker role assignment
        without a record gets one. Running it twice changes nothing.

        Returns:
            SweepResult; deleted counts purged records, created new ones.
        """
        result = SweepResult(sweep="backfill")
        marker_role_id = self.config.marker_role_id
        if marker_role_id is None:
            result.reason = "no marker role"
            logger.debug("Backfill skipped: no marker role configured")
            return result

        result.deleted = await self.store.delete_stale(marker_role_id)
        if result.deleted:
            logger.info("Purged %d tracking records of a previous marker role", result.deleted)

        if not self.config.manage_existing_assignments:
            return result

        now = self._clock()
        for assignment in await self.gateway.list_role_assignments(marker_role_id):
            if await self.store.get_by_role_assignment_id(assignment.id) is not None:
                result.skipped += 1
                continue

            if self.config.existing_assignments_start == "assignment" and assignment.time_modified:
                time_start = assignment.time_modified
            else:
                time_start = now

            record = TrackingRecord(
                role_assignment_id=assignment.id,
                role_id=marker_role_id,
                time_start=time_start,
                time_end=time_start + self.config.duration_seconds,
                upgraded=False,
            )
            await self.store.create(record)
            result.created += 1

            if self.config.existing_assignments_send_email:
                sent = await self.mailer.send(
                    EmailKind.STUDENT_INIT,
                    self.config,
                    recipient_id=assignment.user_id,
                    subject_id=assignment.user_id,
                    assigner_id=assignment.modifier_id or self.config.system_user_id,
                    course_id=assignment.course_id,
                    time_end=record.time_end,
                )
                if sent is not None and sent.succeeded:
                    result.emails_sent += 1
                elif sent is not None:
                    result.emails_failed += 1

        if result.created:
            logger.info("Backfill created %d tracking records", result.created)
        return result

    async def reconcile_durations(self) -> SweepResult:
        """Rewrite time_end = time_start + duration where it differs.

        Returns:
            SweepResult; processed counts changed records.
        """
        result = SweepResult(sweep="reconcile")
        result.processed = await self.store.apply_duration(self.config.duration_seconds)
        if result.processed:
            logger.info(
                "Applied duration of %ds to %d tracking records",
                self.config.duration_seconds,
                result.processed,
            )
        return result

    async def run(self, name: str) -> SweepResult:
        """Run a sweep by name.

        Args:
            name: expire, remind, backfill or reconcile.

        Raises:
            UnknownSweepError: If no sweep has that name.
        """
        sweeps = {
            "expire": self.expire,
            "remind": self.remind,
            "backfill": self.backfill,
            "reconcile": self.reconcile_durations,
        }
        if name not in sweeps:
            raise UnknownSweepError(f"Unknown sweep: {name}")
        return await sweeps[name]()
