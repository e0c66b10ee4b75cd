# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Temporary enrolment lifecycle engine.

The engine reacts to role assignment events from the host platform:

- Granting the marker role to a user with no other role in the context
  starts tracking (init emails to the student and the assigning teacher).
- Granting the marker role on top of another role is rejected: the new
  marker role assignment is removed again.
- Granting any other role to a tracked user upgrades the enrolment:
  the record is flagged, the upgrade email is sent and the marker role
  is removed.
- Removing the marker role ends the enrolment. Unless the record was
  upgraded, the expire email is sent. A user left without any role in
  the context is unenrolled from the course.

Every removal of the marker role, whether done by the engine itself, by
the expiration sweep or by a person, goes through on_role_unassigned.
The upgraded flag is what tells an upgrade clean-up from an expiry.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from src.domains.temporary_enrolment.config import EnrolmentConfig
from src.domains.temporary_enrolment.mailer import EnrolmentMailer
from src.domains.temporary_enrolment.store import TrackingStore
from src.domains.temporary_enrolment.templates import EmailKind
from src.infrastructure.database.models.tracking import TrackingRecord
from src.infrastructure.platform.base import PlatformGateway, RoleAssignment
from src.models.temporary_enrolment import RoleAssignedEvent, RoleUnassignedEvent
from src.utils.datetime import epoch_now

logger = logging.getLogger(__name__)


class LifecycleAction(str, Enum):
    """What the engine did in response to an event."""

    SKIPPED = "skipped"
    TRACKED = "tracked"
    REJECTED = "rejected"
    UPGRADED = "upgraded"
    EXPIRED = "expired"
    RELEASED = "released"
    UNTRACKED = "untracked"


@dataclass
class LifecycleResult:
    """Outcome of handling one event.

    Attributes:
        action: What the engine did.
        record_id: Tracking record involved, if any.
        emails_sent: Email kinds the channel accepted.
    """

    action: LifecycleAction
    record_id: int | None = None
    emails_sent: list[EmailKind] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "action": self.action.value,
            "record_id": self.record_id,
            "emails_sent": [kind.value for kind in self.emails_sent],
        }


class LifecycleEngine:
    """State machine of temporary enrolments.

    Attributes:
        store: Tracking record storage.
        gateway: Host platform access.
        mailer: Lifecycle email sender.
        config: Configuration snapshot of this invocation.
    """

    def __init__(
        self,
        store: TrackingStore,
        gateway: PlatformGateway,
        mailer: EnrolmentMailer,
        config: EnrolmentConfig,
        clock: Callable[[], int] = epoch_now,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Tracking record storage.
            gateway: Host platform access.
            mailer: Lifecycle email sender.
            config: Configuration snapshot of this invocation.
            clock: Returns the current time in epoch seconds.
        """
        self.store = store
        self.gateway = gateway
        self.mailer = mailer
        self.config = config
        self._clock = clock

    async def on_role_assigned(self, event: RoleAssignedEvent) -> LifecycleResult:
        """Handle a role being granted.

        Args:
            event: The role assignment event.

        Returns:
            TRACKED, REJECTED, UPGRADED or SKIPPED.
        """
        if not self.config.is_active:
            logger.debug(
                "Temporary enrolments inactive, ignoring role assignment %s",
                event.role_assignment_id,
            )
            return LifecycleResult(LifecycleAction.SKIPPED)

        if self.config.is_marker_role(event.role_id):
            return await self._track(event)
        return await self._upgrade(event)

    async def on_role_unassigned(self, event: RoleUnassignedEvent) -> LifecycleResult:
        """Handle a role being removed.

        The tracking record of the role assignment is deleted in every
        case, even when the feature is inactive.

        Args:
            event: The role unassignment event.

        Returns:
            EXPIRED, RELEASED, UNTRACKED or SKIPPED.
        """
        result = LifecycleResult(LifecycleAction.SKIPPED)

        if self.config.is_active and self.config.is_marker_role(event.role_id):
            record = await self.store.get_by_role_assignment_id(event.role_assignment_id)

            if record is None:
                result.action = LifecycleAction.UNTRACKED
            elif record.upgraded:
                result.action = LifecycleAction.RELEASED
                result.record_id = record.id
            else:
                result.action = LifecycleAction.EXPIRED
                result.record_id = record.id
                await self._send(
                    result,
                    EmailKind.EXPIRE,
                    recipient_id=event.subject_id,
                    subject_id=event.subject_id,
                    assigner_id=event.actor_id,
                    course_id=event.course_id,
                    time_end=record.time_end,
                )

            await self._release_enrolment(event)

        if await self.store.delete(event.role_assignment_id):
            logger.info(
                "Deleted tracking record of role assignment %s (%s)",
                event.role_assignment_id,
                result.action.value,
            )
        return result

    async def revoke_marker_role(self, assignment: RoleAssignment, actor_id: int) -> LifecycleResult:
        """Remove a marker role assignment and run the unassignment path.

        Args:
            assignment: The marker role assignment to remove.
            actor_id: User the removal is attributed to.

        Returns:
            Result of on_role_unassigned for the removed assignment.
        """
        await self.gateway.remove_role_assignment(assignment.id)
        return await self.on_role_unassigned(
            RoleUnassignedEvent(
                actor_id=actor_id,
                subject_id=assignment.user_id,
                context_id=assignment.context_id,
                course_id=assignment.course_id,
                role_id=assignment.role_id,
                role_assignment_id=assignment.id,
            )
        )

    async def _track(self, event: RoleAssignedEvent) -> LifecycleResult:
        assignments = await self.gateway.list_user_role_assignments(
            event.subject_id, event.context_id
        )

        if len(assignments) > 1:
            logger.warning(
                "User %s already holds a role in context %s, rejecting marker role assignment %s",
                event.subject_id,
                event.context_id,
                event.role_assignment_id,
            )
            await self.revoke_marker_role(
                RoleAssignment(
                    id=event.role_assignment_id,
                    role_id=event.role_id,
                    context_id=event.context_id,
                    user_id=event.subject_id,
                    course_id=event.course_id,
                ),
                actor_id=event.actor_id,
            )
            return LifecycleResult(LifecycleAction.REJECTED)

        existing = await self.store.get_by_role_assignment_id(event.role_assignment_id)
        if existing is not None:
            logger.debug("Role assignment %s is already tracked", event.role_assignment_id)
            return LifecycleResult(LifecycleAction.SKIPPED, record_id=existing.id)

        time_start = event.timestamp if event.timestamp is not None else self._clock()
        record = TrackingRecord(
            role_assignment_id=event.role_assignment_id,
            role_id=event.role_id,
            time_start=time_start,
            time_end=time_start + self.config.duration_seconds,
            upgraded=False,
        )
        record_id = await self.store.create(record)
        logger.info(
            "Tracking temporary enrolment of user %s in course %s until %s",
            event.subject_id,
            event.course_id,
            record.time_end,
        )

        result = LifecycleResult(LifecycleAction.TRACKED, record_id=record_id)
        await self._send(
            result,
            EmailKind.STUDENT_INIT,
            recipient_id=event.subject_id,
            subject_id=event.subject_id,
            assigner_id=event.actor_id,
            course_id=event.course_id,
            time_end=record.time_end,
        )
        await self._send(
            result,
            EmailKind.TEACHER_INIT,
            recipient_id=event.actor_id,
            subject_id=event.subject_id,
            assigner_id=event.actor_id,
            course_id=event.course_id,
            time_end=record.time_end,
        )
        return result

    async def _upgrade(self, event: RoleAssignedEvent) -> LifecycleResult:
        marker = await self.gateway.find_role_assignment(
            event.subject_id, event.context_id, self.config.marker_role_id
        )
        if marker is None:
            return LifecycleResult(LifecycleAction.SKIPPED)

        record = await self.store.get_by_role_assignment_id(marker.id)
        if record is None or record.upgraded:
            return LifecycleResult(LifecycleAction.SKIPPED)

        record.upgraded = True
        await self.store.update(record)
        logger.info(
            "Upgrading temporary enrolment of user %s in context %s (role %s granted)",
            event.subject_id,
            event.context_id,
            event.role_id,
        )

        result = LifecycleResult(LifecycleAction.UPGRADED, record_id=record.id)
        await self._send(
            result,
            EmailKind.UPGRADE,
            recipient_id=event.subject_id,
            subject_id=event.subject_id,
            assigner_id=event.actor_id,
            course_id=event.course_id,
            time_end=record.time_end,
        )

        await self.revoke_marker_role(marker, actor_id=event.actor_id)
        return result

    async def _release_enrolment(self, event: RoleUnassignedEvent) -> None:
        if event.course_id is None:
            return

        remaining = [
            assignment
            for assignment in await self.gateway.list_user_role_assignments(
                event.subject_id, event.context_id
            )
            if assignment.id != event.role_assignment_id
        ]
        if remaining:
            return

        await self.gateway.unenrol_user(event.subject_id, event.course_id, self.config.enrol_method)

    async def _send(self, result: LifecycleResult, kind: EmailKind, **kwargs: Any) -> None:
        sent = await self.mailer.send(kind, self.config, **kwargs)
        if sent is not None and sent.succeeded:
            result.emails_sent.append(kind)
