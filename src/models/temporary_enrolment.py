# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Temporary enrolment API schemas.

Request bodies are the role assignment events the host platform
delivers to the webhooks; responses describe what the service did.
Times are Unix epoch seconds throughout.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class RoleAssignedEvent(BaseModel):
    """A role was granted to a user in a context."""

    actor_id: int = Field(description="User who granted the role")
    subject_id: int = Field(description="User the role was granted to")
    context_id: int = Field(description="Context the role was granted in")
    course_id: int | None = Field(
        default=None,
        description="Course of the context, if it is a course context",
    )
    role_id: int = Field(description="Granted role")
    role_assignment_id: int = Field(description="ID of the new role assignment")
    timestamp: int | None = Field(
        default=None,
        ge=0,
        description="When the role was granted. Defaults to the time of receipt.",
    )


class RoleUnassignedEvent(BaseModel):
    """A role was removed from a user in a context."""

    actor_id: int = Field(description="User who removed the role")
    subject_id: int = Field(description="User the role was removed from")
    context_id: int = Field(description="Context the role was removed in")
    course_id: int | None = Field(
        default=None,
        description="Course of the context, if it is a course context",
    )
    role_id: int = Field(description="Removed role")
    role_assignment_id: int = Field(description="ID of the removed role assignment")


class LifecycleResultResponse(BaseModel):
    """Outcome of handling a role assignment event."""

    action: str = Field(description="What the engine did (tracked, upgraded, expired, ...)")
    record_id: int | None = Field(default=None, description="Tracking record involved")
    emails_sent: list[str] = Field(
        default_factory=list,
        description="Email kinds that were delivered to the mail server",
    )


class TrackingRecordResponse(BaseModel):
    """A tracking record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    role_assignment_id: int
    role_id: int
    time_start: int
    time_end: int
    upgraded: bool
    last_reminder_sent_at: int | None = None


class TrackingRecordListResponse(BaseModel):
    """All tracking records."""

    items: list[TrackingRecordResponse]
    total: int


SweepName = Literal["expire", "remind", "backfill", "reconcile"]


class SweepQueuedResponse(BaseModel):
    """Acknowledgement of an enqueued sweep."""

    sweep: SweepName
    message_id: str = Field(description="Dramatiq message ID")
    status: str = "queued"
