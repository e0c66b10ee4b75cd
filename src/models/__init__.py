# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic models shared by the API and the domain."""

from src.models.temporary_enrolment import (
    LifecycleResultResponse,
    RoleAssignedEvent,
    RoleUnassignedEvent,
    SweepName,
    SweepQueuedResponse,
    TrackingRecordListResponse,
    TrackingRecordResponse,
)

__all__ = [
    "RoleAssignedEvent",
    "RoleUnassignedEvent",
    "LifecycleResultResponse",
    "TrackingRecordResponse",
    "TrackingRecordListResponse",
    "SweepName",
    "SweepQueuedResponse",
]
