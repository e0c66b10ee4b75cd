# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM models.

- tracking: the service's own tracking table
- platform: read/write mappings of the host platform tables
"""

from src.infrastructure.database.models.base import Base
from src.infrastructure.database.models.platform import (
    CONTEXT_COURSE,
    PLATFORM_TABLES,
    PlatformContext,
    PlatformCourse,
    PlatformEnrol,
    PlatformRole,
    PlatformRoleAssignment,
    PlatformUser,
    PlatformUserEnrolment,
)
from src.infrastructure.database.models.tracking import TrackingRecord

__all__ = [
    "Base",
    "TrackingRecord",
    "CONTEXT_COURSE",
    "PLATFORM_TABLES",
    "PlatformContext",
    "PlatformCourse",
    "PlatformEnrol",
    "PlatformRole",
    "PlatformRoleAssignment",
    "PlatformUser",
    "PlatformUserEnrolment",
]
