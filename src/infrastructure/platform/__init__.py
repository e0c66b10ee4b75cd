# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Host platform access.

- PlatformGateway: abstract interface used by the domain
- MoodleGateway: SQLAlchemy implementation over the Moodle schema
"""

from src.infrastructure.platform.base import (
    CourseInfo,
    PlatformGateway,
    PlatformUserInfo,
    RoleAssignment,
    UserEnrolment,
)
from src.infrastructure.platform.moodle import MoodleGateway

__all__ = [
    "CourseInfo",
    "MoodleGateway",
    "PlatformGateway",
    "PlatformUserInfo",
    "RoleAssignment",
    "UserEnrolment",
]
