# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Host platform gateway interface.

The temporary enrolment domain never touches platform tables directly:
everything it needs from the host (role assignments, users, courses,
enrolments) goes through a PlatformGateway. Values cross the boundary as
plain frozen dataclasses so the domain does not depend on ORM state.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RoleAssignment:
    """A role granted to a user in a context.

    Attributes:
        id: Role assignment ID.
        role_id: Granted role.
        context_id: Context the role is granted in.
        user_id: User holding the role.
        course_id: Course of the context, None for non-course contexts.
        time_modified: When the assignment was made (epoch seconds).
        modifier_id: User who made the assignment (0 if unknown).
    """

    id: int
    role_id: int
    context_id: int
    user_id: int
    course_id: int | None = None
    time_modified: int = 0
    modifier_id: int = 0


@dataclass(frozen=True)
class PlatformUserInfo:
    """A platform user as seen by the mailer."""

    id: int
    email: str
    first_name: str
    last_name: str

    @property
    def full_name(self) -> str:
        """First and last name joined by a space."""
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class CourseInfo:
    """A course as seen by the mailer."""

    id: int
    full_name: str


@dataclass(frozen=True)
class UserEnrolment:
    """A user's enrolment in a course through one enrolment method.

    Attributes:
        id: User enrolment ID.
        enrol_id: Enrolment method instance ID.
        user_id: Enrolled user.
        course_id: Course of the enrolment method instance.
        method: Enrolment method name (manual, self, ...).
    """

    id: int
    enrol_id: int
    user_id: int
    course_id: int
    method: str


class PlatformGateway(ABC):
    """Access to the host platform's role and enrolment data."""

    @abstractmethod
    async def get_role_assignment(self, role_assignment_id: int) -> RoleAssignment | None:
        """Get a role assignment by ID."""
        ...

    @abstractmethod
    async def find_role_assignment(
        self,
        user_id: int,
        context_id: int,
        role_id: int,
    ) -> RoleAssignment | None:
        """Find the assignment of a specific role to a user in a context."""
        ...

    @abstractmethod
    async def list_user_role_assignments(
        self,
        user_id: int,
        context_id: int,
    ) -> list[RoleAssignment]:
        """List every role assignment a user holds in a context."""
        ...

    @abstractmethod
    async def list_role_assignments(
        self,
        role_id: int,
        context_id: int | None = None,
    ) -> list[RoleAssignment]:
        """List assignments of a role, optionally restricted to one context."""
        ...

    @abstractmethod
    async def remove_role_assignment(self, role_assignment_id: int) -> bool:
        """Remove a role assignment.

        Returns:
            True if an assignment was removed, False if it did not exist.
        """
        ...

    @abstractmethod
    async def list_user_enrolments(self, user_id: int, course_id: int) -> list[UserEnrolment]:
        """List a user's enrolments in a course across all methods."""
        ...

    @abstractmethod
    async def unenrol_user(self, user_id: int, course_id: int, method: str) -> bool:
        """Remove a user's enrolment through the given method.

        Returns:
            True if an enrolment was removed, False if there was none.
        """
        ...

    @abstractmethod
    async def get_user(self, user_id: int) -> PlatformUserInfo | None:
        """Get a (non-deleted) user by ID."""
        ...

    @abstractmethod
    async def get_course(self, course_id: int) -> CourseInfo | None:
        """Get a course by ID."""
        ...
