# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""PlatformGateway over the Moodle database schema.

Role assignments are joined with their context to resolve the course
they belong to (course contexts have contextlevel 50 and carry the
course ID as instanceid).
"""

import logging

from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models.platform import (
    CONTEXT_COURSE,
    PlatformContext,
    PlatformCourse,
    PlatformEnrol,
    PlatformRoleAssignment,
    PlatformUser,
    PlatformUserEnrolment,
)
from src.infrastructure.platform.base import (
    CourseInfo,
    PlatformGateway,
    PlatformUserInfo,
    RoleAssignment,
    UserEnrolment,
)

logger = logging.getLogger(__name__)


class MoodleGateway(PlatformGateway):
    """SQLAlchemy implementation of PlatformGateway for Moodle.

    The gateway works inside the caller's session and never commits;
    the unit of work owning the session does.

    Removals are plain row deletes on mdl_role_assignments and
    mdl_user_enrolments. Moodle's own role_unassign() and enrol plugin
    unenrol_user() do more: they mark the context dirty so cached
    capabilities are rebuilt, remove group memberships, and fire the
    platform's events. None of that happens here. Until caches expire,
    Moodle may still treat the user as holding the role. Deployments
    that rely on group clean-up or Moodle event observers need a
    gateway that calls the core_role_unassign_roles and
    enrol_manual_unenrol_users web services instead.

    Attributes:
        session: Async database session.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the gateway.

        Args:
            session: Async database session.
        """
        self.session = session

    def _role_assignment_query(self):
        return select(
            PlatformRoleAssignment,
            PlatformContext.contextlevel,
            PlatformContext.instanceid,
        ).outerjoin(
            PlatformContext,
            PlatformContext.id == PlatformRoleAssignment.contextid,
        )

    @staticmethod
    def _to_role_assignment(row) -> RoleAssignment:
        assignment, contextlevel, instanceid = row
        return RoleAssignment(
            id=assignment.id,
            role_id=assignment.roleid,
            context_id=assignment.contextid,
            user_id=assignment.userid,
            course_id=instanceid if contextlevel == CONTEXT_COURSE else None,
            time_modified=assignment.timemodified or 0,
            modifier_id=assignment.modifierid or 0,
        )

    async def get_role_assignment(self, role_assignment_id: int) -> RoleAssignment | None:
        query = self._role_assignment_query().where(
            PlatformRoleAssignment.id == role_assignment_id
        )
        result = await self.session.execute(query)
        row = result.first()
        return self._to_role_assignment(row) if row else None

    async def find_role_assignment(
        self,
        user_id: int,
        context_id: int,
        role_id: int,
    ) -> RoleAssignment | None:
        query = (
            self._role_assignment_query()
            .where(
                PlatformRoleAssignment.userid == user_id,
                PlatformRoleAssignment.contextid == context_id,
                PlatformRoleAssignment.roleid == role_id,
            )
            .order_by(PlatformRoleAssignment.id)
            .limit(1)
        )
        result = await self.session.execute(query)
        row = result.first()
        return self._to_role_assignment(row) if row else None

    async def list_user_role_assignments(
        self,
        user_id: int,
        context_id: int,
    ) -> list[RoleAssignment]:
        query = (
            self._role_assignment_query()
            .where(
                PlatformRoleAssignment.userid == user_id,
                PlatformRoleAssignment.contextid == context_id,
            )
            .order_by(PlatformRoleAssignment.id)
        )
        result = await self.session.execute(query)
        return [self._to_role_assignment(row) for row in result.all()]

    async def list_role_assignments(
        self,
        role_id: int,
        context_id: int | None = None,
    ) -> list[RoleAssignment]:
        query = self._role_assignment_query().where(PlatformRoleAssignment.roleid == role_id)
        if context_id is not None:
            query = query.where(PlatformRoleAssignment.contextid == context_id)
        query = query.order_by(PlatformRoleAssignment.id)

        result = await self.session.execute(query)
        return [self._to_role_assignment(row) for row in result.all()]

    async def remove_role_assignment(self, role_assignment_id: int) -> bool:
        result = await self.session.execute(
            delete(PlatformRoleAssignment).where(PlatformRoleAssignment.id == role_assignment_id)
        )
        removed = result.rowcount > 0
        if removed:
            logger.info("Removed role assignment %s", role_assignment_id)
        return removed

    async def list_user_enrolments(self, user_id: int, course_id: int) -> list[UserEnrolment]:
        query = (
            select(PlatformUserEnrolment, PlatformEnrol)
            .join(PlatformEnrol, PlatformEnrol.id == PlatformUserEnrolment.enrolid)
            .where(
                PlatformUserEnrolment.userid == user_id,
                PlatformEnrol.courseid == course_id,
            )
            .order_by(PlatformUserEnrolment.id)
        )
        result = await self.session.execute(query)
        return [
            UserEnrolment(
                id=user_enrolment.id,
                enrol_id=enrol.id,
                user_id=user_enrolment.userid,
                course_id=enrol.courseid,
                method=enrol.enrol,
            )
            for user_enrolment, enrol in result.all()
        ]

    async def unenrol_user(self, user_id: int, course_id: int, method: str) -> bool:
        enrol_ids = select(PlatformEnrol.id).where(
            and_(PlatformEnrol.courseid == course_id, PlatformEnrol.enrol == method)
        )
        result = await self.session.execute(
            delete(PlatformUserEnrolment).where(
                PlatformUserEnrolment.userid == user_id,
                PlatformUserEnrolment.enrolid.in_(enrol_ids),
            )
        )
        removed = result.rowcount > 0
        if removed:
            logger.info(
                "Unenrolled user %s from course %s (%s enrolment)",
                user_id,
                course_id,
                method,
            )
        else:
            logger.debug(
                "User %s has no %s enrolment in course %s",
                user_id,
                method,
                course_id,
            )
        return removed

    async def get_user(self, user_id: int) -> PlatformUserInfo | None:
        result = await self.session.execute(
            select(PlatformUser).where(PlatformUser.id == user_id, PlatformUser.deleted == 0)
        )
        user = result.scalar_one_or_none()
        if user is None:
            return None
        return PlatformUserInfo(
            id=user.id,
            email=user.email,
            first_name=user.firstname,
            last_name=user.lastname,
        )

    async def get_course(self, course_id: int) -> CourseInfo | None:
        course = await self.session.get(PlatformCourse, course_id)
        if course is None:
            return None
        return CourseInfo(id=course.id, full_name=course.fullname)
