# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mappings of the host platform (Moodle) tables the service touches.

These tables are owned by the platform. Only the columns the service
reads or filters on are mapped, and migrations never create or alter
them (see PLATFORM_TABLES).
"""

from sqlalchemy import BigInteger, Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base

PLATFORM_TABLE_PREFIX = "mdl_"

# Moodle context level of a course context
CONTEXT_COURSE = 50


def _table(name: str) -> str:
    return f"{PLATFORM_TABLE_PREFIX}{name}"


class PlatformRole(Base):
    """A role definition."""

    __tablename__ = _table("role")

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    shortname: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")


class PlatformContext(Base):
    """A permission context (course, category, module...)."""

    __tablename__ = _table("context")

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    contextlevel: Mapped[int] = mapped_column(BigInteger, nullable=False)
    instanceid: Mapped[int] = mapped_column(BigInteger, nullable=False)


class PlatformRoleAssignment(Base):
    """A role granted to a user in a context."""

    __tablename__ = _table("role_assignments")

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    roleid: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    contextid: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    userid: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    timemodified: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    modifierid: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    component: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    itemid: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class PlatformUser(Base):
    """A platform user account."""

    __tablename__ = _table("user")

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    email: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    firstname: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    lastname: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    deleted: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)


class PlatformCourse(Base):
    """A course."""

    __tablename__ = _table("course")

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    fullname: Mapped[str] = mapped_column(String(254), nullable=False, default="")
    shortname: Mapped[str] = mapped_column(String(255), nullable=False, default="")


class PlatformEnrol(Base):
    """An enrolment method instance of a course (manual, self, cohort...)."""

    __tablename__ = _table("enrol")

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    enrol: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    courseid: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)


class PlatformUserEnrolment(Base):
    """A user's participation through one enrolment method instance."""

    __tablename__ = _table("user_enrolments")

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    status: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    enrolid: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    userid: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    timestart: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    timeend: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


PLATFORM_TABLES = frozenset(
    model.__tablename__
    for model in (
        PlatformRole,
        PlatformContext,
        PlatformRoleAssignment,
        PlatformUser,
        PlatformCourse,
        PlatformEnrol,
        PlatformUserEnrolment,
    )
)
