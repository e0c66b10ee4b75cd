# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory fakes and fixtures for temporary enrolment unit tests.

The fakes implement the real TrackingStore, PlatformGateway and
BaseChannel interfaces, so the engine, mailer and sweeps run unmodified.

Fixture population:
    users 2 (system), 3 (teacher), 57 (student), 58 (second student)
    course 12 in context 310
    marker role 9, student role 5
"""

from typing import Any, Callable

import pytest

from src.domains.temporary_enrolment.config import EnrolmentConfig
from src.domains.temporary_enrolment.service import TemporaryEnrolmentService, build_service
from src.domains.temporary_enrolment.store import TrackingStore
from src.domains.temporary_enrolment.templates import EmailKind
from src.infrastructure.database.models.tracking import TrackingRecord
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    NotificationPayload,
)
from src.infrastructure.platform.base import (
    CourseInfo,
    PlatformGateway,
    PlatformUserInfo,
    RoleAssignment,
    UserEnrolment,
)
from src.models.temporary_enrolment import RoleAssignedEvent, RoleUnassignedEvent

MARKER_ROLE = 9
STUDENT_ROLE = 5
CONTEXT = 310
COURSE = 12
SYSTEM_USER = 2
TEACHER = 3
STUDENT = 57
DAY = 86400


class FakeClock:
    """Settable clock returning epoch seconds."""

    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class FakeTrackingStore(TrackingStore):
    """Tracking store keyed by role assignment ID."""

    def __init__(self) -> None:
        self.records: dict[int, TrackingRecord] = {}
        self._next_id = 1

    async def create(self, record: TrackingRecord) -> int:
        if record.role_assignment_id in self.records:
            raise ValueError(f"duplicate role assignment {record.role_assignment_id}")
        record.id = self._next_id
        self._next_id += 1
        self.records[record.role_assignment_id] = record
        return record.id

    async def get_by_role_assignment_id(self, role_assignment_id: int) -> TrackingRecord | None:
        return self.records.get(role_assignment_id)

    async def update(self, record: TrackingRecord) -> None:
        self.records[record.role_assignment_id] = record

    async def delete(self, role_assignment_id: int) -> bool:
        return self.records.pop(role_assignment_id, None) is not None

    async def list_all(self) -> list[TrackingRecord]:
        return sorted(self.records.values(), key=lambda r: r.id)

    async def delete_stale(self, current_role_id: int) -> int:
        stale = [k for k, r in self.records.items() if r.role_id != current_role_id]
        for key in stale:
            del self.records[key]
        return len(stale)

    async def list_expired(self, role_id: int, now: int) -> list[TrackingRecord]:
        return sorted(
            (
                r
                for r in self.records.values()
                if r.role_id == role_id and not r.upgraded and r.time_end <= now
            ),
            key=lambda r: r.time_end,
        )

    async def list_active(self, role_id: int, now: int) -> list[TrackingRecord]:
        return sorted(
            (
                r
                for r in self.records.values()
                if r.role_id == role_id and not r.upgraded and r.time_end > now
            ),
            key=lambda r: r.time_end,
        )

    async def apply_duration(self, duration_seconds: int) -> int:
        changed = 0
        for record in self.records.values():
            if record.time_end != record.time_start + duration_seconds:
                record.time_end = record.time_start + duration_seconds
                changed += 1
        return changed

    def add(self, role_assignment_id: int, time_start: int, duration: int, **kwargs: Any) -> TrackingRecord:
        """Insert a record directly, bypassing the engine."""
        record = TrackingRecord(
            id=self._next_id,
            role_assignment_id=role_assignment_id,
            role_id=kwargs.pop("role_id", MARKER_ROLE),
            time_start=time_start,
            time_end=time_start + duration,
            upgraded=kwargs.pop("upgraded", False),
            last_reminder_sent_at=kwargs.pop("last_reminder_sent_at", None),
        )
        self._next_id += 1
        self.records[role_assignment_id] = record
        return record


class FakeGateway(PlatformGateway):
    """Platform gateway over in-memory role assignments and enrolments."""

    def __init__(self) -> None:
        self.assignments: dict[int, RoleAssignment] = {}
        self.users: dict[int, PlatformUserInfo] = {}
        self.courses: dict[int, CourseInfo] = {}
        self.enrolments: list[UserEnrolment] = []
        self.removed: list[int] = []
        self.unenrol_calls: list[tuple[int, int, str]] = []

    def assign(
        self,
        assignment_id: int,
        user_id: int = STUDENT,
        role_id: int = MARKER_ROLE,
        context_id: int = CONTEXT,
        course_id: int | None = COURSE,
        time_modified: int = 0,
        modifier_id: int = TEACHER,
    ) -> RoleAssignment:
        """Add a role assignment."""
        assignment = RoleAssignment(
            id=assignment_id,
            role_id=role_id,
            context_id=context_id,
            user_id=user_id,
            course_id=course_id,
            time_modified=time_modified,
            modifier_id=modifier_id,
        )
        self.assignments[assignment_id] = assignment
        return assignment

    def enrol(self, user_id: int, course_id: int = COURSE, method: str = "manual") -> None:
        """Add a user enrolment."""
        self.enrolments.append(
            UserEnrolment(
                id=len(self.enrolments) + 1,
                enrol_id=100 + len(self.enrolments),
                user_id=user_id,
                course_id=course_id,
                method=method,
            )
        )

    async def get_role_assignment(self, role_assignment_id: int) -> RoleAssignment | None:
        return self.assignments.get(role_assignment_id)

    async def find_role_assignment(
        self,
        user_id: int,
        context_id: int,
        role_id: int,
    ) -> RoleAssignment | None:
        for assignment in self.assignments.values():
            if (
                assignment.user_id == user_id
                and assignment.context_id == context_id
                and assignment.role_id == role_id
            ):
                return assignment
        return None

    async def list_user_role_assignments(self, user_id: int, context_id: int) -> list[RoleAssignment]:
        return [
            a
            for a in self.assignments.values()
            if a.user_id == user_id and a.context_id == context_id
        ]

    async def list_role_assignments(
        self,
        role_id: int,
        context_id: int | None = None,
    ) -> list[RoleAssignment]:
        return [
            a
            for a in self.assignments.values()
            if a.role_id == role_id and (context_id is None or a.context_id == context_id)
        ]

    async def remove_role_assignment(self, role_assignment_id: int) -> bool:
        self.removed.append(role_assignment_id)
        return self.assignments.pop(role_assignment_id, None) is not None

    async def list_user_enrolments(self, user_id: int, course_id: int) -> list[UserEnrolment]:
        return [e for e in self.enrolments if e.user_id == user_id and e.course_id == course_id]

    async def unenrol_user(self, user_id: int, course_id: int, method: str) -> bool:
        self.unenrol_calls.append((user_id, course_id, method))
        before = len(self.enrolments)
        self.enrolments = [
            e
            for e in self.enrolments
            if not (e.user_id == user_id and e.course_id == course_id and e.method == method)
        ]
        return len(self.enrolments) < before

    async def get_user(self, user_id: int) -> PlatformUserInfo | None:
        return self.users.get(user_id)

    async def get_course(self, course_id: int) -> CourseInfo | None:
        return self.courses.get(course_id)


class FakeChannel(BaseChannel):
    """Email channel that records payloads instead of sending them."""

    def __init__(self, status: DeliveryStatus = DeliveryStatus.SENT) -> None:
        super().__init__()
        self.status = status
        self.sent: list[NotificationPayload] = []

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.EMAIL

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        self.sent.append(payload)
        if self.status == DeliveryStatus.FAILED:
            return self.create_failure_result("SMTP error: connection refused")
        if self.status == DeliveryStatus.SKIPPED:
            return self.create_skipped_result("SMTP configuration incomplete")
        return self.create_success_result(message_id=f"<{len(self.sent)}@test>")

    def kinds(self) -> list[str]:
        """Notification types in send order."""
        return [p.notification_type for p in self.sent]

    def sent_to(self, kind: EmailKind) -> list[int]:
        """Recipients of one email kind."""
        return [p.recipient_id for p in self.sent if p.notification_type == kind.value]


@pytest.fixture
def clock(t0: int) -> FakeClock:
    """Clock starting at t0."""
    return FakeClock(t0)


@pytest.fixture
def store() -> FakeTrackingStore:
    """Empty tracking store."""
    return FakeTrackingStore()


@pytest.fixture
def gateway() -> FakeGateway:
    """Gateway with users and a course, no role assignments."""
    gw = FakeGateway()
    gw.users[SYSTEM_USER] = PlatformUserInfo(SYSTEM_USER, "admin@example.edu", "Admin", "User")
    gw.users[TEACHER] = PlatformUserInfo(TEACHER, "hopper@example.edu", "Grace", "Hopper")
    gw.users[STUDENT] = PlatformUserInfo(STUDENT, "ada@example.edu", "Ada", "Lovelace")
    gw.users[58] = PlatformUserInfo(58, "alan@example.edu", "Alan", "Turing")
    gw.courses[COURSE] = CourseInfo(COURSE, "Introduction to Computing")
    return gw


@pytest.fixture
def channel() -> FakeChannel:
    """Channel accepting every email."""
    return FakeChannel()


@pytest.fixture
def config() -> EnrolmentConfig:
    """Active configuration with the built-in templates."""
    return EnrolmentConfig(
        enabled=True,
        marker_role_id=MARKER_ROLE,
        duration_seconds=14 * DAY,
        reminder_interval_days=7,
        email_switches={kind: True for kind in EmailKind},
    )


@pytest.fixture
def make_service(
    store: FakeTrackingStore,
    gateway: FakeGateway,
    channel: FakeChannel,
    config: EnrolmentConfig,
    clock: FakeClock,
) -> Callable[..., TemporaryEnrolmentService]:
    """Build a service over the fakes, optionally with config overrides."""

    def _make(**overrides: Any) -> TemporaryEnrolmentService:
        cfg = config.model_copy(update=overrides) if overrides else config
        return build_service(store, gateway, channel, cfg, clock=clock)

    return _make


@pytest.fixture
def service(make_service: Callable[..., TemporaryEnrolmentService]) -> TemporaryEnrolmentService:
    """Service over the fakes with the default active configuration."""
    return make_service()


@pytest.fixture
def assigned() -> Callable[..., RoleAssignedEvent]:
    """Factory for role assigned events (marker role to the student by the teacher)."""

    def _make(**overrides: Any) -> RoleAssignedEvent:
        values: dict[str, Any] = {
            "actor_id": TEACHER,
            "subject_id": STUDENT,
            "context_id": CONTEXT,
            "course_id": COURSE,
            "role_id": MARKER_ROLE,
            "role_assignment_id": 1001,
        }
        values.update(overrides)
        return RoleAssignedEvent(**values)

    return _make


@pytest.fixture
def unassigned() -> Callable[..., RoleUnassignedEvent]:
    """Factory for role unassigned events (marker role from the student)."""

    def _make(**overrides: Any) -> RoleUnassignedEvent:
        values: dict[str, Any] = {
            "actor_id": TEACHER,
            "subject_id": STUDENT,
            "context_id": CONTEXT,
            "course_id": COURSE,
            "role_id": MARKER_ROLE,
            "role_assignment_id": 1001,
        }
        values.update(overrides)
        return RoleUnassignedEvent(**values)

    return _make
