# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the temporary enrolment lifecycle engine."""

import pytest

from src.domains.temporary_enrolment.engine import LifecycleAction, LifecycleResult
from src.domains.temporary_enrolment.templates import EmailKind
from src.infrastructure.notifications.channels.base import DeliveryStatus

MARKER_ROLE = 9
STUDENT_ROLE = 5
COURSE = 12
TEACHER = 3
STUDENT = 57
DAY = 86400


class TestRoleAssignedTracking:
    """Tests for granting the marker role."""

    @pytest.mark.asyncio
    async def test_marker_role_on_fresh_user_creates_record(
        self, service, store, gateway, channel, assigned, t0
    ):
        """Test that the marker role alone starts a tracked window."""
        gateway.assign(1001)

        result = await service.engine.on_role_assigned(assigned(timestamp=t0))

        assert result.action == LifecycleAction.TRACKED
        assert len(store.records) == 1
        record = store.records[1001]
        assert result.record_id == record.id
        assert record.role_id == MARKER_ROLE
        assert record.time_start == t0
        assert record.time_end == t0 + 14 * DAY
        assert record.upgraded is False

    @pytest.mark.asyncio
    async def test_worked_example_end_time(self, service, store, gateway, assigned, t0):
        """Test the 14 day duration yields time_end = t0 + 1209600."""
        gateway.assign(1001)

        await service.engine.on_role_assigned(assigned(timestamp=t0))

        assert store.records[1001].time_end == t0 + 1209600

    @pytest.mark.asyncio
    async def test_missing_timestamp_uses_clock(self, service, store, gateway, assigned, clock):
        """Test that the time of receipt is used without an event timestamp."""
        clock.now = 1_800_000_000
        gateway.assign(1001)

        await service.engine.on_role_assigned(assigned())

        assert store.records[1001].time_start == 1_800_000_000

    @pytest.mark.asyncio
    async def test_init_emails_go_to_student_and_teacher(self, service, gateway, channel, assigned):
        """Test that both initial emails are sent to the right people."""
        gateway.assign(1001)

        result = await service.engine.on_role_assigned(assigned())

        assert channel.sent_to(EmailKind.STUDENT_INIT) == [STUDENT]
        assert channel.sent_to(EmailKind.TEACHER_INIT) == [TEACHER]
        assert result.emails_sent == [EmailKind.STUDENT_INIT, EmailKind.TEACHER_INIT]

    @pytest.mark.asyncio
    async def test_teacher_email_names_student(self, service, gateway, channel, assigned):
        """Test the teacher email is rendered with the student and course."""
        gateway.assign(1001)

        await service.engine.on_role_assigned(assigned())

        teacher_mail = next(p for p in channel.sent if p.notification_type == "teacher_init")
        assert teacher_mail.title == (
            "Temporary enrolment granted to Ada Lovelace for Introduction to Computing"
        )
        assert teacher_mail.message.startswith("Dear Grace,")

    @pytest.mark.asyncio
    async def test_repeated_event_does_not_duplicate(self, service, store, gateway, channel, assigned):
        """Test that a replayed event leaves the single record alone."""
        gateway.assign(1001)
        await service.engine.on_role_assigned(assigned())
        channel.sent.clear()

        result = await service.engine.on_role_assigned(assigned())

        assert result.action == LifecycleAction.SKIPPED
        assert len(store.records) == 1
        assert channel.sent == []

    @pytest.mark.asyncio
    async def test_failed_email_keeps_record(self, service, store, gateway, channel, assigned):
        """Test that SMTP failures do not undo tracking."""
        channel.status = DeliveryStatus.FAILED
        gateway.assign(1001)

        result = await service.engine.on_role_assigned(assigned())

        assert result.action == LifecycleAction.TRACKED
        assert 1001 in store.records
        assert result.emails_sent == []
        assert len(channel.sent) == 2

    @pytest.mark.asyncio
    async def test_disabled_email_is_not_sent(self, make_service, gateway, channel, assigned):
        """Test that a switched-off kind is skipped while the other goes out."""
        service = make_service(
            email_switches={kind: kind != EmailKind.TEACHER_INIT for kind in EmailKind}
        )
        gateway.assign(1001)

        await service.engine.on_role_assigned(assigned())

        assert channel.kinds() == ["student_init"]

    @pytest.mark.asyncio
    async def test_empty_template_disables_email(self, make_service, gateway, channel, assigned):
        """Test that an empty template acts like a disabled switch."""
        service = make_service(templates={EmailKind.STUDENT_INIT: "   "})
        gateway.assign(1001)

        await service.engine.on_role_assigned(assigned())

        assert channel.kinds() == ["teacher_init"]


class TestRoleAssignedRejection:
    """Tests for granting the marker role on top of another role."""

    @pytest.mark.asyncio
    async def test_marker_role_on_enrolled_user_is_removed(
        self, service, store, gateway, channel, assigned
    ):
        """Test that no record is created and the marker role is revoked."""
        gateway.assign(1000, role_id=STUDENT_ROLE)
        gateway.assign(1001)
        gateway.enrol(STUDENT)

        result = await service.engine.on_role_assigned(assigned())

        assert result.action == LifecycleAction.REJECTED
        assert store.records == {}
        assert gateway.removed == [1001]
        assert 1001 not in gateway.assignments
        assert 1000 in gateway.assignments

    @pytest.mark.asyncio
    async def test_rejection_keeps_enrolment_and_sends_nothing(
        self, service, gateway, channel, assigned
    ):
        """Test that the remaining role keeps the user enrolled."""
        gateway.assign(1000, role_id=STUDENT_ROLE)
        gateway.assign(1001)
        gateway.enrol(STUDENT)

        await service.engine.on_role_assigned(assigned())

        assert gateway.unenrol_calls == []
        assert len(gateway.enrolments) == 1
        assert channel.sent == []


class TestRoleAssignedUpgrade:
    """Tests for granting a permanent role to a temporarily enrolled user."""

    @pytest.mark.asyncio
    async def test_upgrade_flags_record_and_removes_marker(
        self, service, store, gateway, channel, assigned, t0
    ):
        """Test that a new role upgrades the tracked enrolment."""
        store.add(1001, t0, 14 * DAY)
        gateway.assign(1001)
        gateway.assign(1002, role_id=STUDENT_ROLE)
        gateway.enrol(STUDENT)

        result = await service.engine.on_role_assigned(
            assigned(role_id=STUDENT_ROLE, role_assignment_id=1002)
        )

        assert result.action == LifecycleAction.UPGRADED
        assert result.emails_sent == [EmailKind.UPGRADE]
        assert gateway.removed == [1001]
        assert 1002 in gateway.assignments

    @pytest.mark.asyncio
    async def test_upgrade_sends_no_expire_email_and_keeps_enrolment(
        self, service, store, gateway, channel, assigned, t0
    ):
        """Test that the marker removal after an upgrade is not an expiry."""
        store.add(1001, t0, 14 * DAY)
        gateway.assign(1001)
        gateway.assign(1002, role_id=STUDENT_ROLE)
        gateway.enrol(STUDENT)

        await service.engine.on_role_assigned(
            assigned(role_id=STUDENT_ROLE, role_assignment_id=1002)
        )

        assert channel.kinds() == ["upgrade"]
        assert store.records == {}
        assert gateway.unenrol_calls == []

    @pytest.mark.asyncio
    async def test_unassign_after_upgrade_is_silent(
        self, service, store, gateway, channel, assigned, unassigned, t0
    ):
        """Test that the host's follow-up unassign event sends no expire email."""
        store.add(1001, t0, 14 * DAY)
        gateway.assign(1001)
        gateway.assign(1002, role_id=STUDENT_ROLE)
        await service.engine.on_role_assigned(
            assigned(role_id=STUDENT_ROLE, role_assignment_id=1002)
        )
        channel.sent.clear()

        result = await service.engine.on_role_unassigned(unassigned())

        assert result.action == LifecycleAction.UNTRACKED
        assert channel.sent == []

    @pytest.mark.asyncio
    async def test_upgraded_record_released_without_email(
        self, service, store, gateway, channel, unassigned, t0
    ):
        """Test that removing the marker of an upgraded record deletes it silently."""
        store.add(1001, t0, 14 * DAY, upgraded=True)
        gateway.assign(1002, role_id=STUDENT_ROLE)

        result = await service.engine.on_role_unassigned(unassigned())

        assert result.action == LifecycleAction.RELEASED
        assert channel.sent == []
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_role_without_marker_is_ignored(self, service, store, gateway, channel, assigned):
        """Test that ordinary role grants do nothing."""
        gateway.assign(1002, role_id=STUDENT_ROLE)

        result = await service.engine.on_role_assigned(
            assigned(role_id=STUDENT_ROLE, role_assignment_id=1002)
        )

        assert result.action == LifecycleAction.SKIPPED
        assert gateway.removed == []
        assert channel.sent == []

    @pytest.mark.asyncio
    async def test_untracked_marker_is_not_upgraded(self, service, store, gateway, channel, assigned):
        """Test that a marker role assignment without a record is left alone."""
        gateway.assign(1001)
        gateway.assign(1002, role_id=STUDENT_ROLE)

        result = await service.engine.on_role_assigned(
            assigned(role_id=STUDENT_ROLE, role_assignment_id=1002)
        )

        assert result.action == LifecycleAction.SKIPPED
        assert gateway.removed == []

    @pytest.mark.asyncio
    async def test_already_upgraded_record_is_skipped(
        self, service, store, gateway, channel, assigned, t0
    ):
        """Test that a second permanent role does not send a second upgrade email."""
        store.add(1001, t0, 14 * DAY, upgraded=True)
        gateway.assign(1001)
        gateway.assign(1003, role_id=4)

        result = await service.engine.on_role_assigned(
            assigned(role_id=4, role_assignment_id=1003)
        )

        assert result.action == LifecycleAction.SKIPPED
        assert channel.sent == []


class TestRoleUnassigned:
    """Tests for removing the marker role."""

    @pytest.mark.asyncio
    async def test_expire_sends_one_email_and_deletes(
        self, service, store, gateway, channel, unassigned, t0
    ):
        """Test the expire path for a non-upgraded record."""
        store.add(1001, t0, 14 * DAY)
        gateway.enrol(STUDENT)

        result = await service.engine.on_role_unassigned(unassigned())

        assert result.action == LifecycleAction.EXPIRED
        assert channel.kinds() == ["expire"]
        assert channel.sent_to(EmailKind.EXPIRE) == [STUDENT]
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_expire_unenrols_user_without_other_roles(
        self, service, store, gateway, unassigned, t0
    ):
        """Test that the user loses course access with the last role."""
        store.add(1001, t0, 14 * DAY)
        gateway.enrol(STUDENT)

        await service.engine.on_role_unassigned(unassigned())

        assert gateway.unenrol_calls == [(STUDENT, COURSE, "manual")]
        assert gateway.enrolments == []

    @pytest.mark.asyncio
    async def test_expire_keeps_enrolment_with_other_roles(
        self, service, store, gateway, unassigned, t0
    ):
        """Test that another role in the context keeps the user enrolled."""
        store.add(1001, t0, 14 * DAY)
        gateway.assign(1005, role_id=STUDENT_ROLE)
        gateway.enrol(STUDENT)

        await service.engine.on_role_unassigned(unassigned())

        assert gateway.unenrol_calls == []

    @pytest.mark.asyncio
    async def test_unenrol_uses_configured_method(
        self, make_service, store, gateway, unassigned, t0
    ):
        """Test that the configured enrolment method is removed."""
        service = make_service(enrol_method="self")
        store.add(1001, t0, 14 * DAY)
        gateway.enrol(STUDENT, method="self")

        await service.engine.on_role_unassigned(unassigned())

        assert gateway.unenrol_calls == [(STUDENT, COURSE, "self")]

    @pytest.mark.asyncio
    async def test_no_record_sends_nothing(self, service, store, gateway, channel, unassigned):
        """Test that an untracked marker removal is a silent no-op deletion."""
        result = await service.engine.on_role_unassigned(unassigned())

        assert result.action == LifecycleAction.UNTRACKED
        assert channel.sent == []
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_repeated_unassign_is_idempotent(
        self, service, store, gateway, channel, unassigned, t0
    ):
        """Test that replaying the removal has no further side effect."""
        store.add(1001, t0, 14 * DAY)
        gateway.enrol(STUDENT)

        await service.engine.on_role_unassigned(unassigned())
        second = await service.engine.on_role_unassigned(unassigned())

        assert second.action == LifecycleAction.UNTRACKED
        assert channel.kinds() == ["expire"]
        assert gateway.enrolments == []

    @pytest.mark.asyncio
    async def test_non_course_context_skips_unenrol(
        self, service, store, gateway, unassigned, t0
    ):
        """Test that no unenrolment is attempted outside a course."""
        store.add(1001, t0, 14 * DAY)

        await service.engine.on_role_unassigned(unassigned(course_id=None))

        assert gateway.unenrol_calls == []

    @pytest.mark.asyncio
    async def test_other_role_removal_leaves_records(
        self, service, store, gateway, channel, unassigned, t0
    ):
        """Test that removing an ordinary role touches nothing but its own ID."""
        store.add(1001, t0, 14 * DAY)

        result = await service.engine.on_role_unassigned(
            unassigned(role_id=STUDENT_ROLE, role_assignment_id=1002)
        )

        assert result.action == LifecycleAction.SKIPPED
        assert 1001 in store.records
        assert channel.sent == []


class TestInactiveConfiguration:
    """Tests for switched-off or incomplete configuration."""

    @pytest.mark.asyncio
    async def test_disabled_ignores_marker_role(self, make_service, store, gateway, channel, assigned):
        """Test that nothing is tracked while disabled."""
        service = make_service(enabled=False)
        gateway.assign(1001)

        result = await service.engine.on_role_assigned(assigned())

        assert result.action == LifecycleAction.SKIPPED
        assert store.records == {}
        assert channel.sent == []

    @pytest.mark.asyncio
    async def test_missing_marker_role_ignores_events(self, make_service, store, gateway, assigned):
        """Test that no marker role means no tracking."""
        service = make_service(marker_role_id=None)
        gateway.assign(1001)

        result = await service.engine.on_role_assigned(assigned())

        assert result.action == LifecycleAction.SKIPPED
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_unassign_deletes_record_while_disabled(
        self, make_service, store, gateway, channel, unassigned, t0
    ):
        """Test that records of removed assignments never linger."""
        service = make_service(enabled=False)
        store.add(1001, t0, 14 * DAY)
        gateway.enrol(STUDENT)

        result = await service.engine.on_role_unassigned(unassigned())

        assert result.action == LifecycleAction.SKIPPED
        assert store.records == {}
        assert channel.sent == []
        assert gateway.unenrol_calls == []


class TestLifecycleResult:
    """Tests for LifecycleResult serialization."""

    def test_to_dict(self):
        """Test that enums are serialized by value."""
        result = LifecycleResult(
            LifecycleAction.TRACKED,
            record_id=4,
            emails_sent=[EmailKind.STUDENT_INIT],
        )

        assert result.to_dict() == {
            "action": "tracked",
            "record_id": 4,
            "emails_sent": ["student_init"],
        }
