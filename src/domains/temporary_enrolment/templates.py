# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email templates and placeholder rendering.

A template is plain text whose first line declares the subject:

    {SUBJECT: Temporary enrolment reminder for {COURSE}}

    Dear {STUDENTFIRST}, ...

Placeholders are replaced by exact textual match in both subject and
body. A placeholder whose value cannot be resolved (missing user,
course or tracking record) is left in the output untouched.
"""

import re
from dataclasses import dataclass
from enum import Enum

from src.infrastructure.platform.base import CourseInfo, PlatformUserInfo
from src.utils.datetime import days_left, minutes_left

SUBJECT_PATTERN = re.compile(r"\{SUBJECT: (.*)\}\s+")


class EmailKind(str, Enum):
    """The five emails of the temporary enrolment lifecycle."""

    STUDENT_INIT = "student_init"
    TEACHER_INIT = "teacher_init"
    UPGRADE = "upgrade"
    EXPIRE = "expire"
    REMINDER = "reminder"


DEFAULT_TEMPLATES: dict[EmailKind, str] = {
    EmailKind.STUDENT_INIT: (
        "{SUBJECT: Temporary enrolment granted for {COURSE}}\n"
        "\n"
        "Dear {STUDENTFIRST},\n"
        "\n"
        "You have been granted temporary access to the Moodle site for {COURSE}. "
        "After you are officially registered for the course, you will receive student "
        "access for the remainder of the semester. Temporary access will expire after "
        "14 days. Though faculty can add you to Moodle, they CANNOT register you for "
        "the course."
    ),
    EmailKind.TEACHER_INIT: (
        "{SUBJECT: Temporary enrolment granted to {STUDENTFULL} for {COURSE}}\n"
        "\n"
        "Dear {TEACHER},\n"
        "\n"
        "You have granted {STUDENTFULL} temporary access to {COURSE}. Temporary "
        "enrolment will expire after 14 days. Though you can add students to Moodle, "
        "you CANNOT register them for the course. They may register through the "
        "registrar until the add deadline."
    ),
    EmailKind.UPGRADE: (
        "{SUBJECT: Temporary enrolment for {COURSE} upgraded!}\n"
        "\n"
        "Dear {STUDENTFIRST},\n"
        "\n"
        "Your temporary access to {COURSE} has been upgraded to full enrolment! You "
        "are now officially registered for this course and have permanent access to "
        "the Moodle site."
    ),
    EmailKind.EXPIRE: (
        "{SUBJECT: Temporary enrolment for {COURSE} expired}\n"
        "\n"
        "Dear {STUDENTFIRST},\n"
        "\n"
        "Your temporary access to {COURSE} has expired or been revoked. You will no "
        "longer be able to access this course. If you wish to participate in this "
        "course, please register for it through the registrar."
    ),
    EmailKind.REMINDER: (
        "{SUBJECT: Temporary enrolment reminder for {COURSE}}\n"
        "\n"
        "Dear {STUDENTFIRST},\n"
        "\n"
        "Please be advised that your temporary enrolment in {COURSE} will expire in "
        "{TIMELEFT} days. If you wish to continue participating in this course you "
        "MUST formally register for it through the registrar."
    ),
}


@dataclass(frozen=True)
class TemplateContext:
    """Values available to placeholders.

    Attributes:
        assigner: User who granted the role (the teacher).
        subject: User the role was granted to (the student).
        course: Course of the role assignment.
        time_end: End of the temporary window, None when untracked.
        now: Current time in epoch seconds.
    """

    now: int
    assigner: PlatformUserInfo | None = None
    subject: PlatformUserInfo | None = None
    course: CourseInfo | None = None
    time_end: int | None = None

    def placeholders(self) -> dict[str, str]:
        """Map every resolvable placeholder to its value."""
        values: dict[str, str] = {}

        if self.assigner is not None:
            values["{TEACHER}"] = self.assigner.first_name

        if self.subject is not None:
            values["{STUDENTFIRST}"] = self.subject.first_name
            values["{STUDENTLAST}"] = self.subject.last_name
            values["{STUDENTFULL}"] = self.subject.full_name

        if self.course is not None:
            values["{COURSE}"] = self.course.full_name

        if self.time_end is not None:
            values["{TIMELEFT}"] = str(days_left(self.time_end, self.now))
            values["{TIMELEFT_MINUTES}"] = str(minutes_left(self.time_end, self.now))
            values["{TIMELEFT_SECONDS}"] = str(self.time_end - self.now)

        return values


@dataclass(frozen=True)
class RenderedEmail:
    """A rendered email ready to be handed to a channel."""

    subject: str
    body: str


class TemplateRenderer:
    """Renders lifecycle email templates."""

    def render(self, template: str, context: TemplateContext) -> RenderedEmail:
        """Render a template.

        The subject line is extracted and removed from the body, then
        placeholders are substituted in both.

        Args:
            template: Raw template text.
            context: Values for the placeholders.

        Returns:
            RenderedEmail. The subject is empty when the template declares none.
        """
        match = SUBJECT_PATTERN.search(template)
        subject = match.group(1) if match else ""
        body = SUBJECT_PATTERN.sub("", template)

        values = context.placeholders()
        return RenderedEmail(
            subject=self._substitute(subject, values),
            body=self._substitute(body, values),
        )

    @staticmethod
    def _substitute(text: str, values: dict[str, str]) -> str:
        for placeholder, value in values.items():
            text = text.replace(placeholder, value)
        return text
