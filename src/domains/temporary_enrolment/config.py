# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Resolved temporary enrolment configuration.

EnrolmentConfig is an immutable snapshot built once per invocation
(webhook request or sweep run) from TemporaryEnrolmentSettings and the
optional YAML template file. The engine and sweeps receive it explicitly
instead of reading settings on their own.

Template resolution per email kind:
1. The TEMP_ENROL_<KIND>_TEMPLATE setting, when set.
2. The ``templates`` mapping of the YAML file at templates_path.
3. The built-in default.

An empty template disables that email just like its switch does.
"""

import logging
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from src.core.config.settings import TemporaryEnrolmentSettings
from src.core.config.yaml_loader import YAMLLoadError, load_template_overrides
from src.domains.temporary_enrolment.exceptions import InvalidConfigurationError
from src.domains.temporary_enrolment.templates import DEFAULT_TEMPLATES, EmailKind
from src.utils.datetime import DAY_SECONDS

logger = logging.getLogger(__name__)


class EnrolmentConfig(BaseModel):
    """Immutable view of the temporary enrolment configuration.

    Attributes:
        enabled: Master on/off switch.
        marker_role_id: Role marking an assignment as temporary.
        duration_seconds: Length of a temporary enrolment.
        reminder_interval_days: Days between reminder emails.
        email_switches: Per-kind on/off switches.
        templates: Per-kind resolved template text.
        manage_existing_assignments: Backfill records for pre-existing assignments.
        existing_assignments_send_email: Send student_init for backfilled records.
        existing_assignments_start: Clock start of backfilled records.
        system_user_id: Assigner reported for sweep-originated emails.
        enrol_method: Enrolment method removed when access ends.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    marker_role_id: int | None = None
    duration_seconds: int = Field(default=14 * DAY_SECONDS, ge=0)
    reminder_interval_days: int = Field(default=7, ge=0)
    email_switches: dict[EmailKind, bool] = Field(default_factory=dict)
    templates: dict[EmailKind, str] = Field(default_factory=dict)
    manage_existing_assignments: bool = False
    existing_assignments_send_email: bool = False
    existing_assignments_start: Literal["assignment", "now"] = "assignment"
    system_user_id: int = 2
    enrol_method: str = "manual"

    @property
    def is_active(self) -> bool:
        """Check whether lifecycle handling is switched on and a marker role is set."""
        return self.enabled and self.marker_role_id is not None

    @property
    def reminder_interval_seconds(self) -> int:
        """Reminder interval in seconds."""
        return self.reminder_interval_days * DAY_SECONDS

    def is_marker_role(self, role_id: int) -> bool:
        """Check whether a role is the configured marker role."""
        return self.marker_role_id is not None and role_id == self.marker_role_id

    def template_for(self, kind: EmailKind) -> str:
        """Get the template of an email kind."""
        return self.templates.get(kind, DEFAULT_TEMPLATES[kind])

    def email_enabled(self, kind: EmailKind) -> bool:
        """Check whether an email kind should be sent.

        Both the switch must be on and the template non-empty.
        """
        return self.email_switches.get(kind, True) and bool(self.template_for(kind).strip())


def _resolve_templates(settings: TemporaryEnrolmentSettings) -> dict[EmailKind, str]:
    overrides: dict[str, str] = {}
    if settings.templates_path is not None:
        try:
            overrides = load_template_overrides(settings.templates_path)
        except YAMLLoadError as e:
            raise InvalidConfigurationError(str(e)) from e

        unknown = set(overrides) - {kind.value for kind in EmailKind}
        if unknown:
            logger.warning(
                "Ignoring unknown email kinds in %s: %s",
                settings.templates_path,
                ", ".join(sorted(unknown)),
            )

    templates: dict[EmailKind, str] = {}
    for kind in EmailKind:
        configured = getattr(settings, f"{kind.value}_template")
        if configured is not None:
            templates[kind] = configured
        elif kind.value in overrides:
            templates[kind] = overrides[kind.value]
        else:
            templates[kind] = DEFAULT_TEMPLATES[kind]
    return templates


def load_enrolment_config(settings: TemporaryEnrolmentSettings) -> EnrolmentConfig:
    """Build an EnrolmentConfig from settings.

    Args:
        settings: Temporary enrolment settings.

    Returns:
        The resolved configuration.

    Raises:
        InvalidConfigurationError: If the duration or reminder interval is
            negative, or the template file cannot be loaded.
    """
    if settings.duration_seconds < 0:
        raise InvalidConfigurationError(
            f"duration_seconds must not be negative, got {settings.duration_seconds}"
        )
    if settings.reminder_interval_days < 0:
        raise InvalidConfigurationError(
            f"reminder_interval_days must not be negative, got {settings.reminder_interval_days}"
        )

    config = EnrolmentConfig(
        enabled=settings.enabled,
        marker_role_id=settings.marker_role_id,
        duration_seconds=settings.duration_seconds,
        reminder_interval_days=settings.reminder_interval_days,
        email_switches={
            kind: getattr(settings, f"{kind.value}_enabled") for kind in EmailKind
        },
        templates=_resolve_templates(settings),
        manage_existing_assignments=settings.manage_existing_assignments,
        existing_assignments_send_email=settings.existing_assignments_send_email,
        existing_assignments_start=settings.existing_assignments_start,
        system_user_id=settings.system_user_id,
        enrol_method=settings.enrol_method,
    )

    if settings.enabled and settings.marker_role_id is None:
        logger.debug("Temporary enrolments enabled but no marker role is set")

    return config
