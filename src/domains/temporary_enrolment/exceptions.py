# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions of the temporary enrolment domain."""


class TemporaryEnrolmentError(Exception):
    """Base exception for temporary enrolment errors."""

    pass


class InvalidConfigurationError(TemporaryEnrolmentError):
    """Raised when temporary enrolment settings contradict themselves."""

    pass


class UnknownSweepError(TemporaryEnrolmentError):
    """Raised when a sweep is requested by a name that does not exist."""

    pass
