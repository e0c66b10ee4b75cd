"""Temporary Enrolments Backend.

Time-limited course enrolments for a Moodle platform: granting a marker
role starts a trial enrolment that is upgraded by any other role or
expires after a configured duration.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
