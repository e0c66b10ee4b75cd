# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Migrations of the service's own tables.

- temporary_enrolments: tracking records of temporary role assignments
"""
