# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer.

Domains:
    temporary_enrolment: Marker role tracking, upgrade, expiry and sweeps.
"""
