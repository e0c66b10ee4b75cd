# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Infrastructure layer for external service integrations.

This package contains clients and managers for:
- Database connections and models (PostgreSQL, shared with the platform)
- Host platform access (Moodle tables)
- Background task processing (Dramatiq, APScheduler)
- Notifications (email over SMTP)
"""
