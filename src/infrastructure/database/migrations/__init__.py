# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database migrations package.

The service shares the platform database but only migrates its own
tables; platform tables are never created or altered. Migrations run
either through the alembic CLI (env.py) or programmatically at startup
(runner.py).
"""
