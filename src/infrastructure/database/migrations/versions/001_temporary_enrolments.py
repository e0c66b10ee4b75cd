# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create the temporary enrolments tracking table.

Revision ID: 001_temporary_enrolments
Revises:
Create Date: 2025-01-20

One row per tracked marker role assignment. Platform tables are
referenced by ID only; no foreign keys are created into them.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_temporary_enrolments"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create temporary_enrolments table."""
    op.create_table(
        "temporary_enrolments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("role_assignment_id", sa.BigInteger, nullable=False),
        sa.Column("role_id", sa.BigInteger, nullable=False),
        sa.Column("time_start", sa.BigInteger, nullable=False),
        sa.Column("time_end", sa.BigInteger, nullable=False),
        sa.Column("upgraded", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("last_reminder_sent_at", sa.BigInteger, nullable=True),
        sa.CheckConstraint("time_end >= time_start", name="ck_temporary_enrolments_window"),
    )
    op.create_index(
        "ix_temporary_enrolments_role_assignment_id",
        "temporary_enrolments",
        ["role_assignment_id"],
        unique=True,
    )
    # Sweeps filter on role, upgraded flag and end time
    op.create_index(
        "ix_temporary_enrolments_sweep",
        "temporary_enrolments",
        ["role_id", "upgraded", "time_end"],
    )


def downgrade() -> None:
    """Drop temporary_enrolments table."""
    op.drop_index("ix_temporary_enrolments_sweep", table_name="temporary_enrolments")
    op.drop_index("ix_temporary_enrolments_role_assignment_id", table_name="temporary_enrolments")
    op.drop_table("temporary_enrolments")
