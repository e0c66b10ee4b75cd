# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tracking record for temporary enrolments.

One row per role assignment of the marker role that is (or was)
temporary. Times are Unix epoch seconds, like the platform tables.
"""

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Index, Integer, false
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base


class TrackingRecord(Base):
    """Expiration clock of one temporary role assignment.

    Attributes:
        id: Surrogate key.
        role_assignment_id: Platform role assignment being tracked.
        role_id: Marker role in effect when the record was created.
        time_start: Start of the temporary window.
        time_end: End of the temporary window.
        upgraded: True once the user was granted a permanent role.
        last_reminder_sent_at: When the last reminder email went out.
    """

    __tablename__ = "temporary_enrolments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    role_assignment_id: Mapped[int] = mapped_column(
        BigInteger, nullable=False, unique=True, index=True
    )
    role_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    time_start: Mapped[int] = mapped_column(BigInteger, nullable=False)
    time_end: Mapped[int] = mapped_column(BigInteger, nullable=False)
    upgraded: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    last_reminder_sent_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (
        CheckConstraint("time_end >= time_start", name="ck_temporary_enrolments_window"),
        Index("ix_temporary_enrolments_sweep", "role_id", "upgraded", "time_end"),
    )

    def __repr__(self) -> str:
        return (
            f"<TrackingRecord id={self.id} role_assignment_id={self.role_assignment_id} "
            f"role_id={self.role_id} time_end={self.time_end} upgraded={self.upgraded}>"
        )
