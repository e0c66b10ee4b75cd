# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Persistence of tracking records.

TrackingStore is the interface the engine and sweeps depend on;
SQLTrackingStore implements it over the temporary_enrolments table.
Every query is keyed by role assignment ID, which is unique per record.
"""

import logging
from abc import ABC, abstractmethod

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models.tracking import TrackingRecord

logger = logging.getLogger(__name__)


class TrackingStore(ABC):
    """Storage of tracking records."""

    @abstractmethod
    async def create(self, record: TrackingRecord) -> int:
        """Persist a new record.

        Returns:
            ID assigned to the record.
        """
        ...

    @abstractmethod
    async def get_by_role_assignment_id(self, role_assignment_id: int) -> TrackingRecord | None:
        """Get the record of a role assignment."""
        ...

    @abstractmethod
    async def update(self, record: TrackingRecord) -> None:
        """Persist changes to an existing record."""
        ...

    @abstractmethod
    async def delete(self, role_assignment_id: int) -> bool:
        """Delete the record of a role assignment.

        Returns:
            True if a record was deleted, False if none existed.
        """
        ...

    @abstractmethod
    async def list_all(self) -> list[TrackingRecord]:
        """List every record."""
        ...

    @abstractmethod
    async def delete_stale(self, current_role_id: int) -> int:
        """Delete records created under a different marker role.

        Returns:
            Number of records deleted.
        """
        ...

    @abstractmethod
    async def list_expired(self, role_id: int, now: int) -> list[TrackingRecord]:
        """List non-upgraded records of a role whose window has ended."""
        ...

    @abstractmethod
    async def list_active(self, role_id: int, now: int) -> list[TrackingRecord]:
        """List non-upgraded records of a role whose window is still open."""
        ...

    @abstractmethod
    async def apply_duration(self, duration_seconds: int) -> int:
        """Rewrite time_end as time_start + duration where it differs.

        Returns:
            Number of records changed.
        """
        ...


class SQLTrackingStore(TrackingStore):
    """TrackingStore over SQLAlchemy.

    Works inside the caller's session and only flushes; committing is
    up to the unit of work.

    Attributes:
        session: Async database session.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the store.

        Args:
            session: Async database session.
        """
        self.session = session

    async def create(self, record: TrackingRecord) -> int:
        self.session.add(record)
        await self.session.flush()
        logger.debug(
            "Created tracking record %s for role assignment %s",
            record.id,
            record.role_assignment_id,
        )
        return record.id

    async def get_by_role_assignment_id(self, role_assignment_id: int) -> TrackingRecord | None:
        result = await self.session.execute(
            select(TrackingRecord).where(TrackingRecord.role_assignment_id == role_assignment_id)
        )
        return result.scalar_one_or_none()

    async def update(self, record: TrackingRecord) -> None:
        await self.session.merge(record)
        await self.session.flush()

    async def delete(self, role_assignment_id: int) -> bool:
        result = await self.session.execute(
            delete(TrackingRecord).where(TrackingRecord.role_assignment_id == role_assignment_id)
        )
        return result.rowcount > 0

    async def list_all(self) -> list[TrackingRecord]:
        result = await self.session.execute(select(TrackingRecord).order_by(TrackingRecord.id))
        return list(result.scalars().all())

    async def delete_stale(self, current_role_id: int) -> int:
        result = await self.session.execute(
            delete(TrackingRecord).where(TrackingRecord.role_id != current_role_id)
        )
        return result.rowcount

    async def list_expired(self, role_id: int, now: int) -> list[TrackingRecord]:
        result = await self.session.execute(
            select(TrackingRecord)
            .where(
                TrackingRecord.role_id == role_id,
                TrackingRecord.upgraded.is_(False),
                TrackingRecord.time_end <= now,
            )
            .order_by(TrackingRecord.time_end)
        )
        return list(result.scalars().all())

    async def list_active(self, role_id: int, now: int) -> list[TrackingRecord]:
        result = await self.session.execute(
            select(TrackingRecord)
            .where(
                TrackingRecord.role_id == role_id,
                TrackingRecord.upgraded.is_(False),
                TrackingRecord.time_end > now,
            )
            .order_by(TrackingRecord.time_end)
        )
        return list(result.scalars().all())

    async def apply_duration(self, duration_seconds: int) -> int:
        new_end = TrackingRecord.time_start + duration_seconds
        result = await self.session.execute(
            update(TrackingRecord)
            .where(TrackingRecord.time_end != new_end)
            .values(time_end=new_end)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
