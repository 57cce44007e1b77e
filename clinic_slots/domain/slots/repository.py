"""Slot repository - Database operations for slots"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite

from ...database import BaseRepository, with_db_timeout
from ...errors import SlotServiceError
from ...models import Slot
from .schemas import SlotCreate

logger = logging.getLogger(__name__)

SLOT_IDENTITY_COLUMNS = ["doctor_id", "date", "start_time", "location"]

# Dialects with INSERT ... ON CONFLICT DO NOTHING
CONFLICT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SlotRepository(BaseRepository):
    """Repository for slot database operations"""

    @with_db_timeout
    async def existing_start_times(self, doctor_id: int, slot_date: datetime, location: str) -> set[str]:
        """Start times already stored for one doctor/clinic/day"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Slot.start_time).where(
                    Slot.doctor_id == doctor_id,
                    Slot.date == slot_date,
                    Slot.location == location,
                )
            )
            return set(result.scalars().all())

    @with_db_timeout
    async def exists(self, doctor_id: int, slot_date: datetime, start_time: str, location: str) -> bool:
        async with self.session_factory() as session:
            slot_id = await session.scalar(
                select(Slot.id).where(
                    Slot.doctor_id == doctor_id,
                    Slot.date == slot_date,
                    Slot.start_time == start_time,
                    Slot.location == location,
                )
            )
            return slot_id is not None

    @with_db_timeout
    async def insert_missing(self, rows: list[SlotCreate]) -> int:
        """
        Bulk insert slots, skipping any that already exist.

        A concurrent run may insert the same slot between our existence
        check and this insert; those rows are dropped by the unique
        constraint instead of failing the batch.

        Returns:
            int: Number of rows actually inserted
        """
        if not rows:
            return 0

        values = [row.model_dump() for row in rows]

        async with self.session_factory() as session:
            dialect = session.bind.dialect.name
            conflict_insert = CONFLICT_INSERTS.get(dialect)
            if conflict_insert is None:
                raise SlotServiceError(f"Unsupported database dialect for slot inserts: {dialect}")

            stmt = (
                conflict_insert(Slot)
                .values(values)
                .on_conflict_do_nothing(index_elements=SLOT_IDENTITY_COLUMNS)
                .returning(Slot.id)
            )
            result = await session.execute(stmt)
            inserted = len(result.all())

            await session.commit()

        skipped = len(values) - inserted
        if skipped:
            logger.info(f"ℹ️ Skipped {skipped} slots created concurrently by another run")
        return inserted

    @with_db_timeout
    async def get(self, slot_id: int) -> Optional[Slot]:
        async with self.session_factory() as session:
            return await session.get(Slot, slot_id)

    @with_db_timeout
    async def find_by_date_range(
        self,
        start_date: datetime,
        end_date: datetime,
        doctor_id: Optional[int] = None,
        location: Optional[str] = None,
        is_booked: Optional[bool] = None,
    ) -> list[Slot]:
        """Slots with start_date <= date <= end_date, ordered by date and start time"""
        query = select(Slot).where(Slot.date >= start_date, Slot.date <= end_date)
        if doctor_id is not None:
            query = query.where(Slot.doctor_id == doctor_id)
        if location is not None:
            query = query.where(Slot.location == location)
        if is_booked is not None:
            query = query.where(Slot.is_booked.is_(is_booked))

        async with self.session_factory() as session:
            result = await session.execute(query.order_by(Slot.date, Slot.start_time, Slot.location))
            return list(result.scalars().all())

    @with_db_timeout
    async def find_available(self, slot_date: datetime, location: Optional[str] = None) -> list[Slot]:
        """Bookable slots on a day: available and not booked"""
        query = select(Slot).where(
            Slot.date == slot_date,
            Slot.is_available.is_(True),
            Slot.is_booked.is_(False),
        )
        if location is not None:
            query = query.where(Slot.location == location)

        async with self.session_factory() as session:
            result = await session.execute(query.order_by(Slot.start_time))
            return list(result.scalars().all())

    @with_db_timeout
    async def count(self, slot_date: Optional[datetime] = None, location: Optional[str] = None) -> int:
        query = select(func.count()).select_from(Slot)
        if slot_date is not None:
            query = query.where(Slot.date == slot_date)
        if location is not None:
            query = query.where(Slot.location == location)

        async with self.session_factory() as session:
            return await session.scalar(query)

    @with_db_timeout
    async def delete_stale_unbooked(self, cutoff: datetime) -> int:
        """Delete unbooked slots dated strictly before cutoff. Booked slots are never deleted."""
        async with self.session_factory() as session:
            result = await session.execute(
                delete(Slot)
                .where(Slot.date < cutoff, Slot.is_booked.is_(False))
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount or 0

    @with_db_timeout
    async def book(self, slot_id: int, patient_id: int, appointment_id: int) -> Slot:
        """Mark a slot booked; raises SlotUnavailableError if it cannot be booked, ValueError without a booking party"""
        async with self.session_factory() as session:
            slot = await session.get(Slot, slot_id, with_for_update=True)
            if slot is None:
                raise LookupError(f"Slot {slot_id} not found")
            slot.book(patient_id, appointment_id)
            await session.commit()
            return slot

    @with_db_timeout
    async def release_for_appointment(self, appointment_id: int) -> bool:
        """
        Free the booked slot linked to an appointment.

        Returns:
            bool: True if a booked slot was found and released
        """
        async with self.session_factory() as session:
            slot = await session.scalar(
                select(Slot).where(Slot.appointment_id == appointment_id, Slot.is_booked.is_(True))
            )
            if slot is None:
                return False

            slot.release()
            await session.commit()
            return True

    @with_db_timeout
    async def save(self, slot: Slot) -> Slot:
        """Persist changes made to a slot loaded by another session"""
        async with self.session_factory() as session:
            merged = await session.merge(slot)
            await session.commit()
            return merged
