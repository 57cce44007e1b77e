"""Appointment repository - the queries appointment reclamation needs"""

from datetime import datetime

from sqlalchemy import delete, select

from ...database import BaseRepository, with_db_timeout
from ...models import Appointment


class AppointmentRepository(BaseRepository):
    """Repository for appointment database operations"""

    @with_db_timeout
    async def find_before(self, cutoff: datetime) -> list[Appointment]:
        """Appointments dated strictly before cutoff"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Appointment)
                .where(Appointment.appointment_date < cutoff)
                .order_by(Appointment.appointment_date, Appointment.id)
            )
            return list(result.scalars().all())

    @with_db_timeout
    async def delete_by_id(self, appointment_id: int) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                delete(Appointment)
                .where(Appointment.id == appointment_id)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return (result.rowcount or 0) > 0
