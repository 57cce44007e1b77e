"""
Slot materialization
Creates the configured slots for one calendar day, skipping those that already exist
"""

import logging

from ..config import SLOT_TIMEZONE
from ..domain.slots.repository import SlotRepository
from ..domain.slots.schemas import SlotCreate
from ..models import User
from ..utils.dates import DateLike, day_of_week, normalize_slot_date, to_civil_date
from .clinic_calendar import get_all_clinics, slots_for

logger = logging.getLogger(__name__)


class SlotMaterializer:
    """Creates missing slots for a day across all clinics"""

    def __init__(self, slots: SlotRepository, tz_name: str = SLOT_TIMEZONE):
        self.slots = slots
        self.tz_name = tz_name

    async def materialize_day(self, day: DateLike, staff: User) -> int:
        """
        Create the slots every clinic offers on `day` that are not stored yet.

        Existence checks for all clinics finish before the single bulk
        insert. Running this twice for the same day creates nothing the
        second time.

        Args:
            day: Calendar date (aware datetimes are read in the clinic zone)
            staff: Doctor/admin who owns and creates the slots

        Returns:
            int: Number of slots created (0 when the day is already complete)
        """
        civil_date = to_civil_date(day, self.tz_name)
        weekday = day_of_week(civil_date)
        slot_date = normalize_slot_date(civil_date, self.tz_name)

        rows = []
        for clinic in get_all_clinics():
            intervals = slots_for(clinic.code, weekday)
            if not intervals:
                continue

            existing = await self.slots.existing_start_times(staff.id, slot_date, clinic.code)

            for interval in intervals:
                if interval.start in existing:
                    continue
                rows.append(
                    SlotCreate(
                        doctor_id=staff.id,
                        created_by_id=staff.id,
                        location=clinic.code,
                        date=slot_date,
                        start_time=interval.start,
                        end_time=interval.end,
                        notes=f"{clinic.name} - {clinic.address}",
                        is_available=True,
                        is_booked=False,
                    )
                )

        created = await self.slots.insert_missing(rows)

        if created > 0:
            logger.info(f"✅ Created {created} slots for {civil_date:%a %b %d %Y} across all clinics")
        return created
