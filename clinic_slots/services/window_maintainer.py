"""
Rolling slot window maintenance
- Ensures slots exist for today and the following days
- Retires old unbooked slots (booked slots are kept forever)
- Reclaims slots booked by appointments whose date has passed
"""

import asyncio
import calendar
import logging
from datetime import date, timedelta
from typing import Callable, Optional

from ..config import SLOT_RETENTION_DAYS, SLOT_TIMEZONE, SLOT_WINDOW_DAYS
from ..domain.appointments.repository import AppointmentRepository
from ..domain.slots.repository import SlotRepository
from ..domain.staff.repository import StaffRepository
from ..utils.dates import civil_today, date_range, normalize_slot_date
from .slot_materializer import SlotMaterializer

logger = logging.getLogger(__name__)


class WindowMaintainer:
    """Keeps the slot table covering a rolling window of days"""

    def __init__(
        self,
        slots: SlotRepository,
        staff: StaffRepository,
        appointments: AppointmentRepository,
        tz_name: str = SLOT_TIMEZONE,
        clock: Optional[Callable[[], date]] = None,
        window_days: int = SLOT_WINDOW_DAYS,
        retention_days: int = SLOT_RETENTION_DAYS,
    ):
        self.slots = slots
        self.staff = staff
        self.appointments = appointments
        self.tz_name = tz_name
        self.clock = clock or (lambda: civil_today(tz_name))
        self.window_days = window_days
        self.retention_days = retention_days
        self.materializer = SlotMaterializer(slots, tz_name=tz_name)
        # Held for the duration of ensure_window; overlapping calls skip
        self._window_lock = asyncio.Lock()

    def today(self) -> date:
        return self.clock()

    async def ensure_window(self, days_ahead: Optional[int] = None) -> dict:
        """
        Make sure slots exist for today and the next days_ahead - 1 days.

        Never raises. A failing day is logged and the remaining days still
        run; a missing doctor/admin ends the run.

        Returns:
            dict: days, created, failed_days, skipped, error
        """
        days_ahead = self.window_days if days_ahead is None else days_ahead
        summary = {"days": days_ahead, "created": 0, "failed_days": [], "skipped": False, "error": None}

        if self._window_lock.locked():
            logger.info("⏳ Slot generation already running, skipping...")
            summary["skipped"] = True
            return summary

        async with self._window_lock:
            logger.info(f"🔄 Ensuring slots exist for the next {days_ahead} days...")

            try:
                staff = await self.staff.find_responsible_staff()
            except Exception as e:
                logger.error(f"❌ Error ensuring slots exist: {e}")
                summary["error"] = str(e)
                return summary

            for day in date_range(self.today(), days_ahead):
                try:
                    summary["created"] += await self.materializer.materialize_day(day, staff)
                except Exception as e:
                    logger.error(f"❌ Failed to create slots for {day.isoformat()}: {e}")
                    summary["failed_days"].append(day.isoformat())

            if summary["created"] > 0:
                logger.info(f"✅ Total slots created: {summary['created']}")
            elif not summary["failed_days"]:
                logger.info(f"ℹ️  All slots already exist for the next {days_ahead} days")
            if summary["failed_days"]:
                logger.warning(f"⚠️ Slot creation failed for {len(summary['failed_days'])} days, will retry next cycle")

        return summary

    async def retire_stale_unbooked(self, retention_days: Optional[int] = None) -> int:
        """
        Delete unbooked slots dated strictly before today - retention_days.

        Returns:
            int: Number of slots deleted
        """
        retention_days = self.retention_days if retention_days is None else retention_days
        cutoff = normalize_slot_date(self.today() - timedelta(days=retention_days))

        deleted = await self.slots.delete_stale_unbooked(cutoff)

        if deleted > 0:
            logger.info(f"🗑️  Cleaned up {deleted} unbooked slots dated before {cutoff:%Y-%m-%d}")
        return deleted

    async def reclaim_orphaned_appointments(self) -> dict:
        """
        Free the slots of past appointments and delete those appointments.

        A failure on one appointment is logged and the rest are still processed.

        Returns:
            dict: found, slots_freed, appointments_removed, failed, error
        """
        summary = {"found": 0, "slots_freed": 0, "appointments_removed": 0, "failed": 0, "error": None}
        cutoff = normalize_slot_date(self.today())

        try:
            past_appointments = await self.appointments.find_before(cutoff)
        except Exception as e:
            logger.error(f"❌ Error cleaning up past appointments: {e}")
            summary["error"] = str(e)
            return summary

        summary["found"] = len(past_appointments)
        if not past_appointments:
            logger.info("🗑️  No past appointments to clean up")
            return summary

        logger.info(f"🗑️  Found {len(past_appointments)} past appointments to clean up...")

        for appointment in past_appointments:
            try:
                if await self.slots.release_for_appointment(appointment.id):
                    summary["slots_freed"] += 1

                if await self.appointments.delete_by_id(appointment.id):
                    summary["appointments_removed"] += 1
            except Exception as e:
                logger.error(f"❌ Error cleaning up appointment {appointment.id}: {e}")
                summary["failed"] += 1

        logger.info(f"🗑️  Successfully cleaned up {summary['appointments_removed']} past appointments")
        logger.info(f"🔓 Freed up {summary['slots_freed']} associated slots")
        return summary

    async def refresh(self) -> dict:
        """
        Daily job: ensure the window, retire stale slots, reclaim past appointments.
        Each step runs even if an earlier one failed.
        """
        logger.info(f"🕐 Daily slot refresh started - maintaining {self.window_days}-day rolling window...")
        result = {"window": None, "retired": None, "reclaimed": None, "errors": []}

        result["window"] = await self.ensure_window(self.window_days)
        if result["window"]["error"]:
            result["errors"].append(f"window: {result['window']['error']}")

        try:
            result["retired"] = await self.retire_stale_unbooked(self.retention_days)
        except Exception as e:
            logger.error(f"❌ Error cleaning up old slots: {e}")
            result["errors"].append(f"retire: {e}")

        result["reclaimed"] = await self.reclaim_orphaned_appointments()
        if result["reclaimed"]["error"]:
            result["errors"].append(f"reclaim: {result['reclaimed']['error']}")

        if result["errors"]:
            logger.warning(f"⚠️ Daily slot refresh finished with errors: {result['errors']}")
        else:
            logger.info(f"✅ Daily {self.window_days}-day slot refresh completed")
        return result

    async def materialize_range(self, start: date, end: date) -> int:
        """Create slots for every day from start to end, both inclusive. Raises on failure."""
        if end < start:
            raise ValueError(f"End date {end.isoformat()} is before start date {start.isoformat()}")

        staff = await self.staff.find_responsible_staff()

        total_created = 0
        for day in date_range(start, (end - start).days + 1):
            total_created += await self.materializer.materialize_day(day, staff)
        return total_created

    async def materialize_month(self, year: int, month: int) -> int:
        """Create slots for every day of a calendar month. Raises on failure."""
        logger.info(f"🗓️  Generating slots for {year}-{month:02d}...")

        days_in_month = calendar.monthrange(year, month)[1]
        total_created = await self.materialize_range(date(year, month, 1), date(year, month, days_in_month))

        logger.info(f"✅ Created {total_created} slots for {year}-{month:02d}")
        return total_created

    async def materialize_future(self, months_ahead: int = 6) -> int:
        """Create slots for the current month and the following months. Raises on failure."""
        logger.info(f"🔮 Generating slots for the next {months_ahead} months...")

        today = self.today()
        total_created = 0
        for i in range(months_ahead):
            year, month_index = divmod(today.month - 1 + i, 12)
            total_created += await self.materialize_month(today.year + year, month_index + 1)

        logger.info(f"✅ Total slots created for {months_ahead} months: {total_created}")
        return total_created
