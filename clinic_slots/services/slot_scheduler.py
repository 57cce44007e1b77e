"""
Slot job scheduler
Maps the configured daily recurrences onto WindowMaintainer operations.
The ARQ worker (clinic_slots/worker.py) fires the jobs; this class runs them
and makes sure a failed run is logged, never raised into the trigger.
"""

import logging
import time
from datetime import datetime, timedelta
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncEngine

from ..config import DB_CALL_TIMEOUT, SLOT_RECURRENCES, SLOT_TIMEZONE, Recurrence
from ..database import build_session_factory
from ..domain.appointments.repository import AppointmentRepository
from ..domain.slots.repository import SlotRepository
from ..domain.staff.repository import StaffRepository
from .window_maintainer import WindowMaintainer

logger = logging.getLogger(__name__)


class SlotScheduler:
    """Runs named slot maintenance jobs on behalf of a recurring trigger"""

    def __init__(
        self,
        maintainer: WindowMaintainer,
        recurrences: Iterable[Recurrence] = SLOT_RECURRENCES,
        tz_name: str = SLOT_TIMEZONE,
    ):
        self.maintainer = maintainer
        self.tz = ZoneInfo(tz_name)
        self.jobs = {
            "daily_slot_refresh": maintainer.refresh,
            "slot_cleanup": maintainer.retire_stale_unbooked,
            "appointment_cleanup": maintainer.reclaim_orphaned_appointments,
        }
        self.recurrences = tuple(recurrences)

        unknown = [r.job_name for r in self.recurrences if r.job_name not in self.jobs]
        if unknown:
            raise ValueError(f"Recurrences reference unknown jobs: {unknown}")

    async def initialize(self) -> dict:
        """
        Startup pass: repair drift accumulated while the process was down,
        then fill the forward window. Never raises.
        """
        logger.info("🚀 Initializing rolling slot service...")
        result = {}

        logger.info("🧹 Cleaning up old data on startup...")
        result["reclaimed"] = await self.maintainer.reclaim_orphaned_appointments()
        try:
            result["retired"] = await self.maintainer.retire_stale_unbooked()
        except Exception as e:
            logger.error(f"❌ Error cleaning up old slots: {e}")
            result["retired"] = None
        result["window"] = await self.maintainer.ensure_window()

        for recurrence in self.recurrences:
            logger.info(f"📅 {recurrence.job_name}: daily at {recurrence.time_of_day} {self.tz.key}")
        logger.info("✅ Rolling slot service initialized")
        return result

    async def run_job(self, job_name: str) -> dict:
        """
        Run one named job.

        Returns:
            dict: success, job, duration_ms and either result or error

        Raises:
            KeyError: If job_name is not a known job
        """
        job = self.jobs[job_name]
        started = time.monotonic()
        logger.info(f"⏰ [CRON] {job_name} started at {datetime.now(self.tz).isoformat()}")

        try:
            result = await job()
        except Exception as e:
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.error(f"❌ [CRON] {job_name} failed after {duration_ms}ms: {type(e).__name__}: {e}")
            return {"success": False, "job": job_name, "error": str(e), "duration_ms": duration_ms}

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"✅ [CRON] {job_name} completed in {duration_ms}ms")
        return {"success": True, "job": job_name, "result": result, "duration_ms": duration_ms}

    def next_executions(self, now: Optional[datetime] = None) -> dict[str, datetime]:
        """Next fire time of each recurrence, in the clinic time zone"""
        now = (now or datetime.now(self.tz)).astimezone(self.tz)

        executions = {}
        for recurrence in self.recurrences:
            candidate = now.replace(hour=recurrence.hour, minute=recurrence.minute, second=0, microsecond=0)
            if candidate <= now:
                candidate += timedelta(days=1)
            executions[recurrence.job_name] = candidate
        return executions


def build_slot_scheduler(engine: AsyncEngine, timeout: float = DB_CALL_TIMEOUT) -> SlotScheduler:
    """Wire repositories, maintainer and scheduler around one engine"""
    session_factory = build_session_factory(engine)
    maintainer = WindowMaintainer(
        slots=SlotRepository(session_factory, timeout),
        staff=StaffRepository(session_factory, timeout),
        appointments=AppointmentRepository(session_factory, timeout),
    )
    return SlotScheduler(maintainer)
