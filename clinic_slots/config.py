import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./clinic_slots.db")

# Per-call timeout (seconds) for every repository operation
DB_CALL_TIMEOUT = float(os.getenv("DB_CALL_TIMEOUT", "30"))

# Civil time zone that defines "today" and the cron recurrences
SLOT_TIMEZONE = os.getenv("SLOT_TIMEZONE", "Asia/Kolkata")

# Rolling window: slots always exist for today + the next (SLOT_WINDOW_DAYS - 1) days
SLOT_WINDOW_DAYS = int(os.getenv("SLOT_WINDOW_DAYS", "7"))
# Unbooked slots older than today - SLOT_RETENTION_DAYS are retired
SLOT_RETENTION_DAYS = int(os.getenv("SLOT_RETENTION_DAYS", "3"))

# Cron secret for manual trigger endpoints - unset disables the check (dev only)
CRON_SECRET = os.getenv("CRON_SECRET")


@dataclass(frozen=True)
class Recurrence:
    """A daily trigger at a fixed civil time-of-day in SLOT_TIMEZONE"""

    job_name: str
    hour: int
    minute: int

    @classmethod
    def from_hhmm(cls, job_name: str, value: str) -> "Recurrence":
        hours, _, minutes = value.partition(":")
        hour, minute = int(hours), int(minutes)
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(f"Invalid time of day for {job_name}: {value!r}")
        return cls(job_name=job_name, hour=hour, minute=minute)

    @property
    def time_of_day(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


DAILY_REFRESH_TIME = os.getenv("DAILY_REFRESH_TIME", "00:01")
SLOT_CLEANUP_TIME = os.getenv("SLOT_CLEANUP_TIME", "01:00")
APPOINTMENT_CLEANUP_TIME = os.getenv("APPOINTMENT_CLEANUP_TIME", "02:00")

SLOT_RECURRENCES = (
    Recurrence.from_hhmm("daily_slot_refresh", DAILY_REFRESH_TIME),  # ensure + retire + reclaim
    Recurrence.from_hhmm("slot_cleanup", SLOT_CLEANUP_TIME),
    Recurrence.from_hhmm("appointment_cleanup", APPOINTMENT_CLEANUP_TIME),
)
