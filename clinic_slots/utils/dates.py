"""
Civil date helpers for the configured clinic time zone

Slot dates are zone-less civil dates. They are stored as naive datetimes at
00:00 so equal calendar days compare equal, and the day of week is always
taken from the civil date itself.
"""

from datetime import date, datetime, time, timedelta
from typing import Union
from zoneinfo import ZoneInfo

from ..config import SLOT_TIMEZONE

DateLike = Union[date, datetime]


def civil_now(tz_name: str = SLOT_TIMEZONE) -> datetime:
    return datetime.now(ZoneInfo(tz_name))


def civil_today(tz_name: str = SLOT_TIMEZONE) -> date:
    """Today's calendar date in the clinic time zone, whatever the server zone is"""
    return civil_now(tz_name).date()


def to_civil_date(value: DateLike, tz_name: str = SLOT_TIMEZONE) -> date:
    """
    Reduce a date or datetime to a civil calendar date.

    Aware datetimes are converted into the clinic zone first; naive datetimes
    are taken at face value.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(tz_name))
        return value.date()
    return value


def normalize_slot_date(value: DateLike, tz_name: str = SLOT_TIMEZONE) -> datetime:
    """Stored representation of a civil date: naive datetime at midnight"""
    return datetime.combine(to_civil_date(value, tz_name), time.min)


def day_of_week(value: date) -> int:
    """Day of week with Sunday = 0 through Saturday = 6"""
    return value.isoweekday() % 7


def date_range(start: date, days: int) -> list[date]:
    return [start + timedelta(days=i) for i in range(days)]
