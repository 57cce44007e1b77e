"""
Clinic opening hours and the time slots derived from them

Pure lookups, no I/O. Sunday is the weekly special day when only the
Gandhinagar clinic opens; it is closed the rest of the week.
"""

from dataclasses import dataclass
from typing import Optional

from ..shared.validators import format_minutes, minutes_since_midnight

SPECIAL_DAY = 0  # Sunday
SLOT_STEP_MINUTES = 30


@dataclass(frozen=True)
class TimeInterval:
    start: str  # HH:MM
    end: str  # HH:MM


@dataclass(frozen=True)
class ClinicDescriptor:
    code: str
    name: str
    address: str
    latitude: float
    longitude: float


CLINIC_LOCATIONS = (
    ClinicDescriptor(
        code="ghodasar",
        name="Ghodasar Clinic",
        address="R/1, Annapurna Society, Ghodasar, Ahmedabad - 380050",
        latitude=22.988879753817518,
        longitude=72.61134051324319,
    ),
    ClinicDescriptor(
        code="vastral",
        name="Vastral Clinic",
        address="Vastral Cross Road, Vastral, Ahmedabad - 382418",
        latitude=23.010146066893338,
        longitude=72.64498933997966,
    ),
    ClinicDescriptor(
        code="gandhinagar",
        name="Gandhinagar Clinic",
        address="122/2, Sector 4/A, Gandhinagar, Gujarat",
        latitude=23.209192334491412,
        longitude=72.62446865673193,
    ),
)

# Opening blocks (start, end) per clinic, each split into SLOT_STEP_MINUTES slots
SPECIAL_DAY_HOURS = {
    "gandhinagar": [("12:00", "17:00")],
}

WEEKDAY_HOURS = {
    "ghodasar": [
        ("07:00", "08:30"),  # Early morning
        ("09:00", "12:00"),  # Late morning
        ("13:00", "14:00"),  # Afternoon
        ("20:30", "22:30"),  # Night
    ],
    "vastral": [
        ("16:00", "19:00"),
    ],
    "gandhinagar": [],  # Sundays only
}


def split_block(start: str, end: str, step: int = SLOT_STEP_MINUTES) -> list[TimeInterval]:
    """Split an opening block into consecutive fixed-size intervals"""
    start_minutes = minutes_since_midnight(start)
    end_minutes = minutes_since_midnight(end)

    intervals = []
    cursor = start_minutes
    while cursor + step <= end_minutes:
        intervals.append(TimeInterval(start=format_minutes(cursor), end=format_minutes(cursor + step)))
        cursor += step
    return intervals


def slots_for(clinic_code: str, day_of_week: int) -> list[TimeInterval]:
    """
    Offered time intervals for a clinic on a kind of day.

    Args:
        clinic_code: Clinic code; unknown codes yield an empty list
        day_of_week: 0 = Sunday ... 6 = Saturday

    Returns:
        Non-overlapping intervals in ascending start order
    """
    hours = SPECIAL_DAY_HOURS if day_of_week == SPECIAL_DAY else WEEKDAY_HOURS

    intervals = []
    for start, end in sorted(hours.get(clinic_code, [])):
        intervals.extend(split_block(start, end))
    return intervals


def get_all_clinics() -> list[ClinicDescriptor]:
    return list(CLINIC_LOCATIONS)


def get_clinic(code: str) -> Optional[ClinicDescriptor]:
    return next((clinic for clinic in CLINIC_LOCATIONS if clinic.code == code), None)
