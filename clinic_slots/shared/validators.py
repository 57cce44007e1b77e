"""Shared validation utilities"""

import re
from typing import Optional

MIN_SLOT_MINUTES = 15
MAX_SLOT_MINUTES = 240

# Zero-padded 24-hour HH:MM
TIME_OF_DAY_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")


def validate_time_of_day(value: Optional[str]) -> str:
    """
    Validate a wall-clock time string.

    Args:
        value: Time string such as "07:30"

    Returns:
        The unchanged time string

    Raises:
        ValueError: If the value is missing or not zero-padded 24-hour HH:MM
    """
    if not isinstance(value, str) or not TIME_OF_DAY_PATTERN.match(value):
        raise ValueError(f"Time must be in zero-padded HH:MM format, got {value!r}")
    return value


def minutes_since_midnight(value: str) -> int:
    hours, minutes = validate_time_of_day(value).split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(total_minutes: int) -> str:
    """Format minutes since midnight as HH:MM"""
    if not 0 <= total_minutes < 24 * 60:
        raise ValueError(f"Minutes out of day range: {total_minutes}")
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def slot_duration_minutes(start_time: str, end_time: str) -> int:
    """
    Compute a slot's duration and enforce its bounds.

    Raises:
        ValueError: If end is not after start, or the duration is outside
            [MIN_SLOT_MINUTES, MAX_SLOT_MINUTES]
    """
    duration = minutes_since_midnight(end_time) - minutes_since_midnight(start_time)

    if duration <= 0:
        raise ValueError("End time must be after start time")
    if duration < MIN_SLOT_MINUTES:
        raise ValueError(f"Minimum slot duration is {MIN_SLOT_MINUTES} minutes")
    if duration > MAX_SLOT_MINUTES:
        raise ValueError(f"Maximum slot duration is {MAX_SLOT_MINUTES} minutes")

    return duration
