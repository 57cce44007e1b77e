"""Slot domain schemas - Pydantic models for validation"""

from datetime import datetime, time
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import slot_duration_minutes, validate_time_of_day


class SlotCreate(BaseModel):
    """A slot row about to be bulk-inserted"""

    doctor_id: int
    created_by_id: int
    location: str
    date: datetime
    start_time: str
    end_time: str
    duration: Optional[int] = None
    notes: Optional[str] = None
    is_available: bool = True
    is_booked: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_of_day(v)

    @field_validator("date")
    @classmethod
    def validate_normalized_date(cls, v):
        if v.tzinfo is not None or v.time() != time.min:
            raise ValueError("Slot date must be a naive datetime at midnight")
        return v

    @model_validator(mode="after")
    def compute_duration(self):
        self.duration = slot_duration_minutes(self.start_time, self.end_time)
        return self
