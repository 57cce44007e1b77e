"""Tests for slot record validation and civil date helpers."""
from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from clinic_slots.domain.slots.schemas import SlotCreate
from clinic_slots.models import Slot
from clinic_slots.shared.validators import slot_duration_minutes, validate_time_of_day
from clinic_slots.utils.dates import day_of_week, normalize_slot_date, to_civil_date


def _slot_create(**overrides):
    fields = {
        "doctor_id": 1,
        "created_by_id": 1,
        "location": "ghodasar",
        "date": datetime(2026, 10, 19),
        "start_time": "09:00",
        "end_time": "09:30",
    }
    fields.update(overrides)
    return SlotCreate(**fields)


class TestTimeValidators:
    @pytest.mark.parametrize("value", ["00:00", "07:30", "23:59"])
    def test_accepts_zero_padded(self, value):
        assert validate_time_of_day(value) == value

    @pytest.mark.parametrize("value", ["7:30", "24:00", "12:60", "1230", "", None])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            validate_time_of_day(value)

    def test_duration(self):
        assert slot_duration_minutes("09:00", "09:30") == 30

    @pytest.mark.parametrize(
        "start,end",
        [("09:30", "09:30"), ("10:00", "09:00"), ("09:00", "09:10"), ("08:00", "12:30")],
    )
    def test_duration_out_of_bounds(self, start, end):
        with pytest.raises(ValueError):
            slot_duration_minutes(start, end)


class TestSlotCreate:
    def test_computes_duration(self):
        row = _slot_create(start_time="09:00", end_time="10:00")

        assert row.duration == 60
        assert row.is_available is True
        assert row.is_booked is False

    def test_rejects_end_before_start(self):
        with pytest.raises(ValidationError):
            _slot_create(start_time="10:00", end_time="09:30")

    def test_rejects_malformed_time(self):
        with pytest.raises(ValidationError):
            _slot_create(start_time="9:00")

    def test_rejects_non_midnight_date(self):
        with pytest.raises(ValidationError):
            _slot_create(date=datetime(2026, 10, 19, 5, 30))


class TestSlotModel:
    def test_rejects_malformed_time_on_assignment(self):
        with pytest.raises(ValueError):
            Slot(start_time="9:00")

    def test_book_and_release(self):
        slot = Slot(start_time="09:00", end_time="09:30", is_available=True, is_booked=False)

        slot.book(patient_id=7, appointment_id=11)
        assert (slot.is_booked, slot.booked_by_id, slot.appointment_id) == (True, 7, 11)

        slot.release()
        assert (slot.is_booked, slot.booked_by_id, slot.appointment_id) == (False, None, None)


class TestCivilDates:
    def test_sunday_is_zero(self):
        assert day_of_week(date(2026, 10, 18)) == 0
        assert day_of_week(date(2026, 10, 19)) == 1
        assert day_of_week(date(2026, 10, 24)) == 6

    def test_aware_datetime_uses_clinic_zone(self):
        # 20:00 UTC on Sunday is already 01:30 Monday in Asia/Kolkata
        late_sunday_utc = datetime(2026, 10, 18, 20, 0, tzinfo=timezone.utc)

        civil = to_civil_date(late_sunday_utc, "Asia/Kolkata")

        assert civil == date(2026, 10, 19)
        assert day_of_week(civil) == 1

    def test_naive_datetime_taken_at_face_value(self):
        assert to_civil_date(datetime(2026, 10, 18, 23, 59), "Asia/Kolkata") == date(2026, 10, 18)

    def test_normalize_is_naive_midnight(self):
        normalized = normalize_slot_date(date(2026, 10, 19))

        assert normalized == datetime(2026, 10, 19)
        assert normalized.tzinfo is None

    def test_same_day_normalizes_identically(self):
        assert normalize_slot_date(datetime(2026, 10, 19, 8, 15)) == normalize_slot_date(date(2026, 10, 19))
