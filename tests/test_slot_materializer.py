"""Tests for per-day slot materialization."""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from clinic_slots.models import Slot
from clinic_slots.services.slot_materializer import SlotMaterializer
from clinic_slots.utils.dates import normalize_slot_date
from conftest import MONDAY, SUNDAY, add_slot
from sqlalchemy import func, select

WEEKDAY_TOTAL = 15 + 6  # ghodasar + vastral
SUNDAY_TOTAL = 10  # gandhinagar only


@pytest.fixture
def materializer(slot_repo):
    return SlotMaterializer(slot_repo, tz_name="Asia/Kolkata")


async def _duplicate_groups(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(
            select(Slot.doctor_id, Slot.date, Slot.start_time, Slot.location)
            .group_by(Slot.doctor_id, Slot.date, Slot.start_time, Slot.location)
            .having(func.count() > 1)
        )
        return len(result.all())


class TestMaterializeDay:
    @pytest.mark.asyncio
    async def test_weekday_creates_configured_slots(self, materializer, slot_repo, doctor):
        created = await materializer.materialize_day(MONDAY, doctor)

        slot_date = normalize_slot_date(MONDAY)
        assert created == WEEKDAY_TOTAL
        assert await slot_repo.count(slot_date, "ghodasar") == 15
        assert await slot_repo.count(slot_date, "vastral") == 6
        assert await slot_repo.count(slot_date, "gandhinagar") == 0

    @pytest.mark.asyncio
    async def test_sunday_creates_only_gandhinagar(self, materializer, slot_repo, doctor):
        created = await materializer.materialize_day(SUNDAY, doctor)

        slot_date = normalize_slot_date(SUNDAY)
        assert created == SUNDAY_TOTAL
        assert await slot_repo.count(slot_date, "gandhinagar") == 10
        assert await slot_repo.count(slot_date, "ghodasar") == 0
        assert await slot_repo.count(slot_date, "vastral") == 0

    @pytest.mark.asyncio
    async def test_idempotent(self, materializer, slot_repo, session_factory, doctor):
        first = await materializer.materialize_day(MONDAY, doctor)
        second = await materializer.materialize_day(MONDAY, doctor)

        assert first > 0
        assert second == 0
        assert await slot_repo.count() == WEEKDAY_TOTAL
        assert await _duplicate_groups(session_factory) == 0

    @pytest.mark.asyncio
    async def test_fills_only_missing(self, materializer, session_factory, doctor):
        await add_slot(session_factory, doctor, MONDAY, "09:00", "09:30", location="ghodasar")
        await add_slot(session_factory, doctor, MONDAY, "16:00", "16:30", location="vastral")

        created = await materializer.materialize_day(MONDAY, doctor)

        assert created == WEEKDAY_TOTAL - 2

    @pytest.mark.asyncio
    async def test_slot_fields(self, materializer, slot_repo, doctor):
        await materializer.materialize_day(MONDAY, doctor)

        slots = await slot_repo.find_by_date_range(
            normalize_slot_date(MONDAY), normalize_slot_date(MONDAY), location="vastral"
        )

        first = slots[0]
        assert (first.start_time, first.end_time, first.duration) == ("16:00", "16:30", 30)
        assert first.doctor_id == doctor.id
        assert first.created_by_id == doctor.id
        assert first.notes == "Vastral Clinic - Vastral Cross Road, Vastral, Ahmedabad - 382418"
        assert first.is_available is True
        assert first.is_booked is False

    @pytest.mark.asyncio
    async def test_day_of_week_from_civil_date(self, materializer, slot_repo, doctor):
        # Sunday evening UTC is already Monday in the clinic zone
        late_sunday_utc = datetime(2026, 10, 18, 20, 0, tzinfo=timezone.utc)

        created = await materializer.materialize_day(late_sunday_utc, doctor)

        assert created == WEEKDAY_TOTAL
        assert await slot_repo.count(normalize_slot_date(MONDAY)) == WEEKDAY_TOTAL

    @pytest.mark.asyncio
    async def test_different_days_do_not_collide(self, materializer, slot_repo, doctor):
        await materializer.materialize_day(MONDAY, doctor)

        created = await materializer.materialize_day(MONDAY + timedelta(days=1), doctor)

        assert created == WEEKDAY_TOTAL


class TestDuplicateRace:
    @pytest.mark.asyncio
    async def test_concurrent_runs_leave_one_record_per_slot(self, materializer, slot_repo, session_factory, doctor):
        results = await asyncio.gather(
            materializer.materialize_day(MONDAY, doctor),
            materializer.materialize_day(MONDAY, doctor),
        )

        assert sum(results) == WEEKDAY_TOTAL
        assert await slot_repo.count() == WEEKDAY_TOTAL
        assert await _duplicate_groups(session_factory) == 0

    @pytest.mark.asyncio
    async def test_stale_existence_check_absorbed(self, materializer, slot_repo, session_factory, doctor, monkeypatch):
        # Both runs see an empty day, as if they raced past the existence check
        async def nothing_exists(*args, **kwargs):
            return set()

        monkeypatch.setattr(slot_repo, "existing_start_times", nothing_exists)

        first = await materializer.materialize_day(MONDAY, doctor)
        second = await materializer.materialize_day(MONDAY, doctor)

        assert (first, second) == (WEEKDAY_TOTAL, 0)
        assert await _duplicate_groups(session_factory) == 0

    @pytest.mark.asyncio
    async def test_persistence_failure_propagates(self, materializer, slot_repo, doctor, monkeypatch):
        async def broken_insert(rows):
            raise ConnectionError("connection lost")

        monkeypatch.setattr(slot_repo, "insert_missing", broken_insert)

        with pytest.raises(ConnectionError):
            await materializer.materialize_day(MONDAY, doctor)
