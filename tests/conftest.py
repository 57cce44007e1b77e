from datetime import date, timedelta

import pytest
import pytest_asyncio

from clinic_slots.database import build_engine, build_session_factory, create_tables
from clinic_slots.domain.appointments.repository import AppointmentRepository
from clinic_slots.domain.slots.repository import SlotRepository
from clinic_slots.domain.staff.repository import StaffRepository
from clinic_slots.models import Appointment, Slot, User
from clinic_slots.services.window_maintainer import WindowMaintainer
from clinic_slots.utils.dates import normalize_slot_date

MONDAY = date(2026, 10, 19)
SUNDAY = MONDAY + timedelta(days=6)


class FrozenClock:
    """Stand-in for civil_today(); tests move `today` by hand"""

    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'slots.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def slot_repo(session_factory):
    return SlotRepository(session_factory, timeout=5)


@pytest.fixture
def staff_repo(session_factory):
    return StaffRepository(session_factory, timeout=5)


@pytest.fixture
def appointment_repo(session_factory):
    return AppointmentRepository(session_factory, timeout=5)


@pytest.fixture
def clock():
    return FrozenClock(MONDAY)


@pytest.fixture
def maintainer(slot_repo, staff_repo, appointment_repo, clock):
    return WindowMaintainer(
        slots=slot_repo,
        staff=staff_repo,
        appointments=appointment_repo,
        clock=clock,
        window_days=7,
        retention_days=3,
    )


async def add_user(session_factory, email: str, role: str, is_active: bool = True) -> User:
    async with session_factory() as session:
        user = User(email=email, first_name="Test", last_name=role.title(), role=role, is_active=is_active)
        session.add(user)
        await session.commit()
        return user


async def add_slot(
    session_factory,
    doctor: User,
    day: date,
    start_time: str = "09:00",
    end_time: str = "09:30",
    location: str = "ghodasar",
    **fields,
) -> Slot:
    async with session_factory() as session:
        slot = Slot(
            doctor_id=doctor.id,
            created_by_id=doctor.id,
            location=location,
            date=normalize_slot_date(day),
            start_time=start_time,
            end_time=end_time,
            **fields,
        )
        session.add(slot)
        await session.commit()
        return slot


async def add_appointment(session_factory, patient: User, doctor: User, day: date, time: str = "09:00") -> Appointment:
    async with session_factory() as session:
        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            appointment_date=normalize_slot_date(day),
            appointment_time=time,
        )
        session.add(appointment)
        await session.commit()
        return appointment


@pytest_asyncio.fixture
async def doctor(session_factory):
    return await add_user(session_factory, "doctor@example.com", "doctor")


@pytest_asyncio.fixture
async def patient(session_factory):
    return await add_user(session_factory, "patient@example.com", "patient")


class FakeMaintainer:
    """Records calls; optionally fails a named operation"""

    def __init__(self, fail: str | None = None):
        self.calls = []
        self.args = {}
        self.fail = fail

    async def _record(self, name, result, *args):
        self.calls.append(name)
        self.args[name] = args
        if self.fail == name:
            raise ConnectionError(f"{name} exploded")
        return result

    async def refresh(self):
        return await self._record("refresh", {"errors": []})

    async def ensure_window(self, days_ahead=None):
        summary = {"days": days_ahead, "created": 0, "failed_days": [], "skipped": False, "error": None}
        return await self._record("ensure_window", summary, days_ahead)

    async def retire_stale_unbooked(self, retention_days=None):
        return await self._record("retire_stale_unbooked", 0)

    async def reclaim_orphaned_appointments(self):
        return await self._record("reclaim_orphaned_appointments", {"found": 0})

    async def materialize_range(self, start, end):
        return await self._record("materialize_range", 21, start, end)

    async def materialize_future(self, months_ahead=6):
        return await self._record("materialize_future", 300, months_ahead)
