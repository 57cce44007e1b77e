from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func

from .database import Base
from .errors import SlotUnavailableError
from .shared.validators import slot_duration_minutes, validate_time_of_day


class User(Base):
    """Staff and patient accounts (only the fields the slot engine reads)"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(String(20), default="patient", nullable=False)  # patient, doctor, admin
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    appointment_date = Column(DateTime, nullable=False, index=True)  # midnight of the civil date
    appointment_time = Column(String(5), nullable=False)  # HH:MM
    status = Column(String(20), default="confirmed", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Slot(Base):
    """One bookable interval at one clinic on one calendar date"""

    __tablename__ = "slots"
    __table_args__ = (
        # A slot is identified by (doctor, date, start time, clinic)
        UniqueConstraint("doctor_id", "date", "start_time", "location", name="uq_slot_identity"),
        CheckConstraint("duration >= 15 AND duration <= 240", name="ck_slot_duration"),
        # Booking party and appointment are set exactly when the slot is booked
        CheckConstraint(
            "(is_booked AND booked_by_id IS NOT NULL AND appointment_id IS NOT NULL) "
            "OR (NOT is_booked AND booked_by_id IS NULL AND appointment_id IS NULL)",
            name="ck_slot_booking_party",
        ),
        Index("ix_slots_date_available_booked", "date", "is_available", "is_booked"),
    )

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    location = Column(String(50), nullable=False)  # clinic code
    date = Column(DateTime, nullable=False)  # naive midnight, see utils.dates.normalize_slot_date
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    duration = Column(Integer, default=30, nullable=False)  # minutes

    is_available = Column(Boolean, default=True, nullable=False)
    is_booked = Column(Boolean, default=False, nullable=False)
    booked_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True, index=True)

    notes = Column(Text, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    doctor = relationship("User", foreign_keys=[doctor_id])
    booked_by = relationship("User", foreign_keys=[booked_by_id])

    @validates("start_time", "end_time")
    def _validate_time(self, key, value):
        return validate_time_of_day(value)

    def book(self, patient_id: int, appointment_id: int) -> None:
        if patient_id is None or appointment_id is None:
            raise ValueError("Booking a slot requires both patient_id and appointment_id")
        if self.is_booked or not self.is_available:
            raise SlotUnavailableError(f"Slot {self.id} is not available for booking")
        self.is_booked = True
        self.booked_by_id = patient_id
        self.appointment_id = appointment_id

    def release(self) -> None:
        self.is_booked = False
        self.booked_by_id = None
        self.appointment_id = None

    def __repr__(self) -> str:
        return f"<Slot {self.location} {self.date:%Y-%m-%d} {self.start_time}-{self.end_time}>"


@event.listens_for(Slot, "before_insert")
@event.listens_for(Slot, "before_update")
def _set_slot_duration(_mapper, _connection, target: Slot) -> None:
    # Raises ValueError when end <= start or the duration is out of bounds
    target.duration = slot_duration_minutes(target.start_time, target.end_time)
