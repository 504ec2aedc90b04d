import enum

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Role(str, enum.Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class SlotStatus(str, enum.Enum):
    AVAILABLE = "available"
    BOOKED = "booked"


class AppointmentKind(str, enum.Enum):
    APPOINTMENT = "appointment"
    RESERVATION = "reservation"


class HoldStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class User(Base):
    """Account identity. Profiles point here; accounts keep no back-pointers."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=True)
    full_name = Column(String(255), nullable=False)
    specialty = Column(String(255), nullable=True)
    workplace = Column(String(255), nullable=True)  # Default appointment location

    user = relationship("User")
    slots = relationship("DoctorSlot", back_populates="doctor", cascade="all, delete-orphan")


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=True)
    full_name = Column(String(255), nullable=False)
    document = Column(String(50), nullable=True)
    phone = Column(String(50), nullable=True)

    user = relationship("User")


class Administrator(Base):
    __tablename__ = "administrators"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=True)
    full_name = Column(String(255), nullable=False)

    user = relationship("User")


class ScheduleTemplate(Base):
    """Named weekly range, not tied to any doctor until assigned"""

    __tablename__ = "schedule_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    weekdays = Column(JSON, nullable=False)  # Sorted ISO weekdays, 1=Monday..7=Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    slots = relationship("DoctorSlot", back_populates="template", cascade="all, delete-orphan")


class DoctorSlot(Base):
    """
    One atomic bookable slot produced by expanding a template for a doctor.

    Recurring slots have no slot_date and apply to every date on their weekday.
    One-off slots are pinned to slot_date; weekday is still stored for them.
    """

    __tablename__ = "doctor_slots"
    __table_args__ = (
        Index("ix_doctor_slots_lookup", "doctor_id", "weekday", "start_time"),
        Index("ix_doctor_slots_assignment", "template_id", "doctor_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(
        Integer, ForeignKey("schedule_templates.id", ondelete="CASCADE"), nullable=False
    )
    doctor_id = Column(Integer, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False)
    weekday = Column(Integer, nullable=False)
    slot_date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String(20), nullable=False, default=SlotStatus.AVAILABLE.value)

    template = relationship("ScheduleTemplate", back_populates="slots")
    doctor = relationship("Doctor", back_populates="slots")

    def __repr__(self):
        anchor = self.slot_date.isoformat() if self.slot_date else f"day {self.weekday}"
        return f"<DoctorSlot {self.id} doctor={self.doctor_id} {anchor} {self.start_time}-{self.end_time} {self.status}>"


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # Last line of defence against a lost booking race
        UniqueConstraint(
            "doctor_id",
            "appointment_date",
            "appointment_time",
            name="uq_appointments_doctor_date_time",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(Time, nullable=False)
    location = Column(String(255), nullable=False)
    reason = Column(String(255), nullable=True)
    kind = Column(String(20), nullable=False, default=AppointmentKind.APPOINTMENT.value)
    hold_request_id = Column(
        Integer, ForeignKey("hold_requests.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    patient = relationship("Patient")
    doctor = relationship("Doctor")


class HoldRequest(Base):
    """Doctor-initiated request to reserve a list of slots, decided by an administrator"""

    __tablename__ = "hold_requests"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    requested_date = Column(Date, nullable=False)
    slots = Column(JSON, nullable=False)  # [{"date": "YYYY-MM-DD", "time": "HH:MM-HH:MM"}]
    status = Column(String(20), nullable=False, default=HoldStatus.PENDING.value, index=True)
    approved_by_id = Column(Integer, ForeignKey("administrators.id"), nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    doctor = relationship("Doctor")
    approved_by = relationship("Administrator")
