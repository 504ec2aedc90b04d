"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...shared.validators import parse_hhmm


class BookingCreate(BaseModel):
    """
    Schema for booking an appointment.

    Patients book for themselves (doctorId required), doctors book for
    themselves (patientId required), administrators give both.
    """

    doctorId: Optional[int] = None
    patientId: Optional[int] = None
    appointmentDate: date
    appointmentTime: time
    location: str = Field(min_length=1, max_length=255)
    reason: Optional[str] = Field(default=None, max_length=255)

    @field_validator("appointmentTime", mode="before")
    @classmethod
    def validate_time(cls, v):
        return parse_hhmm(v)


class BookingUpdate(BaseModel):
    """Schema for editing an appointment; doctorId/patientId are honoured for administrators only"""

    appointmentDate: date
    appointmentTime: time
    location: str = Field(min_length=1, max_length=255)
    reason: Optional[str] = Field(default=None, max_length=255)
    doctorId: Optional[int] = None
    patientId: Optional[int] = None

    @field_validator("appointmentTime", mode="before")
    @classmethod
    def validate_time(cls, v):
        return parse_hhmm(v)


class AppointmentResponse(BaseModel):
    id: int
    patientId: Optional[int]
    doctorId: int
    appointmentDate: date
    appointmentTime: str
    location: str
    reason: Optional[str]
    kind: str
    holdRequestId: Optional[int] = None


class SlotCheckRequest(BaseModel):
    """Body of the single-slot availability check: {"date": ..., "time": ...}"""

    model_config = ConfigDict(populate_by_name=True)

    day: date = Field(alias="date")
    at: time = Field(alias="time")

    @field_validator("at", mode="before")
    @classmethod
    def validate_time(cls, v):
        return parse_hhmm(v)
