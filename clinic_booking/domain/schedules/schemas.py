"""Schedule domain schemas - Pydantic models for validation"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import normalize_weekday, parse_hhmm


class TemplateCreate(BaseModel):
    """Schema for creating a weekly schedule template"""

    name: str
    weekdays: list[int]
    startTime: time
    endTime: time

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("weekdays")
    @classmethod
    def validate_weekdays(cls, v):
        if not v:
            raise ValueError("At least one weekday is required")
        return sorted({normalize_weekday(day) for day in v})

    @field_validator("startTime", "endTime", mode="before")
    @classmethod
    def validate_time(cls, v):
        return parse_hhmm(v)

    @model_validator(mode="after")
    def validate_range(self):
        if self.endTime <= self.startTime:
            raise ValueError("endTime must be after startTime")
        return self


class TemplateUpdate(TemplateCreate):
    """Schema for replacing an existing template (all fields required)"""


class TemplateResponse(BaseModel):
    id: int
    name: str
    weekdays: list[int]
    startTime: str
    endTime: str


class AssignmentRequest(BaseModel):
    """Assign or unassign a template for a doctor, optionally pinned to one date"""

    templateId: int
    doctorId: int
    onDate: Optional[date] = None


class SlotResponse(BaseModel):
    id: int
    templateId: int
    doctorId: int
    weekday: int
    slotDate: Optional[date] = None
    startTime: str
    endTime: str
    status: str


class ConflictCheckResponse(BaseModel):
    conflicts: list[dict]


class RangeResponse(BaseModel):
    """Contiguous recurring availability on one weekday"""

    weekday: int
    startTime: str
    endTime: str
