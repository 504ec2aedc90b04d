"""Hold request schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...shared.validators import format_hhmm, parse_time_range


class HoldSlotEntry(BaseModel):
    """One requested slot: {"date": "YYYY-MM-DD", "time": "HH:MM-HH:MM"}"""

    model_config = ConfigDict(populate_by_name=True)

    day: date = Field(alias="date")
    span: str = Field(alias="time")

    @field_validator("span")
    @classmethod
    def validate_span(cls, v):
        start, end = parse_time_range(v)
        return f"{format_hhmm(start)}-{format_hhmm(end)}"

    def to_stored(self) -> dict:
        return {"date": self.day.isoformat(), "time": self.span}


class HoldCreate(BaseModel):
    """Schema for a doctor's hold request"""

    requestedDate: date
    slots: list[HoldSlotEntry] = Field(min_length=1)


class HoldDecision(BaseModel):
    status: Literal["approved", "rejected"]


class HoldResponse(BaseModel):
    id: int
    doctorId: int
    doctorName: Optional[str] = None
    requestedDate: date
    slots: list[dict]
    status: str
    approvedById: Optional[int] = None
    decidedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None


class HoldCounters(BaseModel):
    pending: int
    approved: int
    rejected: int
