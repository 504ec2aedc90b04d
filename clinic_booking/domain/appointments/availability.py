"""
Availability queries over a doctor's slots.

Read-only: nothing here books or releases. A slot is offered on a date when
its status is available and no appointment or reservation already sits inside
its [start, end) on that date.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...models import DoctorSlot, SlotStatus
from ...shared.errors import NotFound, ValidationError
from ...shared.validators import format_hhmm
from ..schedules.expander import weekday_for
from ..schedules.repository import ScheduleRepository
from .repository import AppointmentRepository
from .slot_state import find_slot

logger = logging.getLogger(__name__)


def _slots_for_day(slots_by_weekday: dict, day: date) -> list[DoctorSlot]:
    """Slots that apply on `day`; a slot pinned to the date replaces a recurring one at the same start"""
    chosen: dict[time, DoctorSlot] = {}
    for slot in slots_by_weekday.get(weekday_for(day), ()):
        if slot.slot_date is not None and slot.slot_date != day:
            continue
        current = chosen.get(slot.start_time)
        if current is None or (current.slot_date is None and slot.slot_date is not None):
            chosen[slot.start_time] = slot
    return [chosen[start] for start in sorted(chosen)]


def _is_taken(slot: DoctorSlot, day: date, taken: set) -> bool:
    return any(d == day and slot.start_time <= t < slot.end_time for d, t in taken)


class AvailabilityService:
    def __init__(self, db: Session):
        self.db = db

    def _require_doctor(self, doctor_id: int):
        doctor = ScheduleRepository.get_doctor(self.db, doctor_id)
        if not doctor:
            raise NotFound("Doctor not found")
        return doctor

    def _grouped_slots(self, doctor_id: int) -> dict:
        grouped = defaultdict(list)
        for slot in ScheduleRepository.get_doctor_slots(self.db, doctor_id):
            grouped[slot.weekday].append(slot)
        return grouped

    def available_slots(
        self,
        doctor_id: int,
        start_date: Optional[date],
        end_date: Optional[date],
        now: Optional[datetime] = None,
    ) -> list[dict]:
        """
        Every bookable slot of a doctor between two dates, inclusive.

        Days before today are skipped, and so are today's slots that have
        already started. Returns [{"date", "start", "end"}] ordered by date
        then start time.
        """
        self._require_doctor(doctor_id)

        errors = {}
        if start_date is None:
            errors["start_date"] = "Start date is required"
        if end_date is None:
            errors["end_date"] = "End date is required"
        if not errors and end_date < start_date:
            errors["end_date"] = "End date must not be before start date"
        if not errors and (end_date - start_date).days + 1 > config.MAX_AVAILABILITY_RANGE_DAYS:
            errors["end_date"] = f"Date range cannot exceed {config.MAX_AVAILABILITY_RANGE_DAYS} days"
        if errors:
            raise ValidationError("Invalid date range", errors)

        now = now or datetime.now()
        today = now.date()
        first_day = max(start_date, today)
        if first_day > end_date:
            return []

        grouped = self._grouped_slots(doctor_id)
        taken = AppointmentRepository.get_taken_times(self.db, doctor_id, first_day, end_date)

        result = []
        day = first_day
        while day <= end_date:
            for slot in _slots_for_day(grouped, day):
                if slot.status != SlotStatus.AVAILABLE.value or _is_taken(slot, day, taken):
                    continue
                if day == today and slot.start_time <= now.time():
                    continue
                result.append({
                    "date": day.isoformat(),
                    "start": format_hhmm(slot.start_time),
                    "end": format_hhmm(slot.end_time),
                })
            day += timedelta(days=1)

        logger.info(f"📅 {len(result)} available slots for doctor {doctor_id} between {first_day} and {end_date}")
        return result

    def slots_for_date(self, doctor_id: int, day: date) -> list[dict]:
        """All of a doctor's slots on one date, each flagged with whether it can be booked"""
        self._require_doctor(doctor_id)

        grouped = self._grouped_slots(doctor_id)
        taken = AppointmentRepository.get_taken_times(self.db, doctor_id, day, day)

        return [
            {
                "id": slot.id,
                "date": day.isoformat(),
                "start": format_hhmm(slot.start_time),
                "end": format_hhmm(slot.end_time),
                "status": slot.status,
                "available": slot.status == SlotStatus.AVAILABLE.value and not _is_taken(slot, day, taken),
            }
            for slot in _slots_for_day(grouped, day)
        ]

    def is_available(self, doctor_id: int, day: date, at: time) -> bool:
        """Whether a booking for doctor/date/time would currently find a free slot"""
        self._require_doctor(doctor_id)

        slot = find_slot(self.db, doctor_id, day, at, available_only=True, for_update=False)
        if not slot:
            return False
        taken = AppointmentRepository.get_taken_times(self.db, doctor_id, day, day)
        return not _is_taken(slot, day, taken)
