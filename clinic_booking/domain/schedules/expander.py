"""Slot expansion - turns a weekly template into atomic doctor slots"""

from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional

from ...config import SLOT_MINUTES
from ...models import DoctorSlot, ScheduleTemplate, SlotStatus


def weekday_for(day: date) -> int:
    """
    ISO weekday of a calendar date (1=Monday..7=Sunday).

    Every slot lookup derives its weekday through here so Sunday is always 7.
    """
    return day.isoweekday()


def iter_slot_ranges(start: time, end: time, minutes: int = SLOT_MINUTES) -> Iterator[tuple[time, time]]:
    """
    Yield consecutive (start, end) ranges covering [start, end).

    The last range is clipped to `end` when the span is not a whole number
    of slots, so there are ceil(span / minutes) ranges.
    """
    if minutes <= 0:
        raise ValueError("Slot length must be positive")

    # Any fixed date works; only the clock part is kept
    cursor = datetime.combine(date(2000, 1, 1), start)
    stop = datetime.combine(date(2000, 1, 1), end)
    step = timedelta(minutes=minutes)

    while cursor < stop:
        next_cursor = min(cursor + step, stop)
        yield cursor.time(), next_cursor.time()
        cursor = next_cursor


def expand_template(
    template: ScheduleTemplate,
    doctor_id: int,
    on_date: Optional[date] = None,
    minutes: int = SLOT_MINUTES,
) -> list[DoctorSlot]:
    """
    Build (unsaved) slots for one doctor from a template.

    With on_date the expansion is pinned to that calendar date and only its
    weekday is produced; otherwise every template weekday gets recurring slots.
    """
    weekdays = [weekday_for(on_date)] if on_date else list(template.weekdays)

    slots = []
    for weekday in weekdays:
        for slot_start, slot_end in iter_slot_ranges(template.start_time, template.end_time, minutes):
            slots.append(
                DoctorSlot(
                    template_id=template.id,
                    doctor_id=doctor_id,
                    weekday=weekday,
                    slot_date=on_date,
                    start_time=slot_start,
                    end_time=slot_end,
                    status=SlotStatus.AVAILABLE.value,
                )
            )
    return slots
