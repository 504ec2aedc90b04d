"""Conflict detection between a candidate template and a doctor's existing slots"""

from datetime import date, time
from typing import Iterable, Optional

from ...models import DoctorSlot, ScheduleTemplate
from ...shared.validators import format_hhmm
from .expander import weekday_for


def ranges_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Half-open interval overlap: touching ranges do not collide"""
    return start_a < end_b and end_a > start_b


def find_conflicts(
    template: ScheduleTemplate,
    existing_slots: Iterable[DoctorSlot],
    on_date: Optional[date] = None,
) -> list[dict]:
    """
    Collect every existing slot the candidate template would overlap.

    All conflicts are returned, not just the first. A recurring candidate is
    compared with every slot on its weekdays; a candidate pinned to on_date is
    compared with recurring slots and with slots pinned to that same date.
    """
    weekdays = [weekday_for(on_date)] if on_date else list(template.weekdays)
    by_weekday: dict[int, list[DoctorSlot]] = {}
    for slot in existing_slots:
        by_weekday.setdefault(slot.weekday, []).append(slot)

    conflicts = []
    for weekday in weekdays:
        for slot in sorted(by_weekday.get(weekday, []), key=lambda s: s.start_time):
            if on_date and slot.slot_date is not None and slot.slot_date != on_date:
                continue
            if not ranges_overlap(template.start_time, template.end_time, slot.start_time, slot.end_time):
                continue

            conflicts.append(
                {
                    "weekday": weekday,
                    "existing": {
                        "startTime": format_hhmm(slot.start_time),
                        "endTime": format_hhmm(slot.end_time),
                        "date": slot.slot_date.isoformat() if slot.slot_date else None,
                        "template": slot.template.name if slot.template else "Unknown",
                    },
                    "candidate": {
                        "startTime": format_hhmm(template.start_time),
                        "endTime": format_hhmm(template.end_time),
                        "template": template.name,
                    },
                }
            )
    return conflicts
