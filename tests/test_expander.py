"""Tests for slot expansion and conflict detection (no database needed)."""

from datetime import date, time

from clinic_booking.domain.schedules.conflicts import find_conflicts, ranges_overlap
from clinic_booking.domain.schedules.expander import expand_template, iter_slot_ranges, weekday_for
from clinic_booking.models import DoctorSlot, ScheduleTemplate


def make_template(name="Day", weekdays=(1,), start=time(9, 0), end=time(17, 0), template_id=1):
    return ScheduleTemplate(
        id=template_id, name=name, weekdays=list(weekdays), start_time=start, end_time=end
    )


def make_slot(weekday, start, end, template=None, slot_date=None):
    slot = DoctorSlot(
        doctor_id=1, weekday=weekday, slot_date=slot_date, start_time=start, end_time=end, status="available"
    )
    slot.template = template
    return slot


class TestWeekday:
    def test_sunday_is_seven(self):
        """Sunday maps to 7 regardless of how the platform counts"""
        assert weekday_for(date(2024, 6, 2)) == 7

    def test_monday_is_one(self):
        assert weekday_for(date(2024, 6, 3)) == 1


class TestIterSlotRanges:
    def test_full_day_has_sixteen_ranges(self):
        ranges = list(iter_slot_ranges(time(9, 0), time(17, 0)))
        assert len(ranges) == 16
        assert ranges[0] == (time(9, 0), time(9, 30))
        assert ranges[-1] == (time(16, 30), time(17, 0))

    def test_partial_last_range_is_clipped(self):
        ranges = list(iter_slot_ranges(time(9, 0), time(10, 15)))
        assert ranges == [
            (time(9, 0), time(9, 30)),
            (time(9, 30), time(10, 0)),
            (time(10, 0), time(10, 15)),
        ]

    def test_ranges_are_contiguous(self):
        ranges = list(iter_slot_ranges(time(8, 0), time(12, 0)))
        for (_, end), (next_start, _) in zip(ranges, ranges[1:]):
            assert end == next_start


class TestExpandTemplate:
    def test_sixteen_slots_per_weekday(self):
        """09:00-17:00 on Monday and Wednesday gives 16 available slots per day"""
        slots = expand_template(make_template(weekdays=[1, 3]), doctor_id=7)

        assert len(slots) == 32
        for weekday in (1, 3):
            day_slots = [s for s in slots if s.weekday == weekday]
            assert len(day_slots) == 16
            for a, b in zip(day_slots, day_slots[1:]):
                assert a.end_time <= b.start_time
        assert all(s.status == "available" for s in slots)
        assert all(s.doctor_id == 7 and s.template_id == 1 for s in slots)

    def test_three_days_one_hour(self):
        slots = expand_template(make_template(weekdays=[1, 3, 5], start=time(8, 0), end=time(9, 0)), doctor_id=2)

        assert len(slots) == 6
        assert sorted({s.weekday for s in slots}) == [1, 3, 5]
        assert {(s.start_time, s.end_time) for s in slots} == {
            (time(8, 0), time(8, 30)),
            (time(8, 30), time(9, 0)),
        }

    def test_pinned_to_date_expands_only_that_weekday(self):
        sunday = date(2024, 6, 2)
        slots = expand_template(make_template(weekdays=[1, 7]), doctor_id=2, on_date=sunday)

        assert len(slots) == 16
        assert all(s.weekday == 7 and s.slot_date == sunday for s in slots)

    def test_expansion_is_deterministic(self):
        template = make_template(weekdays=[2, 4])
        first = [(s.weekday, s.start_time, s.end_time) for s in expand_template(template, 1)]
        second = [(s.weekday, s.start_time, s.end_time) for s in expand_template(template, 1)]
        assert first == second


class TestConflicts:
    def test_half_open_overlap(self):
        assert ranges_overlap(time(8), time(10), time(9), time(11))
        assert not ranges_overlap(time(8), time(9), time(9), time(10))

    def test_overlapping_template_reports_every_slot(self):
        """A on Monday 08:00-10:00 and B on Monday 09:00-11:00 collide on two slots"""
        template_a = make_template(name="A", start=time(8, 0), end=time(10, 0))
        existing = expand_template(template_a, doctor_id=1)
        for slot in existing:
            slot.template = template_a

        template_b = make_template(name="B", start=time(9, 0), end=time(11, 0), template_id=2)
        conflicts = find_conflicts(template_b, existing)

        assert len(conflicts) == 2
        assert conflicts[0] == {
            "weekday": 1,
            "existing": {"startTime": "09:00", "endTime": "09:30", "date": None, "template": "A"},
            "candidate": {"startTime": "09:00", "endTime": "11:00", "template": "B"},
        }

    def test_adjacent_templates_do_not_conflict(self):
        existing = [make_slot(1, time(8, 0), time(8, 30)), make_slot(1, time(8, 30), time(9, 0))]
        assert find_conflicts(make_template(start=time(9, 0), end=time(10, 0)), existing) == []

    def test_other_weekdays_are_ignored(self):
        existing = [make_slot(2, time(9, 0), time(9, 30))]
        assert find_conflicts(make_template(weekdays=[1]), existing) == []

    def test_missing_template_is_reported_as_unknown(self):
        existing = [make_slot(1, time(9, 0), time(9, 30), template=None)]
        conflicts = find_conflicts(make_template(), existing)
        assert conflicts[0]["existing"]["template"] == "Unknown"

    def test_dated_candidate_skips_slots_pinned_to_other_dates(self):
        monday = date(2024, 6, 3)
        other_monday = date(2024, 6, 10)
        existing = [
            make_slot(1, time(9, 0), time(9, 30), slot_date=other_monday),
            make_slot(1, time(10, 0), time(10, 30), slot_date=monday),
        ]
        conflicts = find_conflicts(make_template(), existing, on_date=monday)

        assert len(conflicts) == 1
        assert conflicts[0]["existing"]["date"] == monday.isoformat()
