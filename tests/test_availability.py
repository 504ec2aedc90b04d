"""Tests for availability queries and the /doctors endpoints."""

from datetime import date, datetime, time, timedelta

import pytest

from clinic_booking.auth import Caller
from clinic_booking.domain.appointments.availability import AvailabilityService
from clinic_booking.domain.appointments.schemas import BookingCreate
from clinic_booking.domain.appointments.service import BookingService
from clinic_booking.models import Role
from clinic_booking.shared.errors import NotFound, ValidationError

from .helpers import next_weekday


def book(db, doctor, patient, day, at):
    BookingService(db).create_booking(
        BookingCreate(doctorId=doctor.id, appointmentDate=day, appointmentTime=at, location="Room 12"),
        Caller(patient.id, Role.PATIENT),
    )


class TestAvailableSlots:
    def test_one_week(self, db, schedule, doctor):
        monday = next_weekday(1)
        slots = AvailabilityService(db).available_slots(doctor.id, monday, monday + timedelta(days=6))

        assert len(slots) == 6
        assert slots[0] == {"date": monday.isoformat(), "start": "08:00", "end": "08:30"}
        assert [s["date"] for s in slots] == sorted(s["date"] for s in slots)

    def test_booked_slot_is_excluded(self, db, schedule, doctor, patient):
        monday = next_weekday(1)
        book(db, doctor, patient, monday, "08:00")

        slots = AvailabilityService(db).available_slots(doctor.id, monday, monday)
        assert slots == [{"date": monday.isoformat(), "start": "08:30", "end": "09:00"}]

    def test_past_days_are_skipped(self, db, schedule, doctor):
        today = next_weekday(3)
        slots = AvailabilityService(db).available_slots(
            doctor.id, today - timedelta(days=7), today + timedelta(days=1), now=datetime.combine(today, time(7, 0))
        )
        assert {s["date"] for s in slots} == {today.isoformat()}

    def test_started_slots_today_are_skipped(self, db, schedule, doctor):
        today = next_weekday(3)
        slots = AvailabilityService(db).available_slots(
            doctor.id, today, today, now=datetime.combine(today, time(8, 15))
        )
        assert slots == [{"date": today.isoformat(), "start": "08:30", "end": "09:00"}]

        slots = AvailabilityService(db).available_slots(
            doctor.id, today, today, now=datetime.combine(today, time(8, 30))
        )
        assert slots == []

    def test_range_entirely_in_the_past(self, db, schedule, doctor):
        today = date.today()
        slots = AvailabilityService(db).available_slots(
            doctor.id, today - timedelta(days=14), today - timedelta(days=7)
        )
        assert slots == []

    def test_missing_dates(self, db, doctor):
        with pytest.raises(ValidationError) as exc_info:
            AvailabilityService(db).available_slots(doctor.id, None, None)
        assert set(exc_info.value.errors) == {"start_date", "end_date"}

    def test_reversed_range(self, db, doctor):
        monday = next_weekday(1)
        with pytest.raises(ValidationError):
            AvailabilityService(db).available_slots(doctor.id, monday, monday - timedelta(days=1))

    def test_range_too_wide(self, db, doctor):
        monday = next_weekday(1)
        with pytest.raises(ValidationError) as exc_info:
            AvailabilityService(db).available_slots(doctor.id, monday, monday + timedelta(days=62))
        assert "62" in exc_info.value.errors["end_date"]

    def test_unknown_doctor(self, db):
        monday = next_weekday(1)
        with pytest.raises(NotFound):
            AvailabilityService(db).available_slots(999, monday, monday)


class TestSlotCheck:
    def test_is_available(self, db, schedule, doctor, patient):
        service = AvailabilityService(db)
        monday = next_weekday(1)

        assert service.is_available(doctor.id, monday, time(8, 0)) is True
        book(db, doctor, patient, monday, "08:00")
        assert service.is_available(doctor.id, monday, time(8, 0)) is False
        assert service.is_available(doctor.id, monday, time(12, 0)) is False

    def test_unknown_doctor(self, db):
        with pytest.raises(NotFound):
            AvailabilityService(db).is_available(999, next_weekday(1), time(8, 0))


class TestAvailabilityRoutes:
    def test_slots_route(self, client, headers, schedule, doctor, patient):
        monday = next_weekday(1)
        response = client.get(
            f"/doctors/{doctor.id}/slots",
            params={"start_date": monday.isoformat(), "end_date": (monday + timedelta(days=2)).isoformat()},
            headers=headers("patient", patient.id),
        )
        assert response.status_code == 200
        assert len(response.json()) == 4

    def test_slots_route_without_dates(self, client, headers, schedule, doctor, patient):
        response = client.get(f"/doctors/{doctor.id}/slots", headers=headers("patient", patient.id))
        assert response.status_code == 422
        assert set(response.json()["errors"]) == {"start_date", "end_date"}

    def test_slots_route_unknown_doctor(self, client, headers, patient):
        monday = next_weekday(1)
        response = client.get(
            "/doctors/999/slots",
            params={"start_date": monday.isoformat(), "end_date": monday.isoformat()},
            headers=headers("patient", patient.id),
        )
        assert response.status_code == 404

    def test_slots_by_date_flags(self, client, headers, db, schedule, doctor, patient):
        monday = next_weekday(1)
        book(db, doctor, patient, monday, "08:30")

        response = client.get(
            f"/doctors/{doctor.id}/slots-by-date",
            params={"date": monday.isoformat()},
            headers=headers("patient", patient.id),
        )
        assert response.status_code == 200
        flags = {(s["start"], s["available"]) for s in response.json()}
        assert flags == {("08:00", True), ("08:30", False)}

    def test_validate_slot(self, client, headers, schedule, doctor, patient):
        monday = next_weekday(1)
        response = client.post(
            f"/doctors/{doctor.id}/validate-slot",
            json={"date": monday.isoformat(), "time": "08:00"},
            headers=headers("patient", patient.id),
        )
        assert response.status_code == 200
        assert response.json() == {"available": True}

        response = client.post(
            f"/doctors/{doctor.id}/validate-slot",
            json={"date": next_weekday(2).isoformat(), "time": "08:00"},
            headers=headers("patient", patient.id),
        )
        assert response.json() == {"available": False}
