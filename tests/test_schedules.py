"""Tests for schedule templates, assignment and conflict routes."""

from datetime import time

import pytest

from clinic_booking.domain.schedules.schemas import TemplateCreate
from clinic_booking.domain.schedules.service import ScheduleService
from clinic_booking.models import DoctorSlot
from clinic_booking.shared.errors import ConflictError, ValidationError

from .helpers import next_weekday


def count_slots(db, doctor_id):
    db.expire_all()
    return db.query(DoctorSlot).filter(DoctorSlot.doctor_id == doctor_id).count()


class TestTemplateRoutes:
    """Tests for /schedules/templates endpoints."""

    def test_create_template(self, client, headers, admin):
        response = client.post(
            "/schedules/templates",
            json={"name": "Mornings", "weekdays": [5, 1, 3, 1], "startTime": "08:00", "endTime": "12:00"},
            headers=headers("admin", admin.id),
        )
        assert response.status_code == 201
        data = response.json()
        assert data["weekdays"] == [1, 3, 5]
        assert data["startTime"] == "08:00"
        assert data["endTime"] == "12:00"

    def test_sunday_zero_is_normalised(self, client, headers, admin):
        response = client.post(
            "/schedules/templates",
            json={"name": "Sundays", "weekdays": [0], "startTime": "10:00", "endTime": "12:00"},
            headers=headers("admin", admin.id),
        )
        assert response.status_code == 201
        assert response.json()["weekdays"] == [7]

    def test_end_must_follow_start(self, client, headers, admin):
        response = client.post(
            "/schedules/templates",
            json={"name": "Broken", "weekdays": [1], "startTime": "12:00", "endTime": "12:00"},
            headers=headers("admin", admin.id),
        )
        assert response.status_code == 422
        assert response.json()["errors"]["__root__"] == "endTime must be after startTime"

    def test_bad_time_format(self, client, headers, admin):
        response = client.post(
            "/schedules/templates",
            json={"name": "Broken", "weekdays": [1], "startTime": "8am", "endTime": "12:00"},
            headers=headers("admin", admin.id),
        )
        assert response.status_code == 422
        assert response.json()["errors"]["startTime"] == "Time must use the HH:MM format"

    def test_empty_weekdays(self, client, headers, admin):
        response = client.post(
            "/schedules/templates",
            json={"name": "Nothing", "weekdays": [], "startTime": "08:00", "endTime": "09:00"},
            headers=headers("admin", admin.id),
        )
        assert response.status_code == 422
        assert "weekdays" in response.json()["errors"]

    def test_requires_caller_headers(self, client):
        assert client.get("/schedules/templates").status_code == 401

    def test_crud_and_count(self, client, headers, admin):
        h = headers("admin", admin.id)
        created = client.post(
            "/schedules/templates",
            json={"name": "Evenings", "weekdays": [2], "startTime": "17:00", "endTime": "19:00"},
            headers=h,
        ).json()

        updated = client.put(
            f"/schedules/templates/{created['id']}",
            json={"name": "Late", "weekdays": [2, 4], "startTime": "18:00", "endTime": "20:00"},
            headers=h,
        )
        assert updated.status_code == 200
        assert updated.json()["name"] == "Late"
        assert client.get("/schedules/templates/count", headers=h).json() == {"total": 1}

        assert client.delete(f"/schedules/templates/{created['id']}", headers=h).status_code == 200
        assert client.get(f"/schedules/templates/{created['id']}", headers=h).status_code == 404


class TestAssignment:
    """Tests for assigning templates to doctors."""

    def test_assign_creates_available_slots(self, client, headers, admin, doctor, db):
        h = headers("admin", admin.id)
        template = client.post(
            "/schedules/templates",
            json={"name": "Mornings", "weekdays": [1, 3, 5], "startTime": "08:00", "endTime": "09:00"},
            headers=h,
        ).json()

        response = client.post(
            "/schedules/assign", json={"templateId": template["id"], "doctorId": doctor.id}, headers=h
        )
        assert response.status_code == 201
        slots = response.json()
        assert len(slots) == 6
        assert all(s["status"] == "available" for s in slots)
        assert {(s["startTime"], s["endTime"]) for s in slots} == {("08:00", "08:30"), ("08:30", "09:00")}

    def test_overlapping_assignment_is_rejected_wholesale(self, db, doctor):
        """A (Mon 08:00-10:00) then B (Mon 09:00-11:00) reports conflicts and creates nothing"""
        service = ScheduleService(db)
        template_a = service.create_template(
            TemplateCreate(name="A", weekdays=[1], startTime="08:00", endTime="10:00")
        )
        template_b = service.create_template(
            TemplateCreate(name="B", weekdays=[1], startTime="09:00", endTime="11:00")
        )
        service.assign(template_a.id, doctor.id)
        assert count_slots(db, doctor.id) == 4

        with pytest.raises(ConflictError) as exc_info:
            service.assign(template_b.id, doctor.id)

        assert len(exc_info.value.conflicts) >= 1
        assert count_slots(db, doctor.id) == 4

    def test_conflict_route_returns_409_with_list(self, client, headers, admin, schedule, doctor):
        template, _ = schedule
        response = client.post(
            "/schedules/assign",
            json={"templateId": template.id, "doctorId": doctor.id},
            headers=headers("admin", admin.id),
        )
        assert response.status_code == 409
        body = response.json()
        assert len(body["conflicts"]) == 6
        assert body["conflicts"][0]["existing"]["template"] == "Mornings"

    def test_check_conflicts_is_a_dry_run(self, client, headers, admin, schedule, doctor, db):
        template, _ = schedule
        response = client.post(
            "/schedules/check-conflicts",
            json={"templateId": template.id, "doctorId": doctor.id},
            headers=headers("admin", admin.id),
        )
        assert response.status_code == 200
        assert len(response.json()["conflicts"]) == 6
        assert count_slots(db, doctor.id) == 6

    def test_same_template_for_two_doctors(self, db, schedule, other_doctor):
        template, _ = schedule
        ScheduleService(db).assign(template.id, other_doctor.id)
        assert count_slots(db, other_doctor.id) == 6

    def test_unknown_doctor_and_template(self, db):
        with pytest.raises(ValidationError) as exc_info:
            ScheduleService(db).assign(999, 999)
        assert set(exc_info.value.errors) == {"templateId", "doctorId"}

    def test_pinned_date_must_match_template_weekday(self, db, schedule, other_doctor):
        template, _ = schedule
        tuesday = next_weekday(2)
        with pytest.raises(ValidationError) as exc_info:
            ScheduleService(db).assign(template.id, other_doctor.id, tuesday)
        assert "onDate" in exc_info.value.errors

    def test_pinned_assignment(self, db, other_doctor):
        service = ScheduleService(db)
        template = service.create_template(
            TemplateCreate(name="Extra", weekdays=[2], startTime="15:00", endTime="16:00")
        )
        tuesday = next_weekday(2)
        slots = service.assign(template.id, other_doctor.id, tuesday)

        assert len(slots) == 2
        assert all(s.slot_date == tuesday and s.weekday == 2 for s in slots)

    def test_unassign_removes_slots(self, client, headers, admin, schedule, doctor, db):
        template, _ = schedule
        response = client.post(
            "/schedules/unassign",
            json={"templateId": template.id, "doctorId": doctor.id},
            headers=headers("admin", admin.id),
        )
        assert response.status_code == 200
        assert response.json()["deletedCount"] == 6
        assert count_slots(db, doctor.id) == 0

    def test_deleting_template_cascades_to_slots(self, db, schedule, doctor):
        template, _ = schedule
        ScheduleService(db).delete_template(template.id)
        assert count_slots(db, doctor.id) == 0


class TestDoctorSlotRoutes:
    """Tests for slot listing endpoints."""

    def test_list_doctor_slots(self, client, headers, patient, schedule, doctor):
        template, _ = schedule
        response = client.get(
            f"/schedules/doctors/{doctor.id}/slots",
            params={"template_id": template.id},
            headers=headers("patient", patient.id),
        )
        assert response.status_code == 200
        assert len(response.json()) == 6

    def test_unknown_doctor(self, client, headers, patient):
        response = client.get("/schedules/doctors/999/slots", headers=headers("patient", patient.id))
        assert response.status_code == 404

    def test_own_slots_for_doctor_only(self, client, headers, patient, schedule, doctor):
        assert client.get("/schedules/me/slots", headers=headers("patient", patient.id)).status_code == 403

        response = client.get("/schedules/me/slots", headers=headers("doctor", doctor.id))
        assert response.status_code == 200
        assert len(response.json()) == 6

    def test_ranges_merge_contiguous_slots(self, client, headers, patient, schedule, doctor):
        response = client.get(f"/schedules/doctors/{doctor.id}/ranges", headers=headers("patient", patient.id))
        assert response.json() == [
            {"weekday": 1, "startTime": "08:00", "endTime": "09:00"},
            {"weekday": 3, "startTime": "08:00", "endTime": "09:00"},
            {"weekday": 5, "startTime": "08:00", "endTime": "09:00"},
        ]

    def test_slot_times_are_half_hours(self, db, schedule):
        _, slots = schedule
        assert {s.start_time for s in slots} == {time(8, 0), time(8, 30)}
