"""
Booking service - create, edit and cancel appointments.

Every operation that touches a slot and an appointment row runs in one
transaction: a failure after the slot changed rolls the slot back too.
"""

import logging
from contextlib import contextmanager
from datetime import date, time
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...auth import Caller
from ...database import transaction
from ...models import Appointment, AppointmentKind
from ...shared.errors import NotFound, SlotUnavailable, ValidationError
from ...shared.validators import booking_date_error
from .repository import AppointmentRepository
from .schemas import BookingCreate, BookingUpdate
from .slot_state import book_slot, find_slot, release_slot

logger = logging.getLogger(__name__)


class BookingService:
    """Service layer for the booking orchestrator"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @contextmanager
    def booking_transaction(self, operation: str, doctor_id: int, day: date, at: time):
        """
        One transaction around a slot + appointment change.

        A unique-constraint violation means a concurrent request won the same
        doctor/date/time and becomes SlotUnavailable. Other database errors are
        logged with enough context to reproduce and re-raised, never retried.
        """
        try:
            with transaction(self.db):
                yield
        except IntegrityError as e:
            logger.warning(
                f"⚠️ {operation}: lost race for doctor={doctor_id} date={day} time={at}"
            )
            raise SlotUnavailable("The selected slot is no longer available", cause=e) from e
        except SQLAlchemyError:
            logger.error(
                f"❌ {operation} failed for doctor={doctor_id} date={day} time={at}",
                exc_info=True,
            )
            raise

    def occupy_slot(
        self,
        doctor_id: int,
        day: date,
        at: time,
        *,
        location: str,
        patient_id: Optional[int] = None,
        reason: Optional[str] = None,
        kind: AppointmentKind = AppointmentKind.APPOINTMENT,
        hold_request_id: Optional[int] = None,
    ) -> Appointment:
        """
        Book the matching available slot and insert its appointment row.

        Must run inside a transaction; raises SlotUnavailable when no
        available slot covers the time or another request booked it first.
        """
        slot = find_slot(self.db, doctor_id, day, at, available_only=True)
        if not slot:
            logger.warning(f"⚠️ No available slot for doctor={doctor_id} date={day} time={at}")
            raise SlotUnavailable("The selected slot is not available")

        if not book_slot(self.db, slot):
            raise SlotUnavailable("The selected slot is not available")

        return self.repo.create(
            self.db,
            patient_id=patient_id,
            doctor_id=doctor_id,
            appointment_date=day,
            appointment_time=at,
            location=location,
            reason=reason,
            kind=kind.value,
            hold_request_id=hold_request_id,
        )

    def release_for(self, doctor_id: int, day: date, at: time) -> None:
        """Release the slot behind an appointment; a missing slot is only logged"""
        slot = find_slot(self.db, doctor_id, day, at, available_only=False)
        if slot:
            release_slot(self.db, slot)
        else:
            logger.warning(f"⚠️ No slot to release for doctor={doctor_id} date={day} time={at}")

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _check_parties(self, errors: dict, doctor_id: Optional[int], patient_id: Optional[int]) -> None:
        if doctor_id is not None and not self.repo.get_doctor(self.db, doctor_id):
            errors["doctorId"] = "Doctor does not exist"
        if patient_id is not None and not self.repo.get_patient(self.db, patient_id):
            errors["patientId"] = "Patient does not exist"

    def _owns(self, appointment: Appointment, caller: Caller) -> bool:
        if caller.is_admin:
            return True
        if caller.is_doctor:
            return appointment.doctor_id == caller.id
        return appointment.patient_id == caller.id

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: int, caller: Caller) -> Appointment:
        """Load an appointment the caller owns; anything else is NotFound"""
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment or not self._owns(appointment, caller):
            logger.warning(f"⚠️ Appointment {appointment_id} not found or not owned by {caller.role.value} {caller.id}")
            raise NotFound("Appointment not found")
        return appointment

    def get_appointments(self, caller: Caller) -> list[Appointment]:
        if caller.is_admin:
            return self.repo.get_all(self.db)
        if caller.is_doctor:
            return self.repo.get_for_doctor(self.db, caller.id)
        return self.repo.get_for_patient(self.db, caller.id)

    def count_appointments(self) -> int:
        return self.repo.count(self.db)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_booking(self, data: BookingCreate, caller: Caller) -> Appointment:
        if caller.is_patient:
            doctor_id, patient_id = data.doctorId, caller.id
        elif caller.is_doctor:
            doctor_id, patient_id = caller.id, data.patientId
        else:
            doctor_id, patient_id = data.doctorId, data.patientId

        logger.info(
            f"📥 Booking request by {caller.role.value} {caller.id}: doctor={doctor_id} "
            f"patient={patient_id} date={data.appointmentDate} time={data.appointmentTime}"
        )

        errors = {}
        if doctor_id is None:
            errors["doctorId"] = "Doctor is required"
        if patient_id is None:
            errors["patientId"] = "Patient is required"
        date_error = booking_date_error(data.appointmentDate)
        if date_error:
            errors["appointmentDate"] = date_error
        self._check_parties(errors, doctor_id, patient_id)
        if errors:
            raise ValidationError("Invalid booking request", errors)

        with self.booking_transaction("create_booking", doctor_id, data.appointmentDate, data.appointmentTime):
            appointment = self.occupy_slot(
                doctor_id,
                data.appointmentDate,
                data.appointmentTime,
                location=data.location,
                patient_id=patient_id,
                reason=data.reason,
            )

        self.db.refresh(appointment)
        logger.info(f"✅ Appointment {appointment.id} created")
        return appointment

    # ------------------------------------------------------------------
    # Edit
    # ------------------------------------------------------------------

    def update_booking(self, appointment_id: int, data: BookingUpdate, caller: Caller) -> Appointment:
        """
        Move and/or edit an appointment.

        When doctor, date or time change, the old slot is released and the new
        one booked in the same transaction; if the new slot is unavailable the
        release is rolled back with everything else.
        """
        appointment = self.get_appointment(appointment_id, caller)

        errors = {}
        date_error = booking_date_error(data.appointmentDate)
        if date_error:
            errors["appointmentDate"] = date_error

        new_doctor_id = appointment.doctor_id
        new_patient_id = appointment.patient_id
        if caller.is_admin:
            if data.doctorId is not None:
                new_doctor_id = data.doctorId
            if data.patientId is not None:
                new_patient_id = data.patientId
            self._check_parties(errors, data.doctorId, data.patientId)
        else:
            if data.doctorId is not None and data.doctorId != appointment.doctor_id:
                errors["doctorId"] = "Only administrators can reassign the doctor"
            if data.patientId is not None and data.patientId != appointment.patient_id:
                errors["patientId"] = "Only administrators can reassign the patient"
        if errors:
            raise ValidationError("Invalid appointment update", errors)

        old_doctor_id = appointment.doctor_id
        old_date = appointment.appointment_date
        old_time = appointment.appointment_time
        slot_changed = (
            new_doctor_id != old_doctor_id
            or data.appointmentDate != old_date
            or data.appointmentTime != old_time
        )

        logger.info(
            f"📝 Updating appointment {appointment.id} by {caller.role.value} {caller.id} "
            f"(slot change: {slot_changed})"
        )

        with self.booking_transaction("update_booking", new_doctor_id, data.appointmentDate, data.appointmentTime):
            if slot_changed:
                self.release_for(old_doctor_id, old_date, old_time)

                new_slot = find_slot(
                    self.db, new_doctor_id, data.appointmentDate, data.appointmentTime, available_only=True
                )
                if not new_slot or not book_slot(self.db, new_slot):
                    logger.warning(
                        f"⚠️ New slot unavailable for appointment {appointment.id}: doctor={new_doctor_id} "
                        f"date={data.appointmentDate} time={data.appointmentTime}"
                    )
                    raise SlotUnavailable("The new time is not available")

            self.repo.update(
                self.db,
                appointment,
                doctor_id=new_doctor_id,
                patient_id=new_patient_id,
                appointment_date=data.appointmentDate,
                appointment_time=data.appointmentTime,
                location=data.location,
                reason=data.reason,
            )

        self.db.refresh(appointment)
        logger.info(f"✅ Appointment {appointment.id} updated")
        return appointment

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    def cancel_booking(self, appointment_id: int, caller: Caller) -> dict:
        """
        Release the slot and delete the appointment.

        Returns a snapshot of the removed row for follow-up notifications.
        """
        appointment = self.get_appointment(appointment_id, caller)
        snapshot = {
            "id": appointment.id,
            "patient_id": appointment.patient_id,
            "doctor_id": appointment.doctor_id,
            "date": appointment.appointment_date,
            "time": appointment.appointment_time,
            "kind": appointment.kind,
        }

        with self.booking_transaction(
            "cancel_booking", appointment.doctor_id, appointment.appointment_date, appointment.appointment_time
        ):
            self.release_for(appointment.doctor_id, appointment.appointment_date, appointment.appointment_time)
            self.repo.delete(self.db, appointment)

        logger.info(f"🗑️ Appointment {snapshot['id']} cancelled by {caller.role.value} {caller.id}")
        return snapshot
