"""Appointment router - FastAPI endpoints for booking and availability"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Caller, get_current_caller
from ...database import get_db
from ...models import Appointment
from ...services.notification_service import notify_appointment_cancelled
from ...shared.validators import format_hhmm
from .availability import AvailabilityService
from .schemas import AppointmentResponse, BookingCreate, BookingUpdate, SlotCheckRequest
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])
availability_router = APIRouter(prefix="/doctors", tags=["Availability"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def to_appointment_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        patientId=appointment.patient_id,
        doctorId=appointment.doctor_id,
        appointmentDate=appointment.appointment_date,
        appointmentTime=format_hhmm(appointment.appointment_time),
        location=appointment.location,
        reason=appointment.reason,
        kind=appointment.kind,
        holdRequestId=appointment.hold_request_id,
    )


# ============================================================================
# APPOINTMENTS
# ============================================================================


@router.get("", response_model=list[AppointmentResponse])
async def get_appointments(
    caller: Caller = Depends(get_current_caller),
    service: BookingService = Depends(get_booking_service),
):
    """Appointments visible to the caller (all of them for administrators)"""
    return [to_appointment_response(a) for a in service.get_appointments(caller)]


@router.get("/count")
async def count_appointments(
    _caller: Caller = Depends(get_current_caller),
    service: BookingService = Depends(get_booking_service),
):
    return {"total": service.count_appointments()}


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    caller: Caller = Depends(get_current_caller),
    service: BookingService = Depends(get_booking_service),
):
    return to_appointment_response(service.get_appointment(appointment_id, caller))


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: BookingCreate,
    caller: Caller = Depends(get_current_caller),
    service: BookingService = Depends(get_booking_service),
):
    """Book the doctor's slot covering the requested date and time"""
    return to_appointment_response(service.create_booking(data, caller))


@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    data: BookingUpdate,
    caller: Caller = Depends(get_current_caller),
    service: BookingService = Depends(get_booking_service),
):
    """Edit an appointment, moving it to another slot when date or time change"""
    return to_appointment_response(service.update_booking(appointment_id, data, caller))


@router.delete("/{appointment_id}")
async def cancel_appointment(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    caller: Caller = Depends(get_current_caller),
    service: BookingService = Depends(get_booking_service),
):
    snapshot = service.cancel_booking(appointment_id, caller)

    # Patients cancelling their own appointment need no notification
    if not caller.is_patient and snapshot["patient_id"] is not None:
        background_tasks.add_task(
            notify_appointment_cancelled,
            patient_id=snapshot["patient_id"],
            appointment_id=snapshot["id"],
            appointment_date=snapshot["date"],
            appointment_time=snapshot["time"],
            cancelled_by="doctor" if caller.is_doctor else "administrator",
        )

    return {"message": "Appointment cancelled", "id": snapshot["id"]}


# ============================================================================
# AVAILABILITY
# ============================================================================


@availability_router.get("/{doctor_id}/slots")
async def get_available_slots(
    doctor_id: int,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    _caller: Caller = Depends(get_current_caller),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Bookable slots between two dates: [{"date", "start", "end"}]"""
    return service.available_slots(doctor_id, start_date, end_date)


@availability_router.get("/{doctor_id}/slots-by-date")
async def get_slots_by_date(
    doctor_id: int,
    day: date = Query(..., alias="date"),
    _caller: Caller = Depends(get_current_caller),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.slots_for_date(doctor_id, day)


@availability_router.post("/{doctor_id}/validate-slot")
async def validate_slot(
    doctor_id: int,
    data: SlotCheckRequest,
    _caller: Caller = Depends(get_current_caller),
    service: AvailabilityService = Depends(get_availability_service),
):
    return {"available": service.is_available(doctor_id, data.day, data.at)}
