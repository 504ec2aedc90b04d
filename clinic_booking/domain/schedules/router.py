"""Schedule router - FastAPI endpoints for templates and slot assignment"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Caller, get_current_caller, require_role
from ...database import get_db
from ...models import DoctorSlot, Role, ScheduleTemplate
from ...shared.validators import format_hhmm
from .schemas import (
    AssignmentRequest,
    ConflictCheckResponse,
    RangeResponse,
    SlotResponse,
    TemplateCreate,
    TemplateResponse,
    TemplateUpdate,
)
from .service import ScheduleService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedules", tags=["Schedules"])


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    """Dependency injection for ScheduleService"""
    return ScheduleService(db)


def to_template_response(template: ScheduleTemplate) -> TemplateResponse:
    return TemplateResponse(
        id=template.id,
        name=template.name,
        weekdays=template.weekdays,
        startTime=format_hhmm(template.start_time),
        endTime=format_hhmm(template.end_time),
    )


def to_slot_response(slot: DoctorSlot) -> SlotResponse:
    return SlotResponse(
        id=slot.id,
        templateId=slot.template_id,
        doctorId=slot.doctor_id,
        weekday=slot.weekday,
        slotDate=slot.slot_date,
        startTime=format_hhmm(slot.start_time),
        endTime=format_hhmm(slot.end_time),
        status=slot.status,
    )


# ============================================================================
# TEMPLATES
# ============================================================================


@router.get("/templates", response_model=list[TemplateResponse])
async def get_templates(
    _caller: Caller = Depends(get_current_caller),
    service: ScheduleService = Depends(get_schedule_service),
):
    """List every schedule template"""
    return [to_template_response(t) for t in service.get_templates()]


@router.get("/templates/count")
async def count_templates(
    _caller: Caller = Depends(get_current_caller),
    service: ScheduleService = Depends(get_schedule_service),
):
    return {"total": service.count_templates()}


@router.get("/templates/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: int,
    _caller: Caller = Depends(get_current_caller),
    service: ScheduleService = Depends(get_schedule_service),
):
    return to_template_response(service.get_template(template_id))


@router.post("/templates", response_model=TemplateResponse, status_code=201)
async def create_template(
    data: TemplateCreate,
    _caller: Caller = Depends(get_current_caller),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Create a template without assigning it to any doctor"""
    return to_template_response(service.create_template(data))


@router.put("/templates/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: int,
    data: TemplateUpdate,
    _caller: Caller = Depends(get_current_caller),
    service: ScheduleService = Depends(get_schedule_service),
):
    return to_template_response(service.update_template(template_id, data))


@router.delete("/templates/{template_id}")
async def delete_template(
    template_id: int,
    _caller: Caller = Depends(get_current_caller),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.delete_template(template_id)


# ============================================================================
# ASSIGNMENT
# ============================================================================


@router.post("/assign", response_model=list[SlotResponse], status_code=201)
async def assign_template(
    data: AssignmentRequest,
    _caller: Caller = Depends(get_current_caller),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Expand a template into 30 minute slots for a doctor (409 on overlap)"""
    slots = service.assign(data.templateId, data.doctorId, data.onDate)
    return [to_slot_response(s) for s in slots]


@router.post("/unassign")
async def unassign_template(
    data: AssignmentRequest,
    _caller: Caller = Depends(get_current_caller),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.unassign(data.templateId, data.doctorId, data.onDate)


@router.post("/check-conflicts", response_model=ConflictCheckResponse)
async def check_conflicts(
    data: AssignmentRequest,
    _caller: Caller = Depends(get_current_caller),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Report the conflicts an assignment would hit, without assigning"""
    return ConflictCheckResponse(
        conflicts=service.check_conflicts(data.templateId, data.doctorId, data.onDate)
    )


# ============================================================================
# DOCTOR SLOTS
# ============================================================================


@router.get("/me/slots", response_model=list[SlotResponse])
async def get_own_slots(
    caller: Caller = Depends(require_role(Role.DOCTOR)),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Slots of the calling doctor"""
    return [to_slot_response(s) for s in service.get_doctor_slots(caller.id)]


@router.get("/doctors/{doctor_id}/slots", response_model=list[SlotResponse])
async def get_doctor_slots(
    doctor_id: int,
    template_id: Optional[int] = Query(None),
    _caller: Caller = Depends(get_current_caller),
    service: ScheduleService = Depends(get_schedule_service),
):
    return [to_slot_response(s) for s in service.get_doctor_slots(doctor_id, template_id)]


@router.get("/doctors/{doctor_id}/ranges", response_model=list[RangeResponse])
async def get_doctor_ranges(
    doctor_id: int,
    _caller: Caller = Depends(get_current_caller),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Recurring availability compacted into contiguous ranges per weekday"""
    return service.get_doctor_ranges(doctor_id)
