"""Hold request router - FastAPI endpoints for the reservation workflow"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Caller, require_role
from ...database import get_db
from ...models import HoldRequest, Role
from ...services.notification_service import notify_hold_decision
from .schemas import HoldCounters, HoldCreate, HoldDecision, HoldResponse
from .service import HoldService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/holds", tags=["Hold Requests"])

admin_only = require_role(Role.ADMIN)
doctor_only = require_role(Role.DOCTOR)


def get_hold_service(db: Session = Depends(get_db)) -> HoldService:
    """Dependency injection for HoldService"""
    return HoldService(db)


def to_hold_response(hold: HoldRequest) -> HoldResponse:
    return HoldResponse(
        id=hold.id,
        doctorId=hold.doctor_id,
        doctorName=hold.doctor.full_name if hold.doctor else None,
        requestedDate=hold.requested_date,
        slots=hold.slots or [],
        status=hold.status,
        approvedById=hold.approved_by_id,
        decidedAt=hold.decided_at,
        createdAt=hold.created_at,
    )


# ============================================================================
# DOCTOR
# ============================================================================


@router.post("", response_model=HoldResponse, status_code=201)
async def create_hold_request(
    data: HoldCreate,
    caller: Caller = Depends(doctor_only),
    service: HoldService = Depends(get_hold_service),
):
    """Ask an administrator to block the listed slots"""
    return to_hold_response(service.create_request(data, caller))


@router.get("/mine", response_model=list[HoldResponse])
async def get_my_hold_requests(
    caller: Caller = Depends(doctor_only),
    service: HoldService = Depends(get_hold_service),
):
    return [to_hold_response(h) for h in service.get_mine(caller)]


# ============================================================================
# ADMINISTRATOR
# ============================================================================


@router.get("", response_model=list[HoldResponse])
async def get_pending_hold_requests(
    doctor_id: Optional[int] = Query(None),
    requested_date: Optional[date] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    _caller: Caller = Depends(admin_only),
    service: HoldService = Depends(get_hold_service),
):
    """Pending requests, oldest first"""
    return [
        to_hold_response(h)
        for h in service.get_pending(doctor_id, requested_date, skip, limit)
    ]


@router.get("/history", response_model=list[HoldResponse])
async def get_hold_history(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    _caller: Caller = Depends(admin_only),
    service: HoldService = Depends(get_hold_service),
):
    return [to_hold_response(h) for h in service.get_history(skip, limit)]


@router.get("/counters", response_model=HoldCounters)
async def get_hold_counters(
    _caller: Caller = Depends(admin_only),
    service: HoldService = Depends(get_hold_service),
):
    return HoldCounters(**service.counters())


@router.delete("/history")
async def purge_hold_history(
    _caller: Caller = Depends(admin_only),
    service: HoldService = Depends(get_hold_service),
):
    """Delete every approved or rejected request"""
    return service.purge_history()


def _decided(hold: HoldRequest, background_tasks: BackgroundTasks) -> HoldResponse:
    background_tasks.add_task(
        notify_hold_decision,
        doctor_id=hold.doctor_id,
        request_id=hold.id,
        status=hold.status,
    )
    return to_hold_response(hold)


@router.post("/{request_id}/approve", response_model=HoldResponse)
async def approve_hold_request(
    request_id: int,
    background_tasks: BackgroundTasks,
    caller: Caller = Depends(admin_only),
    service: HoldService = Depends(get_hold_service),
):
    """Approve and book every listed slot (409 if any slot is taken)"""
    return _decided(service.approve(request_id, caller), background_tasks)


@router.post("/{request_id}/reject", response_model=HoldResponse)
async def reject_hold_request(
    request_id: int,
    background_tasks: BackgroundTasks,
    caller: Caller = Depends(admin_only),
    service: HoldService = Depends(get_hold_service),
):
    return _decided(service.reject(request_id, caller), background_tasks)


@router.put("/{request_id}", response_model=HoldResponse)
async def decide_hold_request(
    request_id: int,
    data: HoldDecision,
    background_tasks: BackgroundTasks,
    caller: Caller = Depends(admin_only),
    service: HoldService = Depends(get_hold_service),
):
    return _decided(service.decide(request_id, data.status, caller), background_tasks)
