"""
Hold request service - doctors ask to block slots, administrators decide.

Approval reuses the booking primitives: every listed slot is booked and gets
a reservation row, in the same transaction as the status change.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import Caller
from ...database import transaction
from ...models import AppointmentKind, HoldRequest, HoldStatus
from ...shared.errors import NotFound, ValidationError
from ...shared.validators import booking_date_error, parse_time_range
from ..appointments.availability import AvailabilityService
from ..appointments.repository import AppointmentRepository
from ..appointments.service import BookingService
from ..appointments.slot_state import find_slot
from .repository import HoldRepository
from .schemas import HoldCreate

logger = logging.getLogger(__name__)

RESERVATION_LOCATION = "Reserved"


def parse_stored_slots(entries) -> list[tuple[date, time]]:
    """
    Turn a stored slot list into (date, start time) pairs.

    Raises:
        ValidationError: If the list is empty or any entry is malformed
    """
    if not isinstance(entries, list) or not entries:
        raise ValidationError("Hold request has no slots", {"slots": "At least one slot is required"})

    parsed = []
    errors = {}
    for index, entry in enumerate(entries):
        try:
            day = date.fromisoformat(entry["date"])
            start, _end = parse_time_range(entry["time"])
        except (KeyError, TypeError, ValueError) as e:
            errors[f"slots.{index}"] = f"Malformed slot entry: {e}"
            continue
        parsed.append((day, start))

    if errors:
        raise ValidationError("Hold request has malformed slots", errors)
    return parsed


class HoldService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = HoldRepository()
        self.booking = BookingService(db)

    def _get_pending(self, request_id: int, for_update: bool = False) -> HoldRequest:
        hold = self.repo.get_by_id(self.db, request_id, for_update=for_update)
        if not hold or hold.status != HoldStatus.PENDING.value:
            raise NotFound("Pending hold request not found")
        return hold

    def _check_approver(self, caller: Caller) -> None:
        if not self.repo.get_administrator(self.db, caller.id):
            raise ValidationError("Unknown administrator", {"approvedBy": "Administrator does not exist"})

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_request(self, data: HoldCreate, caller: Caller) -> HoldRequest:
        """
        Queue a pending hold request for the calling doctor.

        Each entry is checked up front: past dates, duplicates and slots that
        are not currently available reject the whole request.
        """
        doctor_id = caller.id
        if not AppointmentRepository.get_doctor(self.db, doctor_id):
            raise ValidationError("Unknown doctor", {"doctorId": "Doctor does not exist"})

        errors = {}
        date_error = booking_date_error(data.requestedDate)
        if date_error:
            errors["requestedDate"] = date_error

        availability = AvailabilityService(self.db)
        seen = set()
        for index, entry in enumerate(data.slots):
            key = f"slots.{index}"
            start, _end = parse_time_range(entry.span)
            # Slot state is shared by every date on the weekday, so two
            # entries resolving to one slot can never both be booked
            slot = find_slot(self.db, doctor_id, entry.day, start, available_only=False, for_update=False)
            slot_key = slot.id if slot else (entry.day, start)
            date_error = booking_date_error(entry.day)
            if date_error:
                errors[key] = date_error
            elif slot_key in seen:
                errors[key] = "Slot is listed twice"
            elif not availability.is_available(doctor_id, entry.day, start):
                errors[key] = f"Slot {entry.day.isoformat()} {entry.span} is not available"
            seen.add(slot_key)

        if errors:
            logger.warning(f"⚠️ Hold request from doctor {doctor_id} rejected: {errors}")
            raise ValidationError("Some requested slots cannot be held", errors)

        with transaction(self.db):
            hold = self.repo.create(
                self.db,
                doctor_id=doctor_id,
                requested_date=data.requestedDate,
                slots=[entry.to_stored() for entry in data.slots],
                status=HoldStatus.PENDING.value,
            )

        self.db.refresh(hold)
        logger.info(f"✅ Hold request {hold.id} created by doctor {doctor_id} ({len(data.slots)} slots)")
        return hold

    # ------------------------------------------------------------------
    # Decide
    # ------------------------------------------------------------------

    def approve(self, request_id: int, caller: Caller) -> HoldRequest:
        """
        Approve a pending request and book every listed slot.

        All or nothing: a malformed list raises ValidationError and a slot that
        cannot be booked raises SlotUnavailable; either way the request stays
        pending and no slot changes.
        """
        hold = self._get_pending(request_id)
        self._check_approver(caller)
        entries = parse_stored_slots(hold.slots)

        doctor = AppointmentRepository.get_doctor(self.db, hold.doctor_id)
        location = (doctor.workplace if doctor else None) or RESERVATION_LOCATION

        logger.info(f"📥 Approving hold request {hold.id} ({len(entries)} slots) by admin {caller.id}")

        with self.booking.booking_transaction("approve_hold", hold.doctor_id, hold.requested_date, None):
            hold = self._get_pending(request_id, for_update=True)
            hold.status = HoldStatus.APPROVED.value
            hold.approved_by_id = caller.id
            hold.decided_at = datetime.now(timezone.utc)

            for day, start in entries:
                self.booking.occupy_slot(
                    hold.doctor_id,
                    day,
                    start,
                    location=location,
                    reason=f"Reserved (hold request #{hold.id})",
                    kind=AppointmentKind.RESERVATION,
                    hold_request_id=hold.id,
                )

        self.db.refresh(hold)
        logger.info(f"✅ Hold request {hold.id} approved")
        return hold

    def reject(self, request_id: int, caller: Caller) -> HoldRequest:
        """Reject a pending request; slots are untouched"""
        self._check_approver(caller)

        with transaction(self.db):
            hold = self._get_pending(request_id, for_update=True)
            hold.status = HoldStatus.REJECTED.value
            hold.approved_by_id = caller.id
            hold.decided_at = datetime.now(timezone.utc)

        self.db.refresh(hold)
        logger.info(f"🚫 Hold request {hold.id} rejected by admin {caller.id}")
        return hold

    def decide(self, request_id: int, status: str, caller: Caller) -> HoldRequest:
        if status == HoldStatus.APPROVED.value:
            return self.approve(request_id, caller)
        if status == HoldStatus.REJECTED.value:
            return self.reject(request_id, caller)
        raise ValidationError("Invalid decision", {"status": "Status must be approved or rejected"})

    # ------------------------------------------------------------------
    # Queries and cleanup
    # ------------------------------------------------------------------

    def get_pending(
        self,
        doctor_id: Optional[int] = None,
        requested_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[HoldRequest]:
        return self.repo.get_pending(self.db, doctor_id, requested_date, skip, limit)

    def get_history(self, skip: int = 0, limit: int = 50) -> list[HoldRequest]:
        return self.repo.get_history(self.db, skip, limit)

    def get_mine(self, caller: Caller) -> list[HoldRequest]:
        return self.repo.get_for_doctor(self.db, caller.id)

    def counters(self) -> dict[str, int]:
        return self.repo.count_by_status(self.db)

    def purge_history(self) -> dict:
        with transaction(self.db):
            deleted = self.repo.delete_decided(self.db)

        logger.info(f"🗑️ Purged {deleted} decided hold requests")
        return {"message": "History purged", "deletedCount": deleted}
