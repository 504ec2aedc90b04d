"""
Doctor slot state machine.

A slot is either available or booked. Both transitions are single-row
conditional UPDATEs; callers wrap the surrounding lookup and the paired
appointment write in one transaction.
"""

import logging
from datetime import date, time
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import DoctorSlot, SlotStatus
from ..schedules.expander import weekday_for

logger = logging.getLogger(__name__)


def find_slot(
    db: Session,
    doctor_id: int,
    day: date,
    at: time,
    *,
    available_only: bool,
    for_update: bool = True,
) -> Optional[DoctorSlot]:
    """
    Locate the doctor's slot whose [start, end) contains `at` on `day`.

    A slot pinned to `day` wins over a recurring slot on the same weekday.
    With for_update the row is locked until the transaction ends on
    databases that support SELECT ... FOR UPDATE.
    """
    query = db.query(DoctorSlot).filter(
        DoctorSlot.doctor_id == doctor_id,
        DoctorSlot.weekday == weekday_for(day),
        or_(DoctorSlot.slot_date.is_(None), DoctorSlot.slot_date == day),
        DoctorSlot.start_time <= at,
        DoctorSlot.end_time > at,
    )
    if available_only:
        query = query.filter(DoctorSlot.status == SlotStatus.AVAILABLE.value)
    if for_update:
        query = query.with_for_update()

    return query.order_by(DoctorSlot.slot_date.is_(None), DoctorSlot.start_time).first()


def book_slot(db: Session, slot: DoctorSlot) -> bool:
    """
    available -> booked.

    Returns False when the row was no longer available, which means another
    transaction booked it after our read.
    """
    changed = (
        db.query(DoctorSlot)
        .filter(DoctorSlot.id == slot.id, DoctorSlot.status == SlotStatus.AVAILABLE.value)
        .update({DoctorSlot.status: SlotStatus.BOOKED.value}, synchronize_session=False)
    )
    db.expire(slot, ["status"])

    if changed:
        logger.info(f"🔒 Slot {slot.id} booked")
    else:
        logger.warning(f"⚠️ Slot {slot.id} was already booked")
    return bool(changed)


def release_slot(db: Session, slot: DoctorSlot) -> bool:
    """booked -> available; a no-op on an available slot. Returns whether it changed."""
    changed = (
        db.query(DoctorSlot)
        .filter(DoctorSlot.id == slot.id, DoctorSlot.status == SlotStatus.BOOKED.value)
        .update({DoctorSlot.status: SlotStatus.AVAILABLE.value}, synchronize_session=False)
    )
    db.expire(slot, ["status"])

    if changed:
        logger.info(f"🔓 Slot {slot.id} released")
    return bool(changed)
