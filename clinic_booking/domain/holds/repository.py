"""Hold request repository - Database operations for hold requests"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Administrator, HoldRequest, HoldStatus

DECIDED_STATUSES = [HoldStatus.APPROVED.value, HoldStatus.REJECTED.value]


class HoldRepository:
    """Repository for hold request database operations"""

    @staticmethod
    def get_by_id(db: Session, request_id: int, for_update: bool = False) -> Optional[HoldRequest]:
        query = db.query(HoldRequest).filter(HoldRequest.id == request_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_pending(
        db: Session,
        doctor_id: Optional[int] = None,
        requested_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[HoldRequest]:
        query = (
            db.query(HoldRequest)
            .options(joinedload(HoldRequest.doctor))
            .filter(HoldRequest.status == HoldStatus.PENDING.value)
        )
        if doctor_id is not None:
            query = query.filter(HoldRequest.doctor_id == doctor_id)
        if requested_date is not None:
            query = query.filter(HoldRequest.requested_date == requested_date)

        return query.order_by(HoldRequest.created_at, HoldRequest.id).offset(skip).limit(limit).all()

    @staticmethod
    def get_history(db: Session, skip: int = 0, limit: int = 50) -> list[HoldRequest]:
        return (
            db.query(HoldRequest)
            .options(joinedload(HoldRequest.doctor))
            .filter(HoldRequest.status.in_(DECIDED_STATUSES))
            .order_by(HoldRequest.decided_at.desc(), HoldRequest.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_for_doctor(db: Session, doctor_id: int) -> list[HoldRequest]:
        return (
            db.query(HoldRequest)
            .filter(HoldRequest.doctor_id == doctor_id)
            .order_by(HoldRequest.created_at.desc(), HoldRequest.id.desc())
            .all()
        )

    @staticmethod
    def count_by_status(db: Session) -> dict[str, int]:
        rows = (
            db.query(HoldRequest.status, func.count(HoldRequest.id))
            .group_by(HoldRequest.status)
            .all()
        )
        counts = {status.value: 0 for status in HoldStatus}
        for status, total in rows:
            counts[status] = total
        return counts

    @staticmethod
    def create(db: Session, **request_data) -> HoldRequest:
        hold = HoldRequest(**request_data)
        db.add(hold)
        db.flush()
        return hold

    @staticmethod
    def delete_decided(db: Session) -> int:
        """Delete every approved or rejected request; pending ones stay"""
        return (
            db.query(HoldRequest)
            .filter(HoldRequest.status.in_(DECIDED_STATUSES))
            .delete(synchronize_session=False)
        )

    @staticmethod
    def get_administrator(db: Session, admin_id: int) -> Optional[Administrator]:
        return db.query(Administrator).filter(Administrator.id == admin_id).first()
