"""Schedule repository - Database operations for templates and doctor slots"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Doctor, DoctorSlot, ScheduleTemplate, SlotStatus


class ScheduleRepository:
    """Repository for schedule template and slot database operations"""

    # Template Methods
    @staticmethod
    def get_templates(db: Session) -> list[ScheduleTemplate]:
        return db.query(ScheduleTemplate).order_by(ScheduleTemplate.id).all()

    @staticmethod
    def get_template_by_id(db: Session, template_id: int) -> Optional[ScheduleTemplate]:
        return db.query(ScheduleTemplate).filter(ScheduleTemplate.id == template_id).first()

    @staticmethod
    def count_templates(db: Session) -> int:
        return db.query(func.count(ScheduleTemplate.id)).scalar()

    @staticmethod
    def create_template(db: Session, **template_data) -> ScheduleTemplate:
        template = ScheduleTemplate(**template_data)
        db.add(template)
        db.commit()
        db.refresh(template)
        return template

    @staticmethod
    def update_template(db: Session, template: ScheduleTemplate, **updates) -> ScheduleTemplate:
        for key, value in updates.items():
            if value is not None and hasattr(template, key):
                setattr(template, key, value)

        db.commit()
        db.refresh(template)
        return template

    @staticmethod
    def delete_template(db: Session, template: ScheduleTemplate) -> None:
        """Delete a template; its doctor slots go with it"""
        db.delete(template)
        db.commit()

    @staticmethod
    def count_booked_slots(db: Session, template_id: int) -> int:
        return (
            db.query(func.count(DoctorSlot.id))
            .filter(
                DoctorSlot.template_id == template_id,
                DoctorSlot.status == SlotStatus.BOOKED.value,
            )
            .scalar()
        )

    # Doctor Methods
    @staticmethod
    def get_doctor(db: Session, doctor_id: int) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.id == doctor_id).first()

    @staticmethod
    def lock_doctor(db: Session, doctor_id: int) -> Optional[Doctor]:
        """Row-lock the doctor so concurrent assignments for them run one at a time"""
        return db.query(Doctor).filter(Doctor.id == doctor_id).with_for_update().first()

    # Slot Methods
    @staticmethod
    def get_doctor_slots(
        db: Session,
        doctor_id: int,
        template_id: Optional[int] = None,
    ) -> list[DoctorSlot]:
        query = db.query(DoctorSlot).filter(DoctorSlot.doctor_id == doctor_id)

        if template_id is not None:
            query = query.filter(DoctorSlot.template_id == template_id)

        return query.order_by(
            DoctorSlot.weekday, DoctorSlot.slot_date, DoctorSlot.start_time
        ).all()

    @staticmethod
    def get_slots_on_weekdays(db: Session, doctor_id: int, weekdays: list[int]) -> list[DoctorSlot]:
        """Existing slots (any template, any state) the doctor has on these weekdays"""
        return (
            db.query(DoctorSlot)
            .options(joinedload(DoctorSlot.template))
            .filter(DoctorSlot.doctor_id == doctor_id, DoctorSlot.weekday.in_(weekdays))
            .all()
        )

    @staticmethod
    def add_slots(db: Session, slots: list[DoctorSlot]) -> list[DoctorSlot]:
        """Stage new slots inside the caller's transaction"""
        db.add_all(slots)
        db.flush()
        return slots

    @staticmethod
    def delete_assignment(
        db: Session,
        template_id: int,
        doctor_id: int,
        on_date: Optional[date] = None,
    ) -> tuple[int, int]:
        """
        Delete every slot of a (template, doctor) assignment, whatever its state.
        Returns (deleted_count, booked_count)
        """
        query = db.query(DoctorSlot).filter(
            DoctorSlot.template_id == template_id,
            DoctorSlot.doctor_id == doctor_id,
        )
        if on_date is not None:
            query = query.filter(DoctorSlot.slot_date == on_date)

        booked_count = query.filter(DoctorSlot.status == SlotStatus.BOOKED.value).count()
        deleted_count = query.delete(synchronize_session=False)
        return deleted_count, booked_count
