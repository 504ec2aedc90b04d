"""Appointment repository - Database operations for appointments"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Appointment, Doctor, Patient


class AppointmentRepository:
    """Repository for appointment database operations; writes are flushed, never committed"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def get_all(db: Session) -> list[Appointment]:
        return (
            db.query(Appointment)
            .order_by(Appointment.appointment_date, Appointment.appointment_time)
            .all()
        )

    @staticmethod
    def get_for_patient(db: Session, patient_id: int) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_date, Appointment.appointment_time)
            .all()
        )

    @staticmethod
    def get_for_doctor(db: Session, doctor_id: int) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.doctor_id == doctor_id)
            .order_by(Appointment.appointment_date, Appointment.appointment_time)
            .all()
        )

    @staticmethod
    def get_taken_times(
        db: Session, doctor_id: int, start_date: date, end_date: date
    ) -> set[tuple]:
        """(date, time) pairs the doctor already has an appointment or reservation at"""
        rows = (
            db.query(Appointment.appointment_date, Appointment.appointment_time)
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date >= start_date,
                Appointment.appointment_date <= end_date,
            )
            .all()
        )
        return {(row[0], row[1]) for row in rows}

    @staticmethod
    def count(db: Session) -> int:
        return db.query(func.count(Appointment.id)).scalar()

    @staticmethod
    def create(db: Session, **appointment_data) -> Appointment:
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def update(db: Session, appointment: Appointment, **updates) -> Appointment:
        for key, value in updates.items():
            if hasattr(appointment, key):
                setattr(appointment, key, value)
        db.flush()
        return appointment

    @staticmethod
    def delete(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.flush()

    # Lookups used for request validation
    @staticmethod
    def get_doctor(db: Session, doctor_id: int) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.id == doctor_id).first()

    @staticmethod
    def get_patient(db: Session, patient_id: int) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.id == patient_id).first()
