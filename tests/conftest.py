"""Shared fixtures: in-memory database, seeded people, API client"""

import os

# Configure before the application modules read the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("PUSH_GATEWAY_URL", None)

import pytest
from fastapi.testclient import TestClient

from clinic_booking.database import Base, SessionLocal, engine
from clinic_booking.domain.schedules.schemas import TemplateCreate
from clinic_booking.domain.schedules.service import ScheduleService
from clinic_booking.main import app
from clinic_booking.models import Administrator, Doctor, Patient


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def doctor(db):
    doc = Doctor(full_name="Dr. Ana Ruiz", specialty="Cardiology", workplace="Room 12")
    db.add(doc)
    db.commit()
    db.refresh(doc)
    return doc


@pytest.fixture
def other_doctor(db):
    doc = Doctor(full_name="Dr. Luis Pardo", specialty="Dermatology", workplace="Room 3")
    db.add(doc)
    db.commit()
    db.refresh(doc)
    return doc


@pytest.fixture
def patient(db):
    person = Patient(full_name="Marta Gil", document="12345678")
    db.add(person)
    db.commit()
    db.refresh(person)
    return person


@pytest.fixture
def other_patient(db):
    person = Patient(full_name="Jon Arana", document="87654321")
    db.add(person)
    db.commit()
    db.refresh(person)
    return person


@pytest.fixture
def admin(db):
    person = Administrator(full_name="Admin")
    db.add(person)
    db.commit()
    db.refresh(person)
    return person


@pytest.fixture
def schedule(db, doctor):
    """Template Mon/Wed/Fri 08:00-09:00 assigned to the doctor (6 slots)"""
    service = ScheduleService(db)
    template = service.create_template(
        TemplateCreate(name="Mornings", weekdays=[1, 3, 5], startTime="08:00", endTime="09:00")
    )
    slots = service.assign(template.id, doctor.id)
    return template, slots


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def headers():
    """Build caller identity headers: headers("patient", 1)"""

    def build(role: str, caller_id: int) -> dict:
        return {"X-Caller-Id": str(caller_id), "X-Caller-Role": role}

    return build
