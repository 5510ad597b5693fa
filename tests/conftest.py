import os
from datetime import datetime, timedelta

import pytest

# Set testing environment before the application is imported
os.environ["TESTING"] = "1"
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///./test.db")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinic.main import app
from clinic.api.deps import get_clock
from clinic.core.database import Base, get_db, get_redis
from clinic.core.security import get_password_hash
from clinic.models.admin import Admin
from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.models.doctor import Doctor
from clinic.models.patient import Patient
from clinic.models import prescription  # noqa: F401
from clinic.services.booking_guard import BookingConflictGuard

# Monday morning; every scheduling test books on the following days
NOW = datetime(2030, 1, 7, 8, 0)
TOMORROW = (NOW + timedelta(days=1)).date()

PASSWORD = "Secret123"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeRedis:
    """In-memory stand-in for the few Redis commands the rate limiter uses."""

    def __init__(self):
        self.data = {}

    def setex(self, key, time, value):
        self.data[key] = str(value)
        return True

    def get(self, key):
        return self.data.get(key)

    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])


def at(hour, minute=0, day=TOMORROW):
    return datetime(day.year, day.month, day.day, hour, minute)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def guard(db):
    return BookingConflictGuard(db, clock=lambda: NOW)


@pytest.fixture
def client(db):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    fake_redis = FakeRedis()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_clock] = lambda: (lambda: NOW)
    try:
        yield TestClient(app, base_url="http://testserver")
    finally:
        app.dependency_overrides.clear()


def make_admin(db, username="admin"):
    admin = Admin(username=username, password_hash=get_password_hash(PASSWORD))
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


def make_doctor(db, email="house@clinic.test", available_times=None, name="Gregory House",
                specialty="Diagnostics"):
    doctor = Doctor(
        name=name,
        specialty=specialty,
        email=email,
        password_hash=get_password_hash(PASSWORD),
        phone="5550000001",
        available_times=["09:00", "09:30", "10:00", "14:00"] if available_times is None else available_times,
    )
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor


def make_patient(db, email="ana@example.com", phone="5551234567", name="Ana Lopez"):
    patient = Patient(
        name=name,
        email=email,
        password_hash=get_password_hash(PASSWORD),
        phone=phone,
    )
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


def make_appointment(db, doctor, patient, when, status=AppointmentStatus.SCHEDULED):
    appointment = Appointment(
        doctor_id=doctor.id,
        patient_id=patient.id,
        appointment_time=when,
        status=status.value,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment
