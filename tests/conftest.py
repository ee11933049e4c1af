# tests/conftest.py
import os
from datetime import date
from types import SimpleNamespace

# Settings are read once and cached, so the environment must be in place before the app is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["ENVIRONMENT"] = "test"
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "admin123"

import pytest
from fastapi.testclient import TestClient

from mediq import models
from mediq.database import Base, SessionLocal, engine
from mediq.main import app

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin123"


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    """Anonymous client, as used by the kiosk."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_client():
    """Client holding a valid admin session cookie."""
    with TestClient(app) as c:
        response = c.post("/api/auth/session", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
        assert response.status_code == 200
        yield c


@pytest.fixture
def master_data(db):
    department = models.Department(name="内科")
    waiting_area = models.WaitingArea(name="1階待合室A")
    blood_test = models.Examination(name="血液検査")
    xray = models.Examination(name="レントゲン")
    db.add_all([department, waiting_area, blood_test, xray])
    db.flush()
    doctor = models.Doctor(name="田中太郎", department_id=department.id)
    patient = models.Patient(patient_code="P00001", name="山田太郎", name_kana="やまだたろう")
    db.add_all([doctor, patient])
    db.commit()
    return SimpleNamespace(
        department_id=department.id,
        waiting_area_id=waiting_area.id,
        blood_test_id=blood_test.id,
        xray_id=xray.id,
        doctor_id=doctor.id,
        patient_id=patient.id,
    )


@pytest.fixture
def make_schedule(db, master_data):
    """Insert an appointment for the master-data patient directly through the ORM."""

    def _make(on=None, start_time="09:00", status=models.ScheduleStatus.scheduled, examination_ids=(), **overrides):
        schedule = models.Schedule(
            patient_id=overrides.pop("patient_id", master_data.patient_id),
            date=on or date.today(),
            start_time=start_time,
            department_id=master_data.department_id,
            doctor_id=master_data.doctor_id,
            waiting_area_id=master_data.waiting_area_id,
            status=status,
            **overrides,
        )
        schedule.examinations = [db.get(models.Examination, exam_id) for exam_id in examination_ids]
        db.add(schedule)
        db.commit()
        return schedule.id

    return _make
