# mediq/crud.py
import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from . import models, schemas
from .exceptions import DatabaseError, NotFound, ValidationFailed

logger = logging.getLogger(__name__)


@contextmanager
def db_guard(db: Session, action: str):
    """Roll back and surface store failures as DATABASE_ERROR."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error while {action}: {e}")
        raise DatabaseError(f"A database error occurred while {action}.")


def _get_active_or_404(db: Session, model, entity_id: int, label: str):
    entity = model.active(db).filter(model.id == entity_id).first()
    if entity is None:
        raise NotFound(f"{label} not found.")
    return entity


def _require_text_fields(update_data: Dict[str, Any], fields: Iterable[str]) -> None:
    for field in fields:
        if field in update_data and update_data[field] is None:
            raise ValidationFailed(f"{field} cannot be empty.")


# ==================== ADMIN ACCOUNTS ====================

def get_admin(db: Session, admin_id: int) -> Optional[models.AdminUser]:
    with db_guard(db, "fetching the admin account"):
        return db.query(models.AdminUser).filter(models.AdminUser.id == admin_id).first()


def get_admin_by_username(db: Session, username: str) -> Optional[models.AdminUser]:
    with db_guard(db, "fetching the admin account"):
        return db.query(models.AdminUser).filter(models.AdminUser.username == username).first()


def create_admin(db: Session, username: str, password_hash: str) -> models.AdminUser:
    with db_guard(db, "creating the admin account"):
        admin = models.AdminUser(username=username, password_hash=password_hash)
        db.add(admin)
        db.commit()
        db.refresh(admin)
        return admin


def update_admin_password(db: Session, admin: models.AdminUser, password_hash: str) -> models.AdminUser:
    with db_guard(db, "changing the password"):
        admin.password_hash = password_hash
        db.commit()
        db.refresh(admin)
        return admin


# ==================== PATIENT CRUD OPERATIONS ====================

def get_patient(db: Session, patient_id: int) -> models.Patient:
    """Get a single active patient by ID."""
    with db_guard(db, "fetching the patient"):
        return _get_active_or_404(db, models.Patient, patient_id, "Patient")


def get_patient_by_code(db: Session, patient_code: str) -> Optional[models.Patient]:
    with db_guard(db, "fetching the patient"):
        return models.Patient.active(db).filter(models.Patient.patient_code == patient_code).first()


def get_patients(db: Session, search: Optional[str] = None, limit: int = 100) -> List[models.Patient]:
    """Active patients, optionally filtered by a substring of code, name or kana."""
    with db_guard(db, "fetching patients"):
        query = models.Patient.active(db)
        if search:
            # Plain substring match; % and _ in the search are literal
            query = query.filter(or_(
                models.Patient.patient_code.contains(search, autoescape=True),
                models.Patient.name.contains(search, autoescape=True),
                models.Patient.name_kana.contains(search, autoescape=True),
            ))
        return query.order_by(models.Patient.patient_code.asc(), models.Patient.id.asc()).limit(limit).all()


def _ensure_patient_code_free(db: Session, patient_code: str, exclude_id: Optional[int] = None) -> None:
    query = models.Patient.active(db).filter(models.Patient.patient_code == patient_code)
    if exclude_id is not None:
        query = query.filter(models.Patient.id != exclude_id)
    if query.first() is not None:
        raise ValidationFailed("This patient code is already in use.")


def create_patient(db: Session, patient: schemas.PatientCreate) -> models.Patient:
    with db_guard(db, "creating the patient"):
        _ensure_patient_code_free(db, patient.patient_code)
        db_patient = models.Patient(**patient.model_dump())
        db.add(db_patient)
        db.commit()
        db.refresh(db_patient)
        logger.info(f"Created patient {db_patient.id} ({db_patient.patient_code})")
        return db_patient


def update_patient(db: Session, patient_id: int, patient_update: schemas.PatientUpdate) -> models.Patient:
    with db_guard(db, "updating the patient"):
        db_patient = _get_active_or_404(db, models.Patient, patient_id, "Patient")
        update_data = patient_update.model_dump(exclude_unset=True)
        _require_text_fields(update_data, ("patient_code", "name", "name_kana"))

        new_code = update_data.get("patient_code")
        if new_code and new_code != db_patient.patient_code:
            _ensure_patient_code_free(db, new_code, exclude_id=patient_id)

        for key, value in update_data.items():
            setattr(db_patient, key, value)

        db.commit()
        db.refresh(db_patient)
        return db_patient


def delete_patient(db: Session, patient_id: int) -> bool:
    with db_guard(db, "deleting the patient"):
        db_patient = _get_active_or_404(db, models.Patient, patient_id, "Patient")
        db_patient.mark_deleted()
        db.commit()
        logger.info(f"Soft-deleted patient {patient_id}")
        return True


# ==================== REFERENCE (MASTER) CRUD OPERATIONS ====================

MASTER_LABELS = {
    models.Department: "Department",
    models.Doctor: "Doctor",
    models.WaitingArea: "Waiting area",
    models.Examination: "Examination",
}


def _ensure_name_free(db: Session, model, name: str, exclude_id: Optional[int] = None) -> None:
    # Case-sensitive exact match among active rows
    query = model.active(db).filter(model.name == name)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first() is not None:
        raise ValidationFailed(f"A {MASTER_LABELS[model].lower()} with the same name already exists.")


def _in_use_reason(db: Session, model, entity_id: int) -> Optional[str]:
    """Why an entity cannot be soft-deleted, or None when nothing active references it."""
    label = MASTER_LABELS[model].lower()
    Schedule = models.Schedule

    if model is models.Examination:
        referenced = Schedule.active(db).filter(
            Schedule.examinations.any(models.Examination.id == entity_id)
        ).first()
    else:
        column = {
            models.Department: Schedule.department_id,
            models.Doctor: Schedule.doctor_id,
            models.WaitingArea: Schedule.waiting_area_id,
        }[model]
        referenced = Schedule.active(db).filter(column == entity_id).first()
    if referenced is not None:
        return f"This {label} is used by appointments and cannot be deleted."

    if model is models.Department:
        doctor = models.Doctor.active(db).filter(models.Doctor.department_id == entity_id).first()
        if doctor is not None:
            return "This department has doctors assigned and cannot be deleted."
    return None


def get_master(db: Session, model, entity_id: int):
    with db_guard(db, f"fetching the {MASTER_LABELS[model].lower()}"):
        return _get_active_or_404(db, model, entity_id, MASTER_LABELS[model])


def get_masters(db: Session, model) -> list:
    """All active rows of a named reference table, ordered by id."""
    with db_guard(db, f"fetching {MASTER_LABELS[model].lower()} records"):
        return model.active(db).order_by(model.id.asc()).all()


def create_master(db: Session, model, payload: schemas.MasterCreate):
    with db_guard(db, f"creating the {MASTER_LABELS[model].lower()}"):
        _ensure_name_free(db, model, payload.name)
        entity = model(name=payload.name)
        db.add(entity)
        db.commit()
        db.refresh(entity)
        return entity


def update_master(db: Session, model, entity_id: int, payload: schemas.MasterUpdate):
    with db_guard(db, f"updating the {MASTER_LABELS[model].lower()}"):
        entity = _get_active_or_404(db, model, entity_id, MASTER_LABELS[model])
        update_data = payload.model_dump(exclude_unset=True)
        _require_text_fields(update_data, ("name",))
        if "name" in update_data:
            _ensure_name_free(db, model, update_data["name"], exclude_id=entity_id)
            entity.name = update_data["name"]
        db.commit()
        db.refresh(entity)
        return entity


def delete_master(db: Session, model, entity_id: int) -> bool:
    with db_guard(db, f"deleting the {MASTER_LABELS[model].lower()}"):
        entity = _get_active_or_404(db, model, entity_id, MASTER_LABELS[model])
        reason = _in_use_reason(db, model, entity_id)
        if reason:
            raise ValidationFailed(reason)
        entity.mark_deleted()
        db.commit()
        logger.info(f"Soft-deleted {MASTER_LABELS[model].lower()} {entity_id}")
        return True


# --- Doctors reference a department, so they get their own create/update ---

def _require_active_department(db: Session, department_id: int) -> models.Department:
    department = models.Department.active(db).filter(models.Department.id == department_id).first()
    if department is None:
        raise ValidationFailed("The specified department does not exist.")
    return department


def get_doctors(db: Session) -> List[models.Doctor]:
    with db_guard(db, "fetching doctors"):
        return (
            models.Doctor.active(db)
            .join(models.Department, models.Doctor.department_id == models.Department.id)
            .filter(models.Department.is_deleted.is_(False))
            .options(joinedload(models.Doctor.department))
            .order_by(models.Doctor.id.asc())
            .all()
        )


def create_doctor(db: Session, doctor: schemas.DoctorCreate) -> models.Doctor:
    with db_guard(db, "creating the doctor"):
        _require_active_department(db, doctor.department_id)
        db_doctor = models.Doctor(name=doctor.name, department_id=doctor.department_id)
        db.add(db_doctor)
        db.commit()
        db.refresh(db_doctor)
        return db_doctor


def update_doctor(db: Session, doctor_id: int, doctor_update: schemas.DoctorUpdate) -> models.Doctor:
    with db_guard(db, "updating the doctor"):
        db_doctor = _get_active_or_404(db, models.Doctor, doctor_id, "Doctor")
        update_data = doctor_update.model_dump(exclude_unset=True)
        _require_text_fields(update_data, ("name", "department_id"))
        if "department_id" in update_data:
            _require_active_department(db, update_data["department_id"])
        for key, value in update_data.items():
            setattr(db_doctor, key, value)
        db.commit()
        db.refresh(db_doctor)
        return db_doctor


def get_master_data(db: Session) -> Dict[str, list]:
    """Compact id/name lists of every reference table, for form dropdowns."""
    return {
        "departments": get_masters(db, models.Department),
        "doctors": get_doctors(db),
        "waiting_areas": get_masters(db, models.WaitingArea),
        "examinations": get_masters(db, models.Examination),
    }


# ==================== SCHEDULE (APPOINTMENT) CRUD OPERATIONS ====================

def _schedule_query(db: Session):
    return models.Schedule.active(db).options(
        joinedload(models.Schedule.patient),
        joinedload(models.Schedule.department),
        joinedload(models.Schedule.doctor).joinedload(models.Doctor.department),
        joinedload(models.Schedule.waiting_area),
        selectinload(models.Schedule.examinations),
    )


def _require_reference(db: Session, model, entity_id: int, label: str) -> None:
    if model.active(db).filter(model.id == entity_id).first() is None:
        raise ValidationFailed(f"The specified {label} does not exist.")


def _resolve_examinations(db: Session, examination_ids: List[int]) -> List[models.Examination]:
    unique_ids = list(dict.fromkeys(examination_ids))
    if not unique_ids:
        return []
    found = models.Examination.active(db).filter(models.Examination.id.in_(unique_ids)).all()
    by_id = {exam.id: exam for exam in found}
    missing = [exam_id for exam_id in unique_ids if exam_id not in by_id]
    if missing:
        raise ValidationFailed(f"Unknown examination id(s): {', '.join(str(m) for m in missing)}.")
    return [by_id[exam_id] for exam_id in unique_ids]


def _check_time_range(start_time: str, end_time: Optional[str]) -> None:
    # HH:MM strings compare correctly as text
    if end_time is not None and end_time < start_time:
        raise ValidationFailed("End time must not be earlier than start time.")


def get_schedules(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    patient_id: Optional[int] = None,
    department_id: Optional[int] = None,
    doctor_id: Optional[int] = None,
    status: Optional[models.ScheduleStatus] = None,
) -> List[models.Schedule]:
    """Active appointments matching the calendar filters, by date then start time."""
    with db_guard(db, "fetching schedules"):
        query = _schedule_query(db)
        if start_date:
            query = query.filter(models.Schedule.date >= start_date)
        if end_date:
            query = query.filter(models.Schedule.date <= end_date)
        if patient_id is not None:
            query = query.filter(models.Schedule.patient_id == patient_id)
        if department_id is not None:
            query = query.filter(models.Schedule.department_id == department_id)
        if doctor_id is not None:
            query = query.filter(models.Schedule.doctor_id == doctor_id)
        if status is not None:
            query = query.filter(models.Schedule.status == status)
        return query.order_by(
            models.Schedule.date.asc(), models.Schedule.start_time.asc(), models.Schedule.id.asc()
        ).all()


def get_schedule(db: Session, schedule_id: int) -> models.Schedule:
    with db_guard(db, "fetching the schedule"):
        schedule = _schedule_query(db).filter(models.Schedule.id == schedule_id).first()
        if schedule is None:
            raise NotFound("Schedule not found.")
        return schedule


def create_schedule(db: Session, schedule: schemas.ScheduleCreate) -> models.Schedule:
    with db_guard(db, "creating the schedule"):
        _require_reference(db, models.Patient, schedule.patient_id, "patient")
        _require_reference(db, models.Department, schedule.department_id, "department")
        _require_reference(db, models.Doctor, schedule.doctor_id, "doctor")
        _require_reference(db, models.WaitingArea, schedule.waiting_area_id, "waiting area")
        _check_time_range(schedule.start_time, schedule.end_time)
        examinations = _resolve_examinations(db, schedule.examination_ids)

        db_schedule = models.Schedule(
            **schedule.model_dump(exclude={"examination_ids"}),
            status=models.ScheduleStatus.scheduled,
        )
        db_schedule.examinations = examinations
        db.add(db_schedule)
        db.commit()
        logger.info(f"Created schedule {db_schedule.id} for patient {db_schedule.patient_id} on {db_schedule.date}")
    return get_schedule(db, db_schedule.id)


def update_schedule(
    db: Session,
    schedule_id: int,
    schedule_update: schemas.ScheduleUpdate,
    now: Optional[datetime] = None,
) -> models.Schedule:
    """Partial update. A supplied examination list replaces the whole set in the same commit."""
    with db_guard(db, "updating the schedule"):
        db_schedule = _get_active_or_404(db, models.Schedule, schedule_id, "Schedule")
        update_data = schedule_update.model_dump(exclude_unset=True)
        _require_text_fields(
            update_data,
            ("date", "start_time", "department_id", "doctor_id", "waiting_area_id", "status", "examination_ids"),
        )

        references = (
            ("department_id", models.Department, "department"),
            ("doctor_id", models.Doctor, "doctor"),
            ("waiting_area_id", models.WaitingArea, "waiting area"),
        )
        for field, model, label in references:
            if field in update_data:
                _require_reference(db, model, update_data[field], label)

        _check_time_range(
            update_data.get("start_time", db_schedule.start_time),
            update_data.get("end_time", db_schedule.end_time),
        )

        examination_ids = update_data.pop("examination_ids", None)
        if examination_ids is not None:
            db_schedule.examinations = _resolve_examinations(db, examination_ids)

        status = update_data.get("status")
        if status == models.ScheduleStatus.visited and db_schedule.visited_at is None:
            db_schedule.visited_at = now or datetime.now().astimezone()

        for key, value in update_data.items():
            setattr(db_schedule, key, value)

        db.commit()
    db.expire_all()
    return get_schedule(db, schedule_id)


def delete_schedule(db: Session, schedule_id: int) -> bool:
    with db_guard(db, "deleting the schedule"):
        db_schedule = _get_active_or_404(db, models.Schedule, schedule_id, "Schedule")
        db_schedule.mark_deleted()
        db.commit()
        logger.info(f"Soft-deleted schedule {schedule_id}")
        return True
