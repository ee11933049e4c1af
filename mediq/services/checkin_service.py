# mediq/services/checkin_service.py
"""Kiosk check-in: resolve a scanned patient code to today's appointment.

A scan finds the patient's first appointment dated today whose status is
`scheduled` or `visited` (earliest start time wins). A `scheduled` appointment
is flipped to `visited` exactly once; re-scans report it unchanged. Every scan
yields the guidance text the kiosk reads out.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy.orm import Session, joinedload, selectinload

from .. import crud, models
from ..exceptions import NotFound, ValidationFailed

logger = structlog.get_logger(__name__)

WELCOME = "ようこそ。"
CLOSING = "お待ちしております。"
EXAMINATION_SEPARATOR = "検査、"

WITH_EXAMINATIONS_TEMPLATE = (
    "{welcome}{name}さん、{exam_list}検査がありますので、{waiting_area}前でお待ちください。"
    "{doctor}先生が担当します。{closing}"
)
WITHOUT_EXAMINATIONS_TEMPLATE = (
    "{welcome}{name}さん、検査がある場合は{department}前に、無い場合は{waiting_area}前にお越しください。"
    "{doctor}先生が担当します。{closing}"
)
NO_APPOINTMENT_TEMPLATE = "ようこそ、{name}様。本日の診察予定が見つかりませんでした。受付窓口にお越しください。"


@dataclass
class CheckinResult:
    patient: models.Patient
    schedule: Optional[models.Schedule]
    voice_text: str
    already_visited: bool
    processed_at: datetime


def build_guidance_text(
    name: str,
    department: str,
    doctor: str,
    waiting_area: str,
    examinations: Optional[List[str]] = None,
) -> str:
    """Spoken guidance for a resolved appointment."""
    if examinations:
        return WITH_EXAMINATIONS_TEMPLATE.format(
            welcome=WELCOME,
            name=name,
            exam_list=EXAMINATION_SEPARATOR.join(examinations),
            waiting_area=waiting_area,
            doctor=doctor,
            closing=CLOSING,
        )
    return WITHOUT_EXAMINATIONS_TEMPLATE.format(
        welcome=WELCOME,
        name=name,
        department=department,
        waiting_area=waiting_area,
        doctor=doctor,
        closing=CLOSING,
    )


def build_fallback_text(name: str) -> str:
    """Guidance when there is no appointment today: send the patient to the front desk."""
    return NO_APPOINTMENT_TEMPLATE.format(name=name)


def find_todays_schedule(db: Session, patient_id: int, today) -> Optional[models.Schedule]:
    return (
        models.Schedule.active(db)
        .options(
            joinedload(models.Schedule.department),
            joinedload(models.Schedule.doctor),
            joinedload(models.Schedule.waiting_area),
            selectinload(models.Schedule.examinations),
        )
        .filter(
            models.Schedule.patient_id == patient_id,
            models.Schedule.date == today,
            models.Schedule.status.in_(models.CHECKIN_STATUSES),
        )
        .order_by(models.Schedule.start_time.asc(), models.Schedule.id.asc())
        .first()
    )


def mark_visited(db: Session, schedule: models.Schedule, visited_at: datetime) -> bool:
    """Atomically move scheduled -> visited. False when another scan got there first."""
    affected = (
        db.query(models.Schedule)
        .filter(
            models.Schedule.id == schedule.id,
            models.Schedule.status == models.ScheduleStatus.scheduled,
        )
        .update(
            {
                models.Schedule.status: models.ScheduleStatus.visited,
                models.Schedule.visited_at: visited_at,
            },
            synchronize_session=False,
        )
    )
    db.commit()
    db.refresh(schedule)
    return affected == 1


def check_in(db: Session, patient_code: Optional[str], now: Optional[datetime] = None) -> CheckinResult:
    if not patient_code or not patient_code.strip():
        raise ValidationFailed("Patient code is required.")
    patient_code = patient_code.strip()
    now = now or datetime.now().astimezone()
    today = now.date()

    with crud.db_guard(db, "processing the check-in"):
        patient = models.Patient.active(db).filter(models.Patient.patient_code == patient_code).first()
        if patient is None:
            logger.info("checkin.patient_not_found", patient_code=patient_code)
            raise NotFound("Patient not found.")

        schedule = find_todays_schedule(db, patient.id, today)
        if schedule is None:
            logger.info("checkin.no_schedule", patient_id=patient.id, date=today.isoformat())
            return CheckinResult(
                patient=patient,
                schedule=None,
                voice_text=build_fallback_text(patient.name_kana),
                already_visited=False,
                processed_at=now,
            )

        already_visited = schedule.status == models.ScheduleStatus.visited
        if not already_visited:
            if mark_visited(db, schedule, now):
                logger.info("checkin.visited", patient_id=patient.id, schedule_id=schedule.id)
            else:
                already_visited = True
                logger.info("checkin.race_lost", patient_id=patient.id, schedule_id=schedule.id)
        else:
            logger.info("checkin.rescan", patient_id=patient.id, schedule_id=schedule.id)

        voice_text = build_guidance_text(
            name=patient.name_kana,
            department=schedule.department.name,
            doctor=schedule.doctor.name,
            waiting_area=schedule.waiting_area.name,
            examinations=[exam.name for exam in schedule.examinations],
        )
        return CheckinResult(
            patient=patient,
            schedule=schedule,
            voice_text=voice_text,
            already_visited=already_visited,
            processed_at=now,
        )
