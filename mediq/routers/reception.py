# mediq/routers/reception.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..services import checkin_service

router = APIRouter(
    prefix="/reception",
    tags=["Reception"],
)


def _to_response(result: checkin_service.CheckinResult) -> schemas.CheckinResponse:
    schedule = None
    if result.schedule is not None:
        s = result.schedule
        schedule = schemas.CheckinSchedule(
            id=s.id,
            date=s.date,
            start_time=s.start_time,
            end_time=s.end_time,
            department=s.department.name,
            doctor=s.doctor.name,
            waiting_area=s.waiting_area.name,
            examinations=[exam.name for exam in s.examinations],
            status=s.status,
            visited_at=s.visited_at,
        )
    return schemas.CheckinResponse(
        patient=schemas.CheckinPatient.model_validate(result.patient),
        schedule=schedule,
        voice_text=result.voice_text,
        already_visited=result.already_visited,
        processed_at=result.processed_at,
    )


@router.post("/checkin", response_model=schemas.ApiResponse[schemas.CheckinResponse])
def checkin(request: schemas.CheckinRequest, db: Session = Depends(get_db)):
    """
    Kiosk scan: resolve the patient code to today's appointment and mark it visited.
    Public; the kiosk has no admin session.
    """
    result = checkin_service.check_in(db, request.patient_code)
    return schemas.envelope(_to_response(result))
