# mediq/routers/schedules.py
import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import crud, models, schemas, security
from ..database import get_db

router = APIRouter(
    prefix="/schedules",
    tags=["Schedules"],
    dependencies=[Depends(security.get_session_context)],
    responses={404: {"description": "Not found"}},
)


@router.get("", response_model=schemas.ApiResponse[List[schemas.ScheduleResponse]])
def read_schedules(
    start_date: Optional[dt.date] = Query(None, alias="startDate"),
    end_date: Optional[dt.date] = Query(None, alias="endDate"),
    patient_id: Optional[int] = Query(None, alias="patientId"),
    department_id: Optional[int] = Query(None, alias="departmentId"),
    doctor_id: Optional[int] = Query(None, alias="doctorId"),
    schedule_status: Optional[models.ScheduleStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    """
    Calendar feed: active appointments in the date range, ordered by date then start time.
    """
    schedules = crud.get_schedules(
        db,
        start_date=start_date,
        end_date=end_date,
        patient_id=patient_id,
        department_id=department_id,
        doctor_id=doctor_id,
        status=schedule_status,
    )
    return schemas.envelope([schemas.ScheduleResponse.model_validate(s) for s in schedules])


@router.post("", response_model=schemas.ApiResponse[schemas.ScheduleResponse], status_code=status.HTTP_201_CREATED)
def create_new_schedule(schedule: schemas.ScheduleCreate, db: Session = Depends(get_db)):
    return schemas.envelope(schemas.ScheduleResponse.model_validate(crud.create_schedule(db, schedule)))


@router.get("/{schedule_id}", response_model=schemas.ApiResponse[schemas.ScheduleResponse])
def read_schedule(schedule_id: int, db: Session = Depends(get_db)):
    return schemas.envelope(schemas.ScheduleResponse.model_validate(crud.get_schedule(db, schedule_id)))


@router.put("/{schedule_id}", response_model=schemas.ApiResponse[schemas.ScheduleResponse])
def update_existing_schedule(schedule_id: int, schedule_update: schemas.ScheduleUpdate, db: Session = Depends(get_db)):
    updated = crud.update_schedule(db, schedule_id, schedule_update)
    return schemas.envelope(schemas.ScheduleResponse.model_validate(updated))


@router.delete("/{schedule_id}", response_model=schemas.ApiResponse[schemas.DeleteResult])
def delete_existing_schedule(schedule_id: int, db: Session = Depends(get_db)):
    crud.delete_schedule(db, schedule_id)
    return schemas.envelope(schemas.DeleteResult())
