# mediq/routers/doctors.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import crud, models, schemas, security
from ..database import get_db

router = APIRouter(
    prefix="/doctors",
    tags=["Doctors"],
    dependencies=[Depends(security.get_session_context)],
    responses={404: {"description": "Not found"}},
)


@router.get("", response_model=schemas.ApiResponse[List[schemas.DoctorResponse]])
def read_doctors(db: Session = Depends(get_db)):
    """
    Active doctors, excluding those whose department has been deleted.
    """
    return schemas.envelope([schemas.DoctorResponse.model_validate(d) for d in crud.get_doctors(db)])


@router.post("", response_model=schemas.ApiResponse[schemas.DoctorResponse], status_code=status.HTTP_201_CREATED)
def create_new_doctor(doctor: schemas.DoctorCreate, db: Session = Depends(get_db)):
    return schemas.envelope(schemas.DoctorResponse.model_validate(crud.create_doctor(db, doctor)))


@router.get("/{doctor_id}", response_model=schemas.ApiResponse[schemas.DoctorResponse])
def read_doctor(doctor_id: int, db: Session = Depends(get_db)):
    return schemas.envelope(schemas.DoctorResponse.model_validate(crud.get_master(db, models.Doctor, doctor_id)))


@router.put("/{doctor_id}", response_model=schemas.ApiResponse[schemas.DoctorResponse])
def update_existing_doctor(doctor_id: int, doctor_update: schemas.DoctorUpdate, db: Session = Depends(get_db)):
    return schemas.envelope(schemas.DoctorResponse.model_validate(crud.update_doctor(db, doctor_id, doctor_update)))


@router.delete("/{doctor_id}", response_model=schemas.ApiResponse[schemas.DeleteResult])
def delete_existing_doctor(doctor_id: int, db: Session = Depends(get_db)):
    crud.delete_master(db, models.Doctor, doctor_id)
    return schemas.envelope(schemas.DeleteResult())
