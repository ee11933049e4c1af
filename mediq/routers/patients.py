# mediq/routers/patients.py
import io
from typing import List, Optional

import qrcode
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from .. import crud, schemas, security
from ..config import get_settings
from ..database import get_db

router = APIRouter(
    prefix="/patients",
    tags=["Patients"],
    dependencies=[Depends(security.get_session_context)],
    responses={404: {"description": "Not found"}},
)


@router.get("", response_model=schemas.ApiResponse[List[schemas.PatientResponse]])
def read_patients(search: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """
    Active patients whose code, name or kana contains `search`, ordered by patient code.
    """
    patients = crud.get_patients(db, search=search, limit=get_settings().patient_search_limit)
    return schemas.envelope([schemas.PatientResponse.model_validate(p) for p in patients])


@router.post("", response_model=schemas.ApiResponse[schemas.PatientResponse], status_code=status.HTTP_201_CREATED)
def create_new_patient(patient: schemas.PatientCreate, db: Session = Depends(get_db)):
    new_patient = crud.create_patient(db=db, patient=patient)
    return schemas.envelope(schemas.PatientResponse.model_validate(new_patient))


@router.get("/{patient_id}", response_model=schemas.ApiResponse[schemas.PatientResponse])
def read_patient(patient_id: int, db: Session = Depends(get_db)):
    return schemas.envelope(schemas.PatientResponse.model_validate(crud.get_patient(db, patient_id)))


@router.put("/{patient_id}", response_model=schemas.ApiResponse[schemas.PatientResponse])
def update_existing_patient(patient_id: int, patient_update: schemas.PatientUpdate, db: Session = Depends(get_db)):
    updated = crud.update_patient(db=db, patient_id=patient_id, patient_update=patient_update)
    return schemas.envelope(schemas.PatientResponse.model_validate(updated))


@router.delete("/{patient_id}", response_model=schemas.ApiResponse[schemas.DeleteResult])
def delete_existing_patient(patient_id: int, db: Session = Depends(get_db)):
    crud.delete_patient(db=db, patient_id=patient_id)
    return schemas.envelope(schemas.DeleteResult())


@router.get("/{patient_id}/qrcode", response_class=Response)
def read_patient_qrcode(patient_id: int, db: Session = Depends(get_db)):
    """
    PNG QR code carrying the patient code, for printing the patient card.
    """
    patient = crud.get_patient(db, patient_id)

    qr = qrcode.QRCode(version=1, box_size=10, border=5)
    qr.add_data(patient.patient_code)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return Response(
        content=buffer.getvalue(),
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="patient-{patient.id}.png"'},
    )
