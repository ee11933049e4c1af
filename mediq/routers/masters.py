# mediq/routers/masters.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import crud, models, schemas, security
from ..database import get_db


def build_master_router(model, prefix: str, tag: str) -> APIRouter:
    """CRUD routes for a named reference table (departments, waiting areas, examinations)."""
    router = APIRouter(
        prefix=prefix,
        tags=[tag],
        dependencies=[Depends(security.get_session_context)],
        responses={404: {"description": "Not found"}},
    )

    @router.get("", response_model=schemas.ApiResponse[List[schemas.MasterResponse]])
    def read_all(db: Session = Depends(get_db)):
        return schemas.envelope([schemas.MasterResponse.model_validate(e) for e in crud.get_masters(db, model)])

    @router.post("", response_model=schemas.ApiResponse[schemas.MasterResponse], status_code=status.HTTP_201_CREATED)
    def create(payload: schemas.MasterCreate, db: Session = Depends(get_db)):
        return schemas.envelope(schemas.MasterResponse.model_validate(crud.create_master(db, model, payload)))

    @router.get("/{entity_id}", response_model=schemas.ApiResponse[schemas.MasterResponse])
    def read_one(entity_id: int, db: Session = Depends(get_db)):
        return schemas.envelope(schemas.MasterResponse.model_validate(crud.get_master(db, model, entity_id)))

    @router.put("/{entity_id}", response_model=schemas.ApiResponse[schemas.MasterResponse])
    def update(entity_id: int, payload: schemas.MasterUpdate, db: Session = Depends(get_db)):
        return schemas.envelope(schemas.MasterResponse.model_validate(crud.update_master(db, model, entity_id, payload)))

    @router.delete("/{entity_id}", response_model=schemas.ApiResponse[schemas.DeleteResult])
    def delete(entity_id: int, db: Session = Depends(get_db)):
        # Refused with VALIDATION_ERROR while active schedules (or doctors) still reference it
        crud.delete_master(db, model, entity_id)
        return schemas.envelope(schemas.DeleteResult())

    return router


departments_router = build_master_router(models.Department, "/departments", "Departments")
waiting_areas_router = build_master_router(models.WaitingArea, "/waiting-areas", "Waiting Areas")
examinations_router = build_master_router(models.Examination, "/examinations", "Examinations")

router = APIRouter(
    prefix="/masters",
    tags=["Masters"],
    dependencies=[Depends(security.get_session_context)],
)


@router.get("", response_model=schemas.ApiResponse[schemas.MastersResponse])
def read_master_data(db: Session = Depends(get_db)):
    """
    Id/name lists of every reference table in one call, for the schedule form dropdowns.
    """
    return schemas.envelope(schemas.MastersResponse.model_validate(crud.get_master_data(db)))
