# mediq/routers/health.py
from fastapi import APIRouter

from .. import schemas
from ..config import get_settings

router = APIRouter(
    prefix="/health",
    tags=["Health Checks"],
)


@router.get("", response_model=schemas.ApiResponse[schemas.HealthResponse])
def liveness():
    return schemas.envelope(schemas.HealthResponse(version=get_settings().app_version))
