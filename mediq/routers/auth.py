# mediq/routers/auth.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from .. import crud, schemas, security
from ..config import get_settings
from ..database import get_db
from ..exceptions import NotFound, Unauthorized, ValidationFailed

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)


@router.post("/session", response_model=schemas.ApiResponse[schemas.SessionResponse])
def login(credentials: schemas.LoginRequest, response: Response, db: Session = Depends(get_db)):
    admin = security.authenticate_admin(db, credentials.username, credentials.password)
    if admin is None:
        raise Unauthorized("Incorrect username or password.")

    security.set_session_cookie(response, admin)
    logger.info(f"Admin '{admin.username}' successfully authenticated.")
    return schemas.envelope(schemas.SessionResponse(user=schemas.SessionUser(id=admin.id, username=admin.username)))


@router.get("/session", response_model=schemas.ApiResponse[schemas.SessionResponse])
def read_session(session: security.SessionContext = Depends(security.get_session_context)):
    """
    Report the admin behind the session cookie; 401 when there is none.
    """
    return schemas.envelope(
        schemas.SessionResponse(user=schemas.SessionUser(id=session.user_id, username=session.username))
    )


@router.post("/logout", response_model=schemas.ApiResponse[Optional[schemas.SessionResponse]])
def logout(response: Response):
    security.clear_session_cookie(response)
    return schemas.envelope(None)


@router.put("/password", response_model=schemas.ApiResponse[schemas.SessionResponse])
def change_password(
    payload: schemas.PasswordChangeRequest,
    db: Session = Depends(get_db),
    session: security.SessionContext = Depends(security.get_session_context),
):
    min_length = get_settings().password_min_length
    if len(payload.new_password) < min_length:
        raise ValidationFailed(f"The new password must be at least {min_length} characters.")

    admin = crud.get_admin(db, session.user_id)
    if admin is None:
        raise NotFound("Admin account not found.")
    if not security.verify_password(payload.current_password, admin.password_hash):
        logger.warning(f"Password change rejected for '{admin.username}': wrong current password")
        raise ValidationFailed("The current password is incorrect.")

    crud.update_admin_password(db, admin, security.get_password_hash(payload.new_password))
    logger.info(f"Password changed for admin '{admin.username}'.")
    return schemas.envelope(schemas.SessionResponse(user=schemas.SessionUser(id=admin.id, username=admin.username)))
