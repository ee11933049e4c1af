import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Request, Response
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import crud, models
from .config import get_settings
from .database import get_db
from .exceptions import Unauthorized

security_logger = logging.getLogger("security")

pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__rounds=4,
    argon2__memory_cost=65536,
    argon2__parallelism=1,
)


@dataclass(frozen=True)
class SessionContext:
    """Verified claims of the admin making the current request."""
    user_id: int
    username: str


# Password utilities
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Unknown hash formats are a non-match, not a crash
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# JWT utilities
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create the signed session token stored in the cookie."""
    settings = get_settings()
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.session_expire_hours))

    to_encode.update({
        "exp": expire,
        "type": "access",
        "iat": now,
        "jti": secrets.token_urlsafe(16),
    })
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def verify_token(token: str, token_type: str = "access") -> Optional[Dict[str, Any]]:
    """Decode a session token; None when it is invalid, expired or of another type."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if payload.get("type") != token_type:
        return None
    return payload


def authenticate_admin(db: Session, username: str, password: str) -> Optional[models.AdminUser]:
    admin = crud.get_admin_by_username(db, username)
    if admin is None or not verify_password(password, admin.password_hash):
        security_logger.warning(f"Failed login attempt for username: {username}")
        return None
    return admin


def set_session_cookie(response: Response, admin: models.AdminUser) -> None:
    settings = get_settings()
    token = create_access_token(data={"sub": admin.username, "user_id": admin.id})
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=settings.session_expire_hours * 3600,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(get_settings().session_cookie_name, path="/")


# Dependencies for FastAPI
def get_session_context(request: Request, db: Session = Depends(get_db)) -> SessionContext:
    """Resolve the admin session from the cookie, or raise UNAUTHORIZED."""
    token = request.cookies.get(get_settings().session_cookie_name)
    if not token:
        raise Unauthorized("Authentication required.")

    payload = verify_token(token, "access")
    if not payload:
        raise Unauthorized("Session is invalid or has expired.")

    username = payload.get("sub")
    user_id = payload.get("user_id")
    if not username or not user_id:
        raise Unauthorized("Session is invalid or has expired.")

    admin = crud.get_admin(db, user_id)
    if admin is None or admin.username != username:
        raise Unauthorized("Session is invalid or has expired.")

    return SessionContext(user_id=admin.id, username=admin.username)
