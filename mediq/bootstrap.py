# This module initializes the admin account on startup.
import logging

from . import crud
from .config import get_settings
from .database import SessionLocal
from .security import get_password_hash

logger = logging.getLogger(__name__)


def create_initial_admin():
    """
    Creates the configured admin account if it does not exist yet.
    An existing account is left alone so password changes survive restarts.
    """
    settings = get_settings()
    if not settings.admin_bootstrap_enabled:
        logger.info("ADMIN_PASSWORD not set; skipping admin bootstrap.")
        return

    db = SessionLocal()
    try:
        if crud.get_admin_by_username(db, settings.admin_username):
            logger.info("Admin account already present.")
            return
        crud.create_admin(db, settings.admin_username, get_password_hash(settings.admin_password))
        logger.info(f"Initial admin '{settings.admin_username}' created.")
    finally:
        db.close()
