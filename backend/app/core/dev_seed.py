import logging
import os

from sqlalchemy.orm import Session

from backend.app.core.security import get_password_hash
from backend.app.core.settings import get_settings
from backend.app.models.user import ROLE_ADMIN, ROLE_SUPER_ADMIN, User

logger = logging.getLogger(__name__)


def ensure_super_admin(db: Session, mobile: str, password: str, full_name: str = "Super Admin") -> User:
    """
    Make the user with ``mobile`` the only super admin, creating it if needed.
    Any other super admin is demoted to a regular admin.
    """
    demoted = (
        db.query(User)
        .filter(User.role == ROLE_SUPER_ADMIN, User.mobile != mobile)
        .update({User.role: ROLE_ADMIN}, synchronize_session=False)
    )
    if demoted:
        logger.info("Demoted %d other super admin(s)", demoted)

    user = db.query(User).filter(User.mobile == mobile).first()
    if user is None:
        user = User(mobile=mobile, full_name=full_name)
        db.add(user)
        logger.info("Creating super admin %s", mobile)
    else:
        logger.info("Promoting existing user %s to super admin", mobile)
    user.full_name = full_name
    user.hashed_password = get_password_hash(password)
    user.role = ROLE_SUPER_ADMIN
    user.is_active = True
    db.commit()
    db.refresh(user)
    return user


def seed_default_super_admin(db: Session) -> None:
    """
    Seed the super admin configured through SUPER_ADMIN_MOBILE / SUPER_ADMIN_PASSWORD.
    Skips execution when running under pytest to avoid altering test expectations.
    """
    if os.getenv("PYTEST_CURRENT_TEST"):
        return
    settings = get_settings()
    if not settings.super_admin_mobile or not settings.super_admin_password:
        return
    ensure_super_admin(db, settings.super_admin_mobile, settings.super_admin_password, settings.super_admin_name)
