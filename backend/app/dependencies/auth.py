"""Authentication dependencies for retrieving the current admin."""

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from backend.app.core.exceptions import AuthenticationError, InsufficientPermissionsError
from backend.app.core.security import decode_access_token
from backend.app.db.session import get_db
from backend.app.models.user import ROLE_ADMIN, ROLE_SUPER_ADMIN, User


def get_current_user(db: Session = Depends(get_db), authorization: str | None = Header(default=None)) -> User:
    # Expect Authorization: Bearer <token>
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError()
    token = authorization.split(" ", 1)[1]
    try:
        payload = decode_access_token(token)
    except ValueError:
        raise AuthenticationError()

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationError()

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise AuthenticationError()
    return user


def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role not in (ROLE_ADMIN, ROLE_SUPER_ADMIN):
        raise InsufficientPermissionsError("Admin access required")
    return current_user


def get_current_super_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != ROLE_SUPER_ADMIN:
        raise InsufficientPermissionsError("Super admin access required")
    return current_user
