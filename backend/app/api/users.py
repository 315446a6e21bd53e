"""Admin account management, reserved for the super admin."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.app.core.exceptions import ConflictError, ResourceNotFoundError
from backend.app.core.security import get_password_hash
from backend.app.db.session import commit_or_conflict, get_db
from backend.app.dependencies.auth import get_current_super_admin
from backend.app.models.user import ROLE_ADMIN, User
from backend.app.schemas.user import AdminCreate, UserRead

router = APIRouter(prefix="/users", tags=["users"])

DUPLICATE_MOBILE_MESSAGE = "A user with this mobile number already exists."


def _ensure_unique_mobile(db: Session, mobile: str) -> None:
    if db.query(User).filter(User.mobile == mobile).first():
        raise ConflictError(DUPLICATE_MOBILE_MESSAGE)


@router.get("/", response_model=list[UserRead])
async def list_users(db: Session = Depends(get_db), current_user: User = Depends(get_current_super_admin)):
    return db.query(User).order_by(User.id.asc()).all()


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_admin(
    admin_in: AdminCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin),
):
    _ensure_unique_mobile(db, admin_in.mobile)
    user = User(
        full_name=admin_in.full_name,
        mobile=admin_in.mobile,
        hashed_password=get_password_hash(admin_in.password),
        role=ROLE_ADMIN,
    )
    db.add(user)
    commit_or_conflict(db, DUPLICATE_MOBILE_MESSAGE)
    db.refresh(user)
    return user


@router.delete("/{user_id}")
async def delete_admin(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin),
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise ResourceNotFoundError("User", user_id)
    if user.is_super_admin:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The super admin cannot be deleted")
    db.delete(user)
    db.commit()
    return {"status": "deleted", "id": user_id}
