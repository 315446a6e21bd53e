from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.core.exceptions import ConflictError, ResourceNotFoundError
from backend.app.db.session import commit_or_conflict, get_db
from backend.app.dependencies.auth import get_current_admin
from backend.app.models.batch import Batch
from backend.app.models.category import Category
from backend.app.models.user import User
from backend.app.schemas.catalog import CategoryCreate, CategoryRead

router = APIRouter(prefix="/categories", tags=["categories"])

DUPLICATE_NAME_MESSAGE = "A category with this name already exists."


def _get_category(db: Session, category_id: int) -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise ResourceNotFoundError("Category", category_id)
    return category


def _ensure_unique_name(db: Session, name: str, exclude_id: int | None = None) -> None:
    query = db.query(Category).filter(Category.name == name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise ConflictError(DUPLICATE_NAME_MESSAGE)


@router.get("/", response_model=list[CategoryRead])
async def list_categories(db: Session = Depends(get_db)):
    return db.query(Category).order_by(Category.name.asc()).all()


@router.post("/", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_in: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    _ensure_unique_name(db, category_in.name)
    category = Category(name=category_in.name)
    db.add(category)
    commit_or_conflict(db, DUPLICATE_NAME_MESSAGE)
    db.refresh(category)
    return category


@router.put("/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: int,
    category_in: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    category = _get_category(db, category_id)
    _ensure_unique_name(db, category_in.name, exclude_id=category.id)
    category.name = category_in.name
    commit_or_conflict(db, DUPLICATE_NAME_MESSAGE)
    db.refresh(category)
    return category


@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    category = _get_category(db, category_id)
    if db.query(Batch).filter(Batch.category_id == category.id).count():
        raise ConflictError("Category is still used by one or more batches.")
    db.delete(category)
    db.commit()
    return {"status": "deleted", "id": category_id}
