"""Batch endpoints. Batch cost feeds every enrolled student's initial due."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from backend.app.db.session import commit_or_conflict, get_db
from backend.app.dependencies.auth import get_current_admin
from backend.app.models.batch import Batch
from backend.app.models.branch import Branch
from backend.app.models.category import Category
from backend.app.models.user import User
from backend.app.schemas.catalog import BatchCreate, BatchRead, BatchUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/batches", tags=["batches"])

DUPLICATE_CODE_MESSAGE = "A batch with this code already exists."


def _get_batch(db: Session, batch_id: int) -> Batch:
    batch = db.query(Batch).filter(Batch.id == batch_id).first()
    if not batch:
        raise ResourceNotFoundError("Batch", batch_id)
    return batch


def _ensure_category(db: Session, category_id: int) -> None:
    if not db.query(Category).filter(Category.id == category_id).first():
        raise ValidationError("Unknown category.", details={"category_id": category_id})


def _resolve_branches(db: Session, branch_ids: list[int]) -> list[Branch]:
    requested = set(branch_ids)
    if not requested:
        return []
    branches = db.query(Branch).filter(Branch.id.in_(requested)).order_by(Branch.id).all()
    missing = requested - {branch.id for branch in branches}
    if missing:
        raise ValidationError("Unknown branch ids.", details={"unknown_branch_ids": sorted(missing)})
    return branches


def _ensure_unique_code(db: Session, batch_code: str, exclude_id: int | None = None) -> None:
    query = db.query(Batch).filter(Batch.batch_code == batch_code)
    if exclude_id is not None:
        query = query.filter(Batch.id != exclude_id)
    if query.first():
        raise ConflictError(DUPLICATE_CODE_MESSAGE)


@router.get("/", response_model=list[BatchRead])
async def list_batches(
    category_id: int | None = None,
    branch_id: int | None = None,
    db: Session = Depends(get_db),
):
    query = db.query(Batch)
    if category_id is not None:
        query = query.filter(Batch.category_id == category_id)
    if branch_id is not None:
        query = query.filter(Batch.branches.any(Branch.id == branch_id))
    return query.order_by(Batch.name.asc(), Batch.id.asc()).all()


@router.get("/{batch_id}", response_model=BatchRead)
async def get_batch(batch_id: int, db: Session = Depends(get_db)):
    return _get_batch(db, batch_id)


@router.post("/", response_model=BatchRead, status_code=status.HTTP_201_CREATED)
async def create_batch(
    batch_in: BatchCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    _ensure_unique_code(db, batch_in.batch_code)
    _ensure_category(db, batch_in.category_id)
    batch = Batch(
        batch_code=batch_in.batch_code,
        name=batch_in.name,
        cost=batch_in.cost,
        category_id=batch_in.category_id,
        branches=_resolve_branches(db, batch_in.branch_ids),
    )
    db.add(batch)
    commit_or_conflict(db, DUPLICATE_CODE_MESSAGE)
    db.refresh(batch)
    return batch


@router.put("/{batch_id}", response_model=BatchRead)
async def update_batch(
    batch_id: int,
    batch_in: BatchUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    batch = _get_batch(db, batch_id)
    update_data = batch_in.model_dump(exclude_unset=True)
    if update_data.get("batch_code") is not None:
        _ensure_unique_code(db, update_data["batch_code"], exclude_id=batch.id)
        batch.batch_code = update_data["batch_code"]
    if update_data.get("name") is not None:
        batch.name = update_data["name"]
    if update_data.get("cost") is not None:
        batch.cost = update_data["cost"]
    if update_data.get("category_id") is not None:
        _ensure_category(db, update_data["category_id"])
        batch.category_id = update_data["category_id"]
    if update_data.get("branch_ids") is not None:
        batch.branches = _resolve_branches(db, update_data["branch_ids"])
    commit_or_conflict(db, DUPLICATE_CODE_MESSAGE)
    db.refresh(batch)
    return batch


@router.delete("/{batch_id}")
async def delete_batch(
    batch_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    batch = _get_batch(db, batch_id)
    try:
        enrolled = len(batch.students)
        batch.students = []
        batch.branches = []
        db.delete(batch)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted batch %s and %d enrollment(s)", batch_id, enrolled)
    return {"status": "deleted", "id": batch_id}
