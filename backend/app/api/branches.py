from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.core.exceptions import ConflictError, ResourceNotFoundError
from backend.app.db.session import commit_or_conflict, get_db
from backend.app.dependencies.auth import get_current_admin
from backend.app.models.branch import Branch
from backend.app.models.student import Student
from backend.app.models.user import User
from backend.app.schemas.catalog import BranchCreate, BranchRead, BranchUpdate

router = APIRouter(prefix="/branches", tags=["branches"])

DUPLICATE_NAME_MESSAGE = "A branch with this name already exists."


def _get_branch(db: Session, branch_id: int) -> Branch:
    branch = db.query(Branch).filter(Branch.id == branch_id).first()
    if not branch:
        raise ResourceNotFoundError("Branch", branch_id)
    return branch


def _ensure_unique_name(db: Session, name: str, exclude_id: int | None = None) -> None:
    query = db.query(Branch).filter(Branch.name == name)
    if exclude_id is not None:
        query = query.filter(Branch.id != exclude_id)
    if query.first():
        raise ConflictError(DUPLICATE_NAME_MESSAGE)


@router.get("/", response_model=list[BranchRead])
async def list_branches(db: Session = Depends(get_db)):
    return db.query(Branch).order_by(Branch.name.asc()).all()


@router.post("/", response_model=BranchRead, status_code=status.HTTP_201_CREATED)
async def create_branch(
    branch_in: BranchCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    _ensure_unique_name(db, branch_in.name)
    branch = Branch(name=branch_in.name, address=branch_in.address)
    db.add(branch)
    commit_or_conflict(db, DUPLICATE_NAME_MESSAGE)
    db.refresh(branch)
    return branch


@router.put("/{branch_id}", response_model=BranchRead)
async def update_branch(
    branch_id: int,
    branch_in: BranchUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    branch = _get_branch(db, branch_id)
    update_data = branch_in.model_dump(exclude_unset=True)
    if update_data.get("name") is not None:
        _ensure_unique_name(db, update_data["name"], exclude_id=branch.id)
        branch.name = update_data["name"]
    if "address" in update_data:
        branch.address = update_data["address"]
    commit_or_conflict(db, DUPLICATE_NAME_MESSAGE)
    db.refresh(branch)
    return branch


@router.delete("/{branch_id}")
async def delete_branch(
    branch_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    branch = _get_branch(db, branch_id)
    if db.query(Student).filter(Student.branch_id == branch.id).count() or branch.batches:
        raise ConflictError("Branch is still used by students or batches.")
    db.delete(branch)
    db.commit()
    return {"status": "deleted", "id": branch_id}
