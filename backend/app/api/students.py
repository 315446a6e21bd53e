"""Student endpoints: registry CRUD with live due calculation."""

import math

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.crud.crud_student import student_registry
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_admin, get_current_user
from backend.app.models.batch import Batch
from backend.app.models.student import Student
from backend.app.models.user import User
from backend.app.schemas.payment import PaymentCreate, PaymentRead
from backend.app.schemas.student import (
    Pagination,
    StudentCreate,
    StudentCreated,
    StudentLedgerRead,
    StudentPage,
    StudentRead,
    StudentUpdate,
)
from backend.app.services import ledger
from backend.app.services.ledger import LedgerSnapshot

router = APIRouter(prefix="/students", tags=["students"])


def _with_ledger(student: Student, snapshot: LedgerSnapshot) -> StudentLedgerRead:
    data = StudentRead.model_validate(student).model_dump()
    data["payments"] = [PaymentRead.model_validate(payment) for payment in student.payments]
    data.update(snapshot.as_dict())
    return StudentLedgerRead(**data)


@router.get("/", response_model=StudentPage)
async def list_students(
    search: str | None = None,
    institution: str | None = None,
    batch_id: int | None = None,
    branch_id: int | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=15, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = db.query(Student)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Student.name.ilike(pattern),
                Student.phone_number.ilike(pattern),
                Student.institution.ilike(pattern),
            )
        )
    if institution:
        query = query.filter(Student.institution.ilike(f"%{institution}%"))
    if branch_id is not None:
        query = query.filter(Student.branch_id == branch_id)
    if batch_id is not None:
        query = query.filter(Student.batches.any(Batch.id == batch_id))

    total_count = query.count()
    students = (
        query.options(selectinload(Student.batches), selectinload(Student.payments))
        .order_by(Student.created_at.desc(), Student.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    total_pages = math.ceil(total_count / limit)

    return StudentPage(
        data=[_with_ledger(student, ledger.compute_snapshot(db, student.id)) for student in students],
        pagination=Pagination(
            current_page=page,
            total_pages=total_pages,
            total_count=total_count,
            page_size=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        ),
    )


@router.get("/{student_id}", response_model=StudentLedgerRead)
async def get_student(student_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    student = student_registry.get(db, student_id, with_batches=True, with_payments=True)
    if not student:
        raise ResourceNotFoundError("Student", student_id)
    return _with_ledger(student, ledger.compute_snapshot(db, student_id))


@router.post("/", response_model=StudentCreated, status_code=status.HTTP_201_CREATED)
async def create_student(
    student_in: StudentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    fields = student_in.model_dump(exclude={"batch_ids", "initial_payment"})
    initial_payment = student_in.initial_payment.model_dump() if student_in.initial_payment else None
    student, payment = ledger.create_student_with_initial_payment(
        db,
        fields,
        batch_ids=student_in.batch_ids,
        initial_payment=initial_payment,
    )
    data = StudentRead.model_validate(student).model_dump()
    data["initial_payment"] = PaymentRead.model_validate(payment) if payment is not None else None
    return StudentCreated(**data)


@router.put("/{student_id}", response_model=StudentLedgerRead)
async def update_student(
    student_id: int,
    student_in: StudentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    student = ledger.update_student(db, student_id, student_in.model_dump(exclude_unset=True))
    return _with_ledger(student, ledger.compute_snapshot(db, student.id))


@router.delete("/{student_id}")
async def delete_student(
    student_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    ledger.delete_student(db, student_id)
    return {"status": "deleted", "id": student_id}


@router.post("/{student_id}/payments", response_model=PaymentRead, status_code=status.HTTP_201_CREATED)
async def add_student_payment(
    student_id: int,
    payment_in: PaymentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ledger.add_payment(
        db,
        student_id,
        amount=payment_in.amount,
        date=payment_in.date,
        note=payment_in.note,
        installment_number=payment_in.installment_number,
    )
