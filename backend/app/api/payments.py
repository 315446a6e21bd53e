"""Payment listing and privileged payment edits."""

from datetime import datetime
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_admin, get_current_super_admin
from backend.app.models.payment import Payment
from backend.app.models.user import User
from backend.app.schemas.payment import PaymentRead, PaymentUpdate
from backend.app.services import ledger

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/", response_model=List[PaymentRead])
async def list_payments(
    student_id: int | None = None,
    min_amount: Decimal | None = None,
    max_amount: Decimal | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    skip: int = 0,
    limit: int = 50,
    sort_by: str = "date",
    sort_order: str = "desc",
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    query = db.query(Payment)

    if student_id is not None:
        query = query.filter(Payment.student_id == student_id)
    if min_amount is not None:
        query = query.filter(Payment.amount >= min_amount)
    if max_amount is not None:
        query = query.filter(Payment.amount <= max_amount)
    if from_date is not None:
        query = query.filter(Payment.date >= from_date)
    if to_date is not None:
        query = query.filter(Payment.date <= to_date)

    supported_sort_fields = {
        "date": Payment.date,
        "amount": Payment.amount,
        "id": Payment.id,
    }
    if sort_by not in supported_sort_fields:
        raise HTTPException(status_code=400, detail="Invalid sort_by field")
    sort_order_normalized = (sort_order or "desc").lower()
    if sort_order_normalized not in {"asc", "desc"}:
        raise HTTPException(status_code=400, detail="Invalid sort_order value")

    sort_column = supported_sort_fields[sort_by]
    if sort_order_normalized == "asc":
        query = query.order_by(sort_column.asc(), Payment.id.asc())
    else:
        query = query.order_by(sort_column.desc(), Payment.id.desc())

    return query.offset(skip).limit(limit).all()


@router.put("/{payment_id}", response_model=PaymentRead)
async def edit_payment(
    payment_id: int,
    payment_in: PaymentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin),
):
    return ledger.edit_payment(db, payment_id, payment_in.model_dump(exclude_unset=True))
