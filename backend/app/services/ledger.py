"""Student financial ledger.

Derives a student's dues from enrolled batches, discount and payments, and owns
the transactional writes (create, update, delete, payments) that keep those
rows consistent. The snapshot is recomputed on every read and never stored.

All functions take the caller's session as the unit of work. Reads go through
that session so they see rows flushed earlier in the same transaction.
"""

import logging
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.core.exceptions import (
    AppException,
    ConflictError,
    InternalError,
    ResourceNotFoundError,
    ValidationError,
)
from backend.app.core.money import ZERO, parse_amount, to_money
from backend.app.core.settings import get_settings
from backend.app.core.time import utc_now
from backend.app.crud.crud_student import student_registry
from backend.app.models.batch import Batch
from backend.app.models.payment import Payment
from backend.app.models.student import Student

logger = logging.getLogger(__name__)

REQUIRED_STUDENT_FIELDS = ("name", "phone_number", "institution")
NULLABLE_STUDENT_FIELDS = ("email", "photo", "gpa", "branch_id")
PAYMENT_FIELDS = ("amount", "date", "note", "installment_number")

DEFAULT_INITIAL_PAYMENT_NOTE = "Initial payment"
DUPLICATE_PHONE_MESSAGE = "A student with this phone number already exists."


@dataclass(frozen=True)
class LedgerSnapshot:
    initial_due: Decimal
    discount: Decimal
    total_paid: Decimal
    final_due: Decimal

    def as_dict(self) -> Dict[str, Decimal]:
        return asdict(self)


def build_snapshot(
    batch_costs: Iterable[Any],
    discount: Any,
    payment_amounts: Iterable[Any],
) -> LedgerSnapshot:
    """Combine raw costs, discount and payments into a snapshot; final due never drops below zero."""
    initial_due = sum((to_money(cost) for cost in batch_costs), ZERO)
    discount_value = to_money(discount)
    total_paid = sum((to_money(amount) for amount in payment_amounts), ZERO)
    final_due = max(ZERO, initial_due - discount_value - total_paid)
    return LedgerSnapshot(
        initial_due=initial_due,
        discount=discount_value,
        total_paid=total_paid,
        final_due=final_due,
    )


def compute_snapshot(db: Session, student_id: int) -> LedgerSnapshot:
    student = student_registry.get(db, student_id)
    if student is None:
        raise ResourceNotFoundError("Student", student_id)
    return build_snapshot(
        student_registry.list_batch_costs(db, student_id),
        student.discount,
        student_registry.list_payment_amounts(db, student_id),
    )


@contextmanager
def atomic(db: Session, action: str):
    """Commit the work done inside the block, or roll all of it back.

    Ledger errors propagate unchanged, a phone-number clash becomes a
    ConflictError and anything else surfaces as a generic InternalError.
    """
    try:
        yield
        db.commit()
    except AppException:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        if _is_duplicate_phone(exc):
            raise ConflictError(DUPLICATE_PHONE_MESSAGE) from exc
        logger.exception("%s violated a constraint; rolled back", action)
        raise InternalError() from exc
    except Exception as exc:
        db.rollback()
        logger.exception("%s failed; rolled back", action)
        raise InternalError() from exc


def _is_duplicate_phone(exc: IntegrityError) -> bool:
    return "phone_number" in str(exc.orig)


def _parse_discount(value: Any) -> Decimal:
    if value is None:
        return ZERO
    discount = parse_amount(value)
    if discount is None:
        raise ValidationError("Discount must be a number if provided.", details={"discount": str(value)})
    if discount < ZERO:
        raise ValidationError("Discount cannot be negative.", details={"discount": str(value)})
    return discount


def _parse_payment_amount(value: Any) -> Decimal:
    amount = parse_amount(value)
    if amount is None or amount <= ZERO:
        raise ValidationError("Payment amount must be a positive number.", details={"amount": str(value)})
    return amount


def _resolve_batches(db: Session, batch_ids: Iterable[int]) -> List[Batch]:
    requested = set(batch_ids)
    batches = student_registry.get_batches_by_ids(db, requested)
    missing = requested - {batch.id for batch in batches}
    if missing:
        if get_settings().strict_batch_ids:
            raise ValidationError("Unknown batch ids.", details={"unknown_batch_ids": sorted(missing)})
        logger.info("Ignoring unknown batch ids %s", sorted(missing))
    return batches


def _missing_required(fields: Mapping[str, Any]) -> List[str]:
    missing = []
    for name in REQUIRED_STUDENT_FIELDS:
        value = fields.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    return missing


def create_student_with_initial_payment(
    db: Session,
    fields: Mapping[str, Any],
    batch_ids: Optional[Iterable[int]] = None,
    initial_payment: Optional[Mapping[str, Any]] = None,
) -> tuple[Student, Optional[Payment]]:
    missing = _missing_required(fields)
    if missing:
        raise ValidationError(
            "Name, phone number, and institution are required.",
            details={"missing": missing},
        )
    discount = _parse_discount(fields.get("discount"))
    batch_ids = list(batch_ids or [])
    initial_payment = initial_payment or {}
    payment_amount = parse_amount(initial_payment.get("amount"))

    payment = None
    with atomic(db, "create student"):
        student = Student(
            name=fields["name"],
            phone_number=fields["phone_number"],
            institution=fields["institution"],
            discount=discount,
            **{name: fields.get(name) for name in NULLABLE_STUDENT_FIELDS},
        )
        db.add(student)
        db.flush()

        if batch_ids:
            student_registry.replace_enrollments(db, student, _resolve_batches(db, batch_ids))

        if payment_amount is not None and payment_amount > ZERO:
            payment = student_registry.insert_payment(
                db,
                student_id=student.id,
                amount=payment_amount,
                date=initial_payment.get("date") or utc_now(),
                note=initial_payment.get("note") or DEFAULT_INITIAL_PAYMENT_NOTE,
                installment_number=1,
            )

    db.refresh(student)
    if payment is not None:
        db.refresh(payment)
    logger.info(
        "Created student %s with %d batch(es) and %s initial payment",
        student.id,
        len(student.batches),
        payment.amount if payment is not None else "no",
    )
    return student, payment


def update_student(db: Session, student_id: int, changes: Mapping[str, Any]) -> Student:
    """Apply only the keys present in ``changes``; payments are never touched here."""
    with atomic(db, "update student"):
        student = student_registry.get(db, student_id)
        if student is None:
            raise ResourceNotFoundError("Student", student_id)

        for name in REQUIRED_STUDENT_FIELDS:
            value = changes.get(name)
            if value is not None and (not isinstance(value, str) or value.strip()):
                setattr(student, name, value)
        for name in NULLABLE_STUDENT_FIELDS:
            if name in changes:
                setattr(student, name, changes[name])
        if "discount" in changes:
            student.discount = _parse_discount(changes["discount"])
        db.flush()

        # An empty list un-enrolls the student from every batch.
        if changes.get("batch_ids") is not None:
            student_registry.replace_enrollments(db, student, _resolve_batches(db, changes["batch_ids"]))

    db.refresh(student)
    return student


def delete_student(db: Session, student_id: int) -> None:
    with atomic(db, "delete student"):
        student = student_registry.get(db, student_id)
        if student is None:
            raise ResourceNotFoundError("Student", student_id)
        removed = student_registry.delete_payments_for_student(db, student_id)
        # Drop any collections loaded before the bulk delete.
        db.expire(student)
        student_registry.replace_enrollments(db, student, [])
        db.delete(student)
        db.flush()
    logger.info("Deleted student %s and %d payment(s)", student_id, removed)


def add_payment(
    db: Session,
    student_id: int,
    *,
    amount: Any,
    date: Optional[datetime] = None,
    note: Optional[str] = None,
    installment_number: Optional[int] = None,
) -> Payment:
    payment_amount = _parse_payment_amount(amount)
    with atomic(db, "add payment"):
        if student_registry.get(db, student_id) is None:
            raise ResourceNotFoundError("Student", student_id)
        if get_settings().enforce_payment_cap:
            remaining = compute_snapshot(db, student_id).final_due
            if payment_amount > remaining:
                raise ValidationError(
                    "Payment exceeds the remaining due.",
                    details={"amount": str(payment_amount), "final_due": str(remaining)},
                )
        payment = student_registry.insert_payment(
            db,
            student_id=student_id,
            amount=payment_amount,
            date=date or utc_now(),
            note=note,
            installment_number=installment_number,
        )
    db.refresh(payment)
    logger.info("Recorded payment %s of %s for student %s", payment.id, payment.amount, student_id)
    return payment


def edit_payment(db: Session, payment_id: int, changes: Mapping[str, Any]) -> Payment:
    with atomic(db, "edit payment"):
        payment = db.query(Payment).filter(Payment.id == payment_id).first()
        if payment is None:
            raise ResourceNotFoundError("Payment", payment_id)
        for name in PAYMENT_FIELDS:
            if name not in changes:
                continue
            value = changes[name]
            if name == "amount":
                value = _parse_payment_amount(value)
            elif name == "date" and value is None:
                continue
            setattr(payment, name, value)
        db.flush()
    db.refresh(payment)
    logger.info("Edited payment %s for student %s", payment.id, payment.student_id)
    return payment
