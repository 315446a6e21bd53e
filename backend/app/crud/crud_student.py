"""Persistence helpers for students, enrollments and payments.

Every method works inside the caller's session and only flushes; committing or
rolling back is left to whoever opened the unit of work.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from backend.app.models.batch import Batch
from backend.app.models.payment import Payment
from backend.app.models.student import Student


class CRUDStudent:
    def get(
        self,
        db: Session,
        student_id: int,
        *,
        with_batches: bool = False,
        with_payments: bool = False,
    ) -> Optional[Student]:
        query = db.query(Student).filter(Student.id == student_id)
        if with_batches:
            query = query.options(selectinload(Student.batches))
        if with_payments:
            query = query.options(selectinload(Student.payments))
        return query.first()

    def get_batches_by_ids(self, db: Session, batch_ids: Iterable[int]) -> List[Batch]:
        ids = set(batch_ids)
        if not ids:
            return []
        return db.query(Batch).filter(Batch.id.in_(ids)).order_by(Batch.id).all()

    def replace_enrollments(self, db: Session, student: Student, batches: List[Batch]) -> None:
        student.batches = list(batches)
        db.flush()

    def insert_payment(
        self,
        db: Session,
        *,
        student_id: int,
        amount: Decimal,
        date: datetime,
        note: Optional[str],
        installment_number: Optional[int],
    ) -> Payment:
        payment = Payment(
            student_id=student_id,
            amount=amount,
            date=date,
            note=note,
            installment_number=installment_number,
        )
        db.add(payment)
        db.flush()
        return payment

    def delete_payments_for_student(self, db: Session, student_id: int) -> int:
        deleted = (
            db.query(Payment)
            .filter(Payment.student_id == student_id)
            .delete(synchronize_session=False)
        )
        db.flush()
        return deleted

    def list_batch_costs(self, db: Session, student_id: int) -> List[Decimal]:
        rows = (
            db.query(Batch.cost)
            .join(Batch.students)
            .filter(Student.id == student_id)
            .all()
        )
        return [row.cost for row in rows]

    def list_payment_amounts(self, db: Session, student_id: int) -> List[Decimal]:
        rows = db.query(Payment.amount).filter(Payment.student_id == student_id).all()
        return [row.amount for row in rows]


student_registry = CRUDStudent()
