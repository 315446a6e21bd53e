from datetime import datetime, timezone
from decimal import Decimal

import pytest

from backend.app.core.exceptions import ConflictError, InternalError, ResourceNotFoundError, ValidationError
from backend.app.core.settings import get_settings
from backend.app.crud.crud_student import student_registry
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.associations import student_batches
from backend.app.models.batch import Batch
from backend.app.models.category import Category
from backend.app.models.payment import Payment
from backend.app.models.student import Student
from backend.app.services import ledger


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


def _create_batches(db, *costs):
    category = Category(name="Physics")
    db.add(category)
    db.flush()
    batches = [
        Batch(batch_code=f"PHY-{index}", name=f"Physics {index}", cost=Decimal(cost), category_id=category.id)
        for index, cost in enumerate(costs)
    ]
    db.add_all(batches)
    db.commit()
    return [batch.id for batch in batches]


def _fields(**overrides):
    fields = {"name": "Karim", "phone_number": "01811111111", "institution": "Dhaka College"}
    fields.update(overrides)
    return fields


def _count(db, model):
    return db.query(model).count()


def test_create_student_with_batches_and_initial_payment(db):
    batch_ids = _create_batches(db, "5000", "3000")
    student, payment = ledger.create_student_with_initial_payment(
        db,
        _fields(discount="1000"),
        batch_ids=batch_ids,
        initial_payment={"amount": "2000"},
    )
    assert sorted(batch.id for batch in student.batches) == sorted(batch_ids)
    assert student.discount == Decimal("1000.00")
    assert payment.installment_number == 1
    assert payment.note == "Initial payment"
    assert payment.date is not None

    snapshot = ledger.compute_snapshot(db, student.id)
    assert snapshot.initial_due == Decimal("8000.00")
    assert snapshot.final_due == Decimal("5000.00")


def test_create_student_keeps_supplied_payment_note_and_date(db):
    paid_on = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
    _, payment = ledger.create_student_with_initial_payment(
        db,
        _fields(),
        initial_payment={"amount": 500, "note": "Admission fee", "date": paid_on},
    )
    assert payment.note == "Admission fee"
    assert payment.date.replace(tzinfo=None) == paid_on.replace(tzinfo=None)


@pytest.mark.parametrize("amount", [None, "", "abc", "0", "-50", "NaN", "Infinity", "1e30"])
def test_create_student_skips_non_positive_or_non_numeric_initial_payment(db, amount):
    student, payment = ledger.create_student_with_initial_payment(
        db, _fields(), initial_payment={"amount": amount}
    )
    assert payment is None
    assert _count(db, Payment) == 0
    assert student.discount == Decimal("0.00")


@pytest.mark.parametrize("missing", ["name", "phone_number", "institution"])
def test_create_student_requires_core_fields(db, missing):
    with pytest.raises(ValidationError):
        ledger.create_student_with_initial_payment(db, _fields(**{missing: None}))
    assert _count(db, Student) == 0


def test_create_student_rejects_non_numeric_discount(db):
    with pytest.raises(ValidationError):
        ledger.create_student_with_initial_payment(db, _fields(discount="ten"))
    assert _count(db, Student) == 0


@pytest.mark.parametrize("discount", ["1e30", 1e30, "-5", "100000000"])
def test_create_student_rejects_unstorable_discount(db, discount):
    with pytest.raises(ValidationError):
        ledger.create_student_with_initial_payment(db, _fields(discount=discount))
    assert _count(db, Student) == 0


def test_create_student_duplicate_phone_conflicts(db):
    ledger.create_student_with_initial_payment(db, _fields())
    with pytest.raises(ConflictError):
        ledger.create_student_with_initial_payment(
            db, _fields(name="Other"), initial_payment={"amount": "100"}
        )
    assert _count(db, Student) == 1
    assert _count(db, Payment) == 0


def test_create_student_silently_drops_unknown_batch_ids(db):
    batch_ids = _create_batches(db, "1000")
    student, _ = ledger.create_student_with_initial_payment(db, _fields(), batch_ids=batch_ids + [404])
    assert [batch.id for batch in student.batches] == batch_ids


def test_create_student_strict_batch_ids_rejects_unknown(db, monkeypatch):
    monkeypatch.setattr(get_settings(), "strict_batch_ids", True)
    batch_ids = _create_batches(db, "1000")
    with pytest.raises(ValidationError) as exc_info:
        ledger.create_student_with_initial_payment(db, _fields(), batch_ids=batch_ids + [404])
    assert exc_info.value.details == {"unknown_batch_ids": [404]}
    assert _count(db, Student) == 0


def test_create_student_rolls_back_when_payment_insert_fails(db, monkeypatch):
    batch_ids = _create_batches(db, "1000")

    def failing_insert(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(student_registry, "insert_payment", failing_insert)
    with pytest.raises(InternalError):
        ledger.create_student_with_initial_payment(
            db, _fields(), batch_ids=batch_ids, initial_payment={"amount": "100"}
        )

    check = SessionLocal()
    assert check.query(Student).count() == 0
    assert check.query(student_batches).count() == 0
    check.close()


def test_update_student_replaces_enrollment_set(db):
    a, b, c = _create_batches(db, "100", "200", "300")
    student, _ = ledger.create_student_with_initial_payment(db, _fields(), batch_ids=[a, b])

    updated = ledger.update_student(db, student.id, {"batch_ids": [b, c]})
    assert {batch.id for batch in updated.batches} == {b, c}
    assert ledger.compute_snapshot(db, student.id).initial_due == Decimal("500.00")


def test_update_student_empty_batch_ids_unenrolls_everything(db):
    a, b = _create_batches(db, "100", "200")
    student, _ = ledger.create_student_with_initial_payment(db, _fields(), batch_ids=[a, b])
    updated = ledger.update_student(db, student.id, {"batch_ids": []})
    assert updated.batches == []


def test_update_student_only_touches_present_fields(db):
    student, _ = ledger.create_student_with_initial_payment(
        db, _fields(email="karim@example.com", photo="karim.png")
    )
    updated = ledger.update_student(db, student.id, {"email": None, "institution": "Notre Dame"})
    assert updated.email is None
    assert updated.photo == "karim.png"
    assert updated.institution == "Notre Dame"
    assert updated.name == "Karim"


def test_update_student_bad_discount_leaves_row_unchanged(db):
    a, b = _create_batches(db, "100", "200")
    student, _ = ledger.create_student_with_initial_payment(db, _fields(), batch_ids=[a])
    with pytest.raises(ValidationError):
        ledger.update_student(db, student.id, {"name": "Changed", "discount": "lots", "batch_ids": [b]})

    check = SessionLocal()
    stored = check.query(Student).filter(Student.id == student.id).first()
    assert stored.name == "Karim"
    assert [batch.id for batch in stored.batches] == [a]
    check.close()


def test_update_student_oversized_discount_is_validation_error(db):
    student, _ = ledger.create_student_with_initial_payment(db, _fields(discount="10"))
    with pytest.raises(ValidationError):
        ledger.update_student(db, student.id, {"name": "Changed", "discount": "1e30"})

    check = SessionLocal()
    stored = check.query(Student).filter(Student.id == student.id).first()
    assert stored.name == "Karim"
    assert stored.discount == Decimal("10.00")
    check.close()


def test_update_student_phone_clash_conflicts_and_rolls_back(db):
    a, b = _create_batches(db, "100", "200")
    ledger.create_student_with_initial_payment(db, _fields(name="A", phone_number="01811111111"))
    other, _ = ledger.create_student_with_initial_payment(
        db, _fields(name="B", phone_number="01822222222", discount="5"), batch_ids=[a]
    )
    with pytest.raises(ConflictError):
        ledger.update_student(
            db,
            other.id,
            {"name": "Bee", "phone_number": "01811111111", "discount": "50", "batch_ids": [b]},
        )

    check = SessionLocal()
    stored = check.query(Student).filter(Student.id == other.id).first()
    assert stored.name == "B"
    assert stored.phone_number == "01822222222"
    assert stored.discount == Decimal("5.00")
    assert [batch.id for batch in stored.batches] == [a]
    check.close()


def test_update_student_never_touches_payments(db):
    student, _ = ledger.create_student_with_initial_payment(db, _fields(), initial_payment={"amount": "250"})
    ledger.update_student(db, student.id, {"discount": "50"})
    snapshot = ledger.compute_snapshot(db, student.id)
    assert snapshot.total_paid == Decimal("250.00")
    assert snapshot.discount == Decimal("50.00")


def test_update_missing_student_raises_not_found(db):
    with pytest.raises(ResourceNotFoundError):
        ledger.update_student(db, 12345, {"name": "Ghost"})


def test_delete_student_cascades_payments_and_enrollments(db):
    batch_ids = _create_batches(db, "1000")
    student, _ = ledger.create_student_with_initial_payment(
        db, _fields(), batch_ids=batch_ids, initial_payment={"amount": "300"}
    )
    ledger.add_payment(db, student.id, amount="200", installment_number=2)
    student_id = student.id

    ledger.delete_student(db, student_id)

    check = SessionLocal()
    assert check.query(Student).filter(Student.id == student_id).first() is None
    assert check.query(Payment).filter(Payment.student_id == student_id).count() == 0
    assert check.query(student_batches).count() == 0
    assert check.query(Batch).count() == 1
    check.close()


def test_delete_student_rolls_back_entirely_on_failure(db, monkeypatch):
    batch_ids = _create_batches(db, "1000")
    student, _ = ledger.create_student_with_initial_payment(
        db, _fields(), batch_ids=batch_ids, initial_payment={"amount": "300"}
    )
    student_id = student.id

    def failing_replace(*args, **kwargs):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(student_registry, "replace_enrollments", failing_replace)
    with pytest.raises(InternalError):
        ledger.delete_student(db, student_id)

    check = SessionLocal()
    assert check.query(Student).filter(Student.id == student_id).first() is not None
    assert check.query(Payment).filter(Payment.student_id == student_id).count() == 1
    check.close()


def test_delete_missing_student_raises_not_found(db):
    with pytest.raises(ResourceNotFoundError):
        ledger.delete_student(db, 999)


def test_add_payment_appends_and_changes_snapshot(db):
    batch_ids = _create_batches(db, "3000")
    student, _ = ledger.create_student_with_initial_payment(db, _fields(), batch_ids=batch_ids)
    payment = ledger.add_payment(db, student.id, amount=Decimal("1250.50"), note="March", installment_number=1)
    assert payment.amount == Decimal("1250.50")
    assert ledger.compute_snapshot(db, student.id).final_due == Decimal("1749.50")


@pytest.mark.parametrize("amount", ["0", "-1", "abc", None, "1e30", 1e30, "100000000"])
def test_add_payment_requires_positive_amount(db, amount):
    student, _ = ledger.create_student_with_initial_payment(db, _fields())
    with pytest.raises(ValidationError):
        ledger.add_payment(db, student.id, amount=amount, installment_number=1)
    assert _count(db, Payment) == 0


def test_add_payment_allows_overpayment_by_default(db):
    batch_ids = _create_batches(db, "100")
    student, _ = ledger.create_student_with_initial_payment(db, _fields(), batch_ids=batch_ids)
    ledger.add_payment(db, student.id, amount="150", installment_number=1)
    assert ledger.compute_snapshot(db, student.id).final_due == Decimal("0.00")


def test_add_payment_cap_rejects_amount_above_remaining_due(db, monkeypatch):
    monkeypatch.setattr(get_settings(), "enforce_payment_cap", True)
    batch_ids = _create_batches(db, "100")
    student, _ = ledger.create_student_with_initial_payment(
        db, _fields(), batch_ids=batch_ids, initial_payment={"amount": "60"}
    )
    with pytest.raises(ValidationError):
        ledger.add_payment(db, student.id, amount="50", installment_number=2)
    ledger.add_payment(db, student.id, amount="40", installment_number=2)
    assert ledger.compute_snapshot(db, student.id).final_due == Decimal("0.00")


def test_add_payment_missing_student_raises_not_found(db):
    with pytest.raises(ResourceNotFoundError):
        ledger.add_payment(db, 77, amount="10", installment_number=1)


def test_edit_payment_changes_future_snapshots(db):
    batch_ids = _create_batches(db, "1000")
    student, payment = ledger.create_student_with_initial_payment(
        db, _fields(), batch_ids=batch_ids, initial_payment={"amount": "100"}
    )
    edited = ledger.edit_payment(db, payment.id, {"amount": "400", "note": "Corrected"})
    assert edited.amount == Decimal("400.00")
    assert edited.note == "Corrected"
    assert edited.installment_number == 1
    assert ledger.compute_snapshot(db, student.id).final_due == Decimal("600.00")


def test_edit_payment_rejects_non_positive_amount(db):
    _, payment = ledger.create_student_with_initial_payment(db, _fields(), initial_payment={"amount": "100"})
    with pytest.raises(ValidationError):
        ledger.edit_payment(db, payment.id, {"amount": "0"})
    check = SessionLocal()
    assert check.query(Payment).first().amount == Decimal("100.00")
    check.close()


def test_edit_payment_rejects_oversized_amount(db):
    _, payment = ledger.create_student_with_initial_payment(db, _fields(), initial_payment={"amount": "100"})
    with pytest.raises(ValidationError):
        ledger.edit_payment(db, payment.id, {"amount": "1e30", "note": "typo"})
    check = SessionLocal()
    stored = check.query(Payment).first()
    assert stored.amount == Decimal("100.00")
    assert stored.note == "Initial payment"
    check.close()


def test_edit_missing_payment_raises_not_found(db):
    with pytest.raises(ResourceNotFoundError):
        ledger.edit_payment(db, 5, {"note": "x"})
