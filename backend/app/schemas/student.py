"""Student schemas for Pocket Coach."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from backend.app.schemas.catalog import BatchSummary
from backend.app.schemas.payment import InitialPayment, PaymentRead

# Discount arrives as raw input so the ledger can report non-numeric values as a 400.
RawNumber = Union[Decimal, str]


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class StudentCreate(BaseModel):
    name: Optional[str] = None
    phone_number: Optional[str] = None
    institution: Optional[str] = None
    email: Optional[EmailStr] = None
    photo: Optional[str] = None
    gpa: Optional[Decimal] = None
    branch_id: Optional[int] = None
    discount: Optional[RawNumber] = None
    batch_ids: Optional[List[int]] = None
    initial_payment: Optional[InitialPayment] = None

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value):
        return _blank_to_none(value)


class StudentUpdate(BaseModel):
    """Partial update; only fields present in the request body are applied."""

    name: Optional[str] = None
    phone_number: Optional[str] = None
    institution: Optional[str] = None
    email: Optional[EmailStr] = None
    photo: Optional[str] = None
    gpa: Optional[Decimal] = None
    branch_id: Optional[int] = None
    discount: Optional[RawNumber] = None
    batch_ids: Optional[List[int]] = None

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value):
        return _blank_to_none(value)


class StudentRead(BaseModel):
    id: int
    name: str
    phone_number: str
    institution: str
    email: Optional[str] = None
    photo: Optional[str] = None
    gpa: Optional[Decimal] = None
    discount: Decimal
    branch_id: Optional[int] = None
    batches: List[BatchSummary] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StudentCreated(StudentRead):
    initial_payment: Optional[PaymentRead] = None


class StudentLedgerRead(StudentRead):
    payments: List[PaymentRead] = []
    initial_due: Decimal
    total_paid: Decimal
    final_due: Decimal


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    page_size: int
    has_next_page: bool
    has_prev_page: bool


class StudentPage(BaseModel):
    data: List[StudentLedgerRead]
    pagination: Pagination
