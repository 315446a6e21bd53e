"""Payment schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Amount = Union[Decimal, str]


class PaymentCreate(BaseModel):
    amount: Amount
    date: Optional[datetime] = None
    note: Optional[str] = None
    installment_number: int = Field(ge=1)


class PaymentUpdate(BaseModel):
    amount: Optional[Amount] = None
    date: Optional[datetime] = None
    note: Optional[str] = None
    installment_number: Optional[int] = Field(default=None, ge=1)


class InitialPayment(BaseModel):
    amount: Optional[Amount] = None
    date: Optional[datetime] = None
    note: Optional[str] = None


class PaymentRead(BaseModel):
    id: int
    student_id: int
    amount: Decimal
    date: datetime
    note: Optional[str] = None
    installment_number: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
