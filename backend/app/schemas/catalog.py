"""Schemas for categories, branches and batches."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class CategoryRead(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class BranchCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    address: Optional[str] = None


class BranchUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    address: Optional[str] = None


class BranchRead(BaseModel):
    id: int
    name: str
    address: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BatchCreate(BaseModel):
    batch_code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=150)
    cost: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    category_id: int
    branch_ids: List[int] = Field(default_factory=list)


class BatchUpdate(BaseModel):
    batch_code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    cost: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    category_id: Optional[int] = None
    branch_ids: Optional[List[int]] = None


class BatchSummary(BaseModel):
    id: int
    batch_code: str
    name: str
    cost: Decimal

    model_config = ConfigDict(from_attributes=True)


class BatchRead(BatchSummary):
    category_id: int
    branch_ids: List[int] = []
    created_at: datetime
    updated_at: datetime
