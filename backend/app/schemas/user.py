"""Admin account schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AdminCreate(BaseModel):
    full_name: str = Field(min_length=1)
    mobile: str = Field(min_length=1, max_length=20)
    password: str = Field(min_length=6)


class UserRead(BaseModel):
    id: int
    full_name: str
    mobile: str
    role: str
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
