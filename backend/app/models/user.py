"""Admin account model."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base

ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super_admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    mobile = Column(String(20), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=True)
    role = Column(String(20), nullable=False, default=ROLE_ADMIN)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    @property
    def is_super_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN
