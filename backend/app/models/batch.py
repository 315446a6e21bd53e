"""Batch model: a priced course offering that students enroll in."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base
from backend.app.models.associations import batch_branches, student_batches


class Batch(Base):
    __tablename__ = "batches"

    id = Column(Integer, primary_key=True, index=True)
    batch_code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(150), nullable=False)
    cost = Column(Numeric(10, 2), nullable=False, default=0)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    category = relationship("Category", back_populates="batches")
    branches = relationship("Branch", secondary=batch_branches, back_populates="batches", order_by="Branch.id")
    students = relationship("Student", secondary=student_batches, back_populates="batches")

    @property
    def branch_ids(self) -> list[int]:
        return [branch.id for branch in self.branches]
