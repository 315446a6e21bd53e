"""Student model."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base
from backend.app.models.associations import student_batches


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    phone_number = Column(String(20), unique=True, nullable=False, index=True)
    institution = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    photo = Column(String(512), nullable=True)
    gpa = Column(Numeric(4, 2), nullable=True)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    branch = relationship("Branch", back_populates="students")
    batches = relationship("Batch", secondary=student_batches, back_populates="students", order_by="Batch.id")
    # Payments are removed explicitly by the ledger before the student row goes away.
    payments = relationship("Payment", back_populates="student", order_by="Payment.id")
