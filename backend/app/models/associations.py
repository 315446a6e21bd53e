"""Many-to-many link tables."""

from sqlalchemy import Column, ForeignKey, Integer, Table

from backend.app.db.base_class import Base

# Enrollment: a student attending a batch. Carries no attributes of its own.
student_batches = Table(
    "student_batches",
    Base.metadata,
    Column("student_id", Integer, ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
    Column("batch_id", Integer, ForeignKey("batches.id", ondelete="CASCADE"), primary_key=True),
)

batch_branches = Table(
    "batch_branches",
    Base.metadata,
    Column("batch_id", Integer, ForeignKey("batches.id", ondelete="CASCADE"), primary_key=True),
    Column("branch_id", Integer, ForeignKey("branches.id", ondelete="CASCADE"), primary_key=True),
)
