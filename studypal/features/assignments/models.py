"""
SQLAlchemy models for assignments and their subtasks.

- Assignment: one course deliverable; status is free to move between any of ASSIGNMENT_STATUSES.
- Subtask: belongs to one assignment; order_position sorts the list. Progress is derived, never stored.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from studypal.core.db import Base
from studypal.core.models import new_id, utc_now


class AssignmentStatus:
    """Assignment status values. No transition graph is enforced."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DROPPED = "dropped"


ASSIGNMENT_STATUSES = (
    AssignmentStatus.NOT_STARTED,
    AssignmentStatus.IN_PROGRESS,
    AssignmentStatus.COMPLETED,
    AssignmentStatus.DROPPED,
)


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course = Column(String(255), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_at = Column(DateTime(timezone=False), nullable=False, index=True)
    impact = Column(Integer, nullable=False, default=3)  # 1-5, how important
    est_minutes = Column(Integer, nullable=False, default=0)
    status = Column(String(32), nullable=False, default=AssignmentStatus.NOT_STARTED, index=True)
    created_at = Column(DateTime(timezone=False), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=False), default=utc_now, nullable=False)

    subtasks = relationship(
        "Subtask",
        back_populates="assignment",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Subtask.order_position",
    )


class Subtask(Base):
    __tablename__ = "subtasks"

    id = Column(String(36), primary_key=True, default=new_id)
    assignment_id = Column(
        String(36), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    est_minutes = Column(Integer, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    order_position = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=False), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=False), default=utc_now, nullable=False)

    assignment = relationship("Assignment", back_populates="subtasks")
