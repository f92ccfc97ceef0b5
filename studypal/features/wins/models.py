"""
SQLAlchemy model for little wins (append-only).
"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey

from studypal.core.db import Base
from studypal.core.models import new_id, utc_now

WIN_CATEGORIES = ("academic", "self_care", "social", "personal", "other")


class LittleWin(Base):
    """A small accomplishment the student logged. category is one of WIN_CATEGORIES."""
    __tablename__ = "little_wins"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(32), nullable=False)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=False), default=utc_now, nullable=False, index=True)
