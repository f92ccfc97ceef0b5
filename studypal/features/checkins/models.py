"""
SQLAlchemy model for check-ins: one row per submitted mood/energy/focus snapshot.
"""
from sqlalchemy import CheckConstraint, Column, String, DateTime, Integer, Text, ForeignKey

from studypal.core.db import Base
from studypal.core.models import new_id, utc_now

RATING_MIN = 1
RATING_MAX = 5


class Checkin(Base):
    """Immutable once created. mood/energy/focus are 1-5."""
    __tablename__ = "checkins"
    __table_args__ = (
        CheckConstraint("mood BETWEEN 1 AND 5", name="ck_checkins_mood"),
        CheckConstraint("energy BETWEEN 1 AND 5", name="ck_checkins_energy"),
        CheckConstraint("focus BETWEEN 1 AND 5", name="ck_checkins_focus"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    mood = Column(Integer, nullable=False)
    energy = Column(Integer, nullable=False)
    focus = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=False), default=utc_now, nullable=False, index=True)
