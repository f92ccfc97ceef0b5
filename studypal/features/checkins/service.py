"""
Service layer: save and load check-ins.
"""
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func, select

from studypal.core.db import session_scope
from studypal.core.models import utc_now
from studypal.features.checkins.models import Checkin, RATING_MAX, RATING_MIN


def validate_rating(name: str, value) -> int:
    """Return value if it is an integer in [1, 5]; raise ValueError otherwise."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be a whole number between {RATING_MIN} and {RATING_MAX}")
    if not RATING_MIN <= value <= RATING_MAX:
        raise ValueError(f"{name} must be between {RATING_MIN} and {RATING_MAX}")
    return value


def create_checkin(user_id: str, mood: int, energy: int, focus: int, notes: Optional[str] = None) -> Checkin:
    row = Checkin(
        user_id=user_id,
        mood=validate_rating("mood", mood),
        energy=validate_rating("energy", energy),
        focus=validate_rating("focus", focus),
        notes=(notes or "").strip() or None,
        created_at=utc_now(),
    )
    with session_scope() as session:
        session.add(row)
    return row


def get_recent_checkins(user_id: str, days: int = 7, now: Optional[datetime] = None) -> List[Checkin]:
    """Check-ins from the last `days` days, newest first."""
    since = (now or utc_now()) - timedelta(days=days)
    with session_scope() as session:
        stmt = (
            select(Checkin)
            .where(Checkin.user_id == user_id, Checkin.created_at >= since)
            .order_by(Checkin.created_at.desc())
        )
        return list(session.execute(stmt).scalars().all())


def count_checkins_since(user_id: str, since: datetime) -> int:
    with session_scope() as session:
        stmt = select(func.count(Checkin.id)).where(Checkin.user_id == user_id, Checkin.created_at >= since)
        return session.execute(stmt).scalar_one()
