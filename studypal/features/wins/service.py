"""
Service layer: save and load little wins.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select

from studypal.core.db import session_scope
from studypal.core.models import utc_now
from studypal.features.wins.models import LittleWin, WIN_CATEGORIES


def create_win(user_id: str, category: str, description: str) -> LittleWin:
    if category not in WIN_CATEGORIES:
        raise ValueError(f"category must be one of: {', '.join(WIN_CATEGORIES)}")
    description = (description or "").strip()
    if not description:
        raise ValueError("description is required")
    row = LittleWin(user_id=user_id, category=category, description=description, created_at=utc_now())
    with session_scope() as session:
        session.add(row)
    return row


def get_recent_wins(user_id: str, limit: Optional[int] = 50) -> List[LittleWin]:
    """Newest first."""
    with session_scope() as session:
        stmt = (
            select(LittleWin)
            .where(LittleWin.user_id == user_id)
            .order_by(LittleWin.created_at.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(session.execute(stmt).scalars().all())


def count_wins_since(user_id: str, since: datetime) -> int:
    with session_scope() as session:
        stmt = select(func.count(LittleWin.id)).where(LittleWin.user_id == user_id, LittleWin.created_at >= since)
        return session.execute(stmt).scalar_one()
