"""
Service layer: assignments and subtasks.

Every query filters on user_id; a row owned by someone else is treated as missing
(functions return None / False rather than raising).
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select

from studypal.core.db import session_scope
from studypal.core.models import to_naive_utc, utc_now
from studypal.features.assignments.models import (
    ASSIGNMENT_STATUSES,
    Assignment,
    AssignmentStatus,
    Subtask,
)

logger = logging.getLogger(__name__)

SORT_OPTIONS = ("due_date", "priority", "course")

_ASSIGNMENT_FIELDS = ("course", "title", "description", "due_at", "impact", "est_minutes", "status")
_SUBTASK_FIELDS = ("title", "description", "est_minutes", "completed", "order_position")


def _check_assignment_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and normalize assignment column values; raises ValueError."""
    out = dict(fields)
    for key in ("course", "title"):
        if key in out:
            value = (out[key] or "").strip()
            if not value:
                raise ValueError(f"{key} is required")
            out[key] = value
    if "description" in out:
        out["description"] = (out["description"] or "").strip() or None
    if "due_at" in out:
        if not isinstance(out["due_at"], datetime):
            raise ValueError("due_at must be a datetime")
        out["due_at"] = to_naive_utc(out["due_at"])
    if "impact" in out:
        impact = out["impact"]
        if isinstance(impact, bool) or not isinstance(impact, int) or not 1 <= impact <= 5:
            raise ValueError("impact must be between 1 and 5")
    if "est_minutes" in out:
        minutes = out["est_minutes"]
        if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes < 0:
            raise ValueError("est_minutes must be zero or more")
    if "status" in out and out["status"] not in ASSIGNMENT_STATUSES:
        raise ValueError(f"status must be one of: {', '.join(ASSIGNMENT_STATUSES)}")
    return out


def _owned_assignment(session, user_id: str, assignment_id: str) -> Optional[Assignment]:
    return session.execute(
        select(Assignment).where(Assignment.id == assignment_id, Assignment.user_id == user_id)
    ).scalars().first()


def _owned_subtask(session, user_id: str, assignment_id: str, subtask_id: str) -> Optional[Subtask]:
    return session.execute(
        select(Subtask).where(
            Subtask.id == subtask_id,
            Subtask.assignment_id == assignment_id,
            Subtask.user_id == user_id,
        )
    ).scalars().first()


# --- assignments -------------------------------------------------------------

def list_assignments(user_id: str, sort_by: str = "due_date", status: Optional[str] = None) -> List[Assignment]:
    """All of the user's assignments, soonest due first unless sort_by says otherwise."""
    if sort_by not in SORT_OPTIONS:
        raise ValueError(f"sort_by must be one of: {', '.join(SORT_OPTIONS)}")
    stmt = select(Assignment).where(Assignment.user_id == user_id)
    if status is not None:
        if status not in ASSIGNMENT_STATUSES:
            raise ValueError(f"status must be one of: {', '.join(ASSIGNMENT_STATUSES)}")
        stmt = stmt.where(Assignment.status == status)
    if sort_by == "priority":
        stmt = stmt.order_by(Assignment.impact.desc(), Assignment.due_at.asc())
    elif sort_by == "course":
        stmt = stmt.order_by(func.lower(Assignment.course).asc(), Assignment.due_at.asc())
    else:
        stmt = stmt.order_by(Assignment.due_at.asc())
    with session_scope() as session:
        return list(session.execute(stmt).scalars().all())


def get_assignment(user_id: str, assignment_id: str) -> Optional[Assignment]:
    with session_scope() as session:
        return _owned_assignment(session, user_id, assignment_id)


def create_assignment(
    user_id: str,
    course: str,
    title: str,
    due_at: datetime,
    impact: int = 3,
    est_minutes: int = 60,
    description: Optional[str] = None,
    status: str = AssignmentStatus.NOT_STARTED,
) -> Assignment:
    fields = _check_assignment_fields(
        {
            "course": course,
            "title": title,
            "description": description,
            "due_at": due_at,
            "impact": impact,
            "est_minutes": est_minutes,
            "status": status,
        }
    )
    now = utc_now()
    row = Assignment(user_id=user_id, created_at=now, updated_at=now, **fields)
    with session_scope() as session:
        session.add(row)
    logger.debug(f"Created assignment {row.id} for {user_id}")
    return row


def update_assignment(user_id: str, assignment_id: str, updates: Dict[str, Any]) -> Optional[Assignment]:
    """Apply a partial update and stamp updated_at. Unknown keys raise ValueError."""
    unknown = set(updates) - set(_ASSIGNMENT_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
    fields = _check_assignment_fields(updates)
    with session_scope() as session:
        row = _owned_assignment(session, user_id, assignment_id)
        if row is None:
            return None
        for key, value in fields.items():
            setattr(row, key, value)
        row.updated_at = utc_now()
        return row


def update_status(user_id: str, assignment_id: str, status: str) -> Optional[Assignment]:
    """Set status. Setting the current status is a no-op (updated_at is left alone too)."""
    if status not in ASSIGNMENT_STATUSES:
        raise ValueError(f"status must be one of: {', '.join(ASSIGNMENT_STATUSES)}")
    with session_scope() as session:
        row = _owned_assignment(session, user_id, assignment_id)
        if row is None:
            return None
        if row.status != status:
            logger.info(f"Assignment {assignment_id}: {row.status} -> {status}")
            row.status = status
            row.updated_at = utc_now()
        return row


def delete_assignment(user_id: str, assignment_id: str) -> bool:
    """Delete the assignment and its subtasks. Returns False if it was not found."""
    with session_scope() as session:
        row = _owned_assignment(session, user_id, assignment_id)
        if row is None:
            return False
        session.delete(row)
        return True


def get_upcoming_assignments(user_id: str, days: int = 7, now: Optional[datetime] = None) -> List[Assignment]:
    """Assignments due between now and `days` days from now, soonest first."""
    now = now or utc_now()
    with session_scope() as session:
        stmt = (
            select(Assignment)
            .where(
                Assignment.user_id == user_id,
                Assignment.due_at >= now,
                Assignment.due_at <= now + timedelta(days=days),
            )
            .order_by(Assignment.due_at.asc())
        )
        return list(session.execute(stmt).scalars().all())


def get_todays_focus(user_id: str, limit: int = 3, now: Optional[datetime] = None) -> List[Assignment]:
    """Not-started work due within a day (overdue included), highest impact first, at most `limit`."""
    now = now or utc_now()
    with session_scope() as session:
        stmt = (
            select(Assignment)
            .where(
                Assignment.user_id == user_id,
                Assignment.status == AssignmentStatus.NOT_STARTED,
                Assignment.due_at <= now + timedelta(days=1),
            )
            .order_by(Assignment.impact.desc(), Assignment.due_at.asc())
            .limit(limit)
        )
        return list(session.execute(stmt).scalars().all())


def count_completed_since(user_id: str, since: datetime) -> int:
    with session_scope() as session:
        stmt = select(func.count(Assignment.id)).where(
            Assignment.user_id == user_id,
            Assignment.status == AssignmentStatus.COMPLETED,
            Assignment.updated_at >= since,
        )
        return session.execute(stmt).scalar_one()


# --- subtasks ----------------------------------------------------------------

def _check_subtask_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(fields)
    if "title" in out:
        title = (out["title"] or "").strip()
        if not title:
            raise ValueError("title is required")
        out["title"] = title
    if "description" in out:
        out["description"] = (out["description"] or "").strip() or None
    if "est_minutes" in out and out["est_minutes"] is not None:
        minutes = out["est_minutes"]
        if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes < 0:
            raise ValueError("est_minutes must be zero or more")
        # 0 minutes means "no estimate"
        out["est_minutes"] = minutes or None
    if "completed" in out:
        out["completed"] = bool(out["completed"])
    if "order_position" in out:
        position = out["order_position"]
        if isinstance(position, bool) or not isinstance(position, int):
            raise ValueError("order_position must be an integer")
    return out


def list_subtasks(user_id: str, assignment_id: str) -> Optional[List[Subtask]]:
    """Subtasks in order_position order; None if the assignment is not found."""
    with session_scope() as session:
        if _owned_assignment(session, user_id, assignment_id) is None:
            return None
        stmt = (
            select(Subtask)
            .where(Subtask.assignment_id == assignment_id, Subtask.user_id == user_id)
            .order_by(Subtask.order_position.asc(), Subtask.created_at.asc())
        )
        return list(session.execute(stmt).scalars().all())


def create_subtask(
    user_id: str,
    assignment_id: str,
    title: str,
    description: Optional[str] = None,
    est_minutes: Optional[int] = None,
) -> Optional[Subtask]:
    """Append a subtask at position max(existing) + 1. None if the assignment is not found."""
    fields = _check_subtask_fields({"title": title, "description": description, "est_minutes": est_minutes})
    with session_scope() as session:
        if _owned_assignment(session, user_id, assignment_id) is None:
            return None
        last = session.execute(
            select(func.max(Subtask.order_position)).where(Subtask.assignment_id == assignment_id)
        ).scalar()
        now = utc_now()
        row = Subtask(
            assignment_id=assignment_id,
            user_id=user_id,
            completed=False,
            order_position=(last or 0) + 1,
            created_at=now,
            updated_at=now,
            **fields,
        )
        session.add(row)
        return row


def update_subtask(
    user_id: str, assignment_id: str, subtask_id: str, updates: Dict[str, Any]
) -> Optional[Subtask]:
    unknown = set(updates) - set(_SUBTASK_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
    fields = _check_subtask_fields(updates)
    with session_scope() as session:
        row = _owned_subtask(session, user_id, assignment_id, subtask_id)
        if row is None:
            return None
        for key, value in fields.items():
            setattr(row, key, value)
        row.updated_at = utc_now()
        return row


def delete_subtask(user_id: str, assignment_id: str, subtask_id: str) -> bool:
    with session_scope() as session:
        row = _owned_subtask(session, user_id, assignment_id, subtask_id)
        if row is None:
            return False
        session.delete(row)
        return True


def reorder_subtasks(user_id: str, assignment_id: str, ordered_ids: List[str]) -> Optional[List[Subtask]]:
    """
    Renumber subtasks 1..n in the given order. ordered_ids must name every subtask
    of the assignment exactly once (ValueError otherwise). None if the assignment is not found.
    """
    with session_scope() as session:
        if _owned_assignment(session, user_id, assignment_id) is None:
            return None
        rows = session.execute(
            select(Subtask).where(Subtask.assignment_id == assignment_id, Subtask.user_id == user_id)
        ).scalars().all()
        by_id = {r.id: r for r in rows}
        if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != set(by_id):
            raise ValueError("ordered_ids must list every subtask of the assignment exactly once")
        now = utc_now()
        for position, subtask_id in enumerate(ordered_ids, start=1):
            row = by_id[subtask_id]
            if row.order_position != position:
                row.order_position = position
                row.updated_at = now
        return [by_id[i] for i in ordered_ids]
