"""
Subtask progress: completed / total as a whole-number percentage.
"""
import asyncio
import logging
import math
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List

from sqlalchemy import select
from starlette.concurrency import run_in_threadpool

from studypal.core.db import session_scope
from studypal.features.assignments.models import Subtask

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubtaskProgress:
    completed: int = 0
    total: int = 0
    percentage: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


EMPTY_PROGRESS = SubtaskProgress()


def percentage(completed: int, total: int) -> int:
    """completed/total*100 rounded half up; 0 when there is nothing to complete."""
    if total <= 0:
        return 0
    return int(math.floor(completed / total * 100 + 0.5))


def compute_progress(subtasks: Iterable) -> SubtaskProgress:
    """Aggregate anything with a truthy/falsy `completed` attribute."""
    items = list(subtasks)
    total = len(items)
    completed = sum(1 for s in items if s.completed)
    return SubtaskProgress(completed=completed, total=total, percentage=percentage(completed, total))


def get_progress(user_id: str, assignment_id: str) -> SubtaskProgress:
    """Progress for one assignment, recounted from the subtasks table."""
    with session_scope() as session:
        rows = session.execute(
            select(Subtask.completed).where(
                Subtask.user_id == user_id, Subtask.assignment_id == assignment_id
            )
        ).all()
    return compute_progress(rows)


async def load_progress_for_assignments(user_id: str, assignment_ids: List[str]) -> Dict[str, SubtaskProgress]:
    """
    Load progress for every assignment concurrently (one worker-thread call each).
    A failure for one assignment yields EMPTY_PROGRESS for that one only.
    """

    async def _load(assignment_id: str) -> SubtaskProgress:
        try:
            return await run_in_threadpool(get_progress, user_id, assignment_id)
        except Exception as e:
            logger.error(f"Error loading progress for assignment {assignment_id}: {e}")
            return EMPTY_PROGRESS

    results = await asyncio.gather(*(_load(a) for a in assignment_ids))
    return dict(zip(assignment_ids, results))
