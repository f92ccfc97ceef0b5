"""
Derived stats: check-in averages and day streak, plus this month's growth counts.
Nothing here is stored; every call recomputes from the rows.
"""
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from studypal.core.models import utc_now
from studypal.features.assignments.service import count_completed_since
from studypal.features.checkins.service import count_checkins_since, get_recent_checkins
from studypal.features.wins.service import count_wins_since

DEFAULT_WINDOW_DAYS = 30


@dataclass(frozen=True)
class CheckinAverages:
    mood: float = 0.0
    energy: float = 0.0
    focus: float = 0.0
    count: int = 0


def compute_averages(checkins: Iterable) -> CheckinAverages:
    """Mean of each rating, one decimal; zeros when there are no check-ins."""
    rows = list(checkins)
    if not rows:
        return CheckinAverages()
    n = len(rows)
    return CheckinAverages(
        mood=round(sum(r.mood for r in rows) / n, 1),
        energy=round(sum(r.energy for r in rows) / n, 1),
        focus=round(sum(r.focus for r in rows) / n, 1),
        count=n,
    )


def compute_streak(days_with_checkins: Iterable[date], today: date) -> int:
    """Consecutive days ending today that each have a check-in; stops at the first gap."""
    days = set(days_with_checkins)
    streak = 0
    day = today
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def get_checkin_stats(user_id: str, window_days: int = DEFAULT_WINDOW_DAYS, now: Optional[datetime] = None) -> Dict[str, Any]:
    """{"averages": {...}, "streak": n} over the last window_days days."""
    now = now or utc_now()
    rows = get_recent_checkins(user_id, days=window_days, now=now)
    return {
        "averages": asdict(compute_averages(rows)),
        "streak": compute_streak((r.created_at.date() for r in rows), now.date()),
    }


def month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def get_progress_stats(user_id: str, window_days: int = DEFAULT_WINDOW_DAYS, now: Optional[datetime] = None) -> Dict[str, int]:
    """This month's check-ins, completed assignments and little wins, plus the current streak."""
    now = now or utc_now()
    since = month_start(now)
    return {
        "checkins": count_checkins_since(user_id, since),
        "completed": count_completed_since(user_id, since),
        "wins": count_wins_since(user_id, since),
        "streak": get_checkin_stats(user_id, window_days, now)["streak"],
    }
