"""
Per-feature API for progress stats. Mounted at /api/stats/.
- /: 30-day check-in averages and streak, plus this month's growth counts.
- /dashboard: profile, stats and today's focus loaded concurrently; each part falls back on failure.
"""
import asyncio
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from studypal.core.auth import CurrentUser, current_user
from studypal.features.assignments.api import AssignmentResponse, with_progress
from studypal.features.assignments.service import get_todays_focus
from studypal.features.profile.api import ProfileResponse, to_profile_response
from studypal.features.profile.service import get_profile
from .service import DEFAULT_WINDOW_DAYS, get_checkin_stats, get_progress_stats

logger = logging.getLogger(__name__)


class AveragesResponse(BaseModel):
    mood: float = 0.0
    energy: float = 0.0
    focus: float = 0.0
    count: int = 0


class GrowthResponse(BaseModel):
    """This month's counts (the growth tracker), with the current streak."""

    checkins: int = 0
    completed: int = 0
    wins: int = 0
    streak: int = 0


class StatsResponse(BaseModel):
    window_days: int
    averages: AveragesResponse
    streak: int = 0
    growth: GrowthResponse


class DashboardResponse(BaseModel):
    profile: Optional[ProfileResponse] = None
    needs_profile_setup: bool = False
    stats: StatsResponse
    focus: List[AssignmentResponse] = []


async def _load(label: str, func, *args, default: Any = None, **kwargs) -> Any:
    """Run a blocking loader in the thread pool; log and return default on failure."""
    try:
        return await run_in_threadpool(func, *args, **kwargs)
    except Exception:
        logger.error(f"Error loading {label}", exc_info=True)
        return default


def get_router(studypal_app) -> Optional[APIRouter]:
    """Return router for this feature; mounted with prefix /api/stats."""
    router = APIRouter(tags=["Stats"])
    window_days = int(studypal_app.config.get("stats", "window_days", DEFAULT_WINDOW_DAYS))

    def _stats(checkin_stats, growth) -> StatsResponse:
        checkin_stats = checkin_stats or {"averages": {}, "streak": 0}
        return StatsResponse(
            window_days=window_days,
            averages=AveragesResponse(**checkin_stats["averages"]),
            streak=checkin_stats["streak"],
            growth=GrowthResponse(**(growth or {})),
        )

    @router.get("", response_model=StatsResponse)
    async def stats(user: CurrentUser = Depends(current_user)) -> StatsResponse:
        checkin_stats, growth = await asyncio.gather(
            _load("check-in stats", get_checkin_stats, user.id, window_days),
            _load("progress stats", get_progress_stats, user.id, window_days),
        )
        return _stats(checkin_stats, growth)

    @router.get("/dashboard", response_model=DashboardResponse)
    async def dashboard(user: CurrentUser = Depends(current_user)) -> DashboardResponse:
        profile, checkin_stats, growth, focus = await asyncio.gather(
            _load("profile", get_profile, user.id),
            _load("check-in stats", get_checkin_stats, user.id, window_days),
            _load("progress stats", get_progress_stats, user.id, window_days),
            _load("today's focus", get_todays_focus, user.id, default=[]),
        )
        profile_out = to_profile_response(profile or user.user)
        return DashboardResponse(
            profile=profile_out,
            needs_profile_setup=profile_out.needs_profile_setup,
            stats=_stats(checkin_stats, growth),
            focus=await with_progress(user.id, focus),
        )

    return router
