"""
Per-feature API for check-ins. Mounted at /api/checkins/.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from studypal.core.auth import CurrentUser, current_user
from .service import create_checkin, get_recent_checkins

logger = logging.getLogger(__name__)


class CheckinCreate(BaseModel):
    mood: int = Field(ge=1, le=5)
    energy: int = Field(ge=1, le=5)
    focus: int = Field(ge=1, le=5)
    notes: Optional[str] = None


class CheckinResponse(BaseModel):
    """Pydantic view of Checkin; serializes from ORM."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    mood: int
    energy: int
    focus: int
    notes: Optional[str] = None
    created_at: datetime


class CheckinsResponse(BaseModel):
    checkins: List[CheckinResponse]


def get_router(studypal_app) -> Optional[APIRouter]:
    """Return router for this feature; mounted with prefix /api/checkins."""
    router = APIRouter(tags=["Check-ins"])

    @router.post("", response_model=CheckinResponse, status_code=201)
    def post_checkin(payload: CheckinCreate, user: CurrentUser = Depends(current_user)) -> CheckinResponse:
        try:
            row = create_checkin(user.id, payload.mood, payload.energy, payload.focus, payload.notes)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception:
            logger.error(f"Error saving check-in for {user.id}", exc_info=True)
            raise HTTPException(status_code=500, detail="There was an error saving your check-in. Please try again.")
        return CheckinResponse.model_validate(row)

    @router.get("", response_model=CheckinsResponse)
    def list_checkins(
        days: int = Query(7, ge=1, le=365),
        user: CurrentUser = Depends(current_user),
    ) -> CheckinsResponse:
        """Check-ins from the last ?days= days (default 7), newest first."""
        try:
            rows = get_recent_checkins(user.id, days=days)
        except Exception:
            logger.error(f"Error loading check-ins for {user.id}", exc_info=True)
            return CheckinsResponse(checkins=[])
        return CheckinsResponse(checkins=[CheckinResponse.model_validate(r) for r in rows])

    return router
