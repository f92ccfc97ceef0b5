"""
Per-feature API for little wins. Mounted at /api/wins/.
"""
import logging
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from studypal.core.auth import CurrentUser, current_user
from .service import create_win, get_recent_wins

logger = logging.getLogger(__name__)


class WinCreate(BaseModel):
    category: Literal["academic", "self_care", "social", "personal", "other"]
    description: str = Field(min_length=1)


class WinResponse(BaseModel):
    """Pydantic view of LittleWin; serializes from ORM."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    category: str
    description: str
    created_at: datetime


class WinsResponse(BaseModel):
    wins: List[WinResponse]


def get_router(studypal_app) -> Optional[APIRouter]:
    """Return router for this feature; mounted with prefix /api/wins."""
    router = APIRouter(tags=["Little Wins"])

    @router.post("", response_model=WinResponse, status_code=201)
    def post_win(payload: WinCreate, user: CurrentUser = Depends(current_user)) -> WinResponse:
        try:
            row = create_win(user.id, payload.category, payload.description)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception:
            logger.error(f"Error saving little win for {user.id}", exc_info=True)
            raise HTTPException(status_code=500, detail="There was an error saving your little win.")
        return WinResponse.model_validate(row)

    @router.get("", response_model=WinsResponse)
    def list_wins(
        limit: int = Query(50, ge=1, le=500),
        user: CurrentUser = Depends(current_user),
    ) -> WinsResponse:
        try:
            rows = get_recent_wins(user.id, limit=limit)
        except Exception:
            logger.error(f"Error loading little wins for {user.id}", exc_info=True)
            return WinsResponse(wins=[])
        return WinsResponse(wins=[WinResponse.model_validate(r) for r in rows])

    return router
