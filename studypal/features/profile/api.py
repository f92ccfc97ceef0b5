"""
Per-feature API for the user profile. Mounted at /api/profile/.
"""
import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict

from studypal.core.auth import CurrentUser, current_user, needs_profile_setup
from .service import get_profile, update_profile

logger = logging.getLogger(__name__)

AcademicYear = Literal["freshman", "sophomore", "junior", "senior", "graduate", "other"]


class ProfileResponse(BaseModel):
    """Pydantic view of the profile columns of User."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: Optional[str] = None
    display_name: Optional[str] = None
    school: Optional[str] = None
    academic_year: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    needs_profile_setup: bool = True


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    display_name: Optional[str] = None
    school: Optional[str] = None
    academic_year: Optional[AcademicYear] = None


def to_profile_response(user) -> ProfileResponse:
    out = ProfileResponse.model_validate(user)
    out.needs_profile_setup = needs_profile_setup(user)
    return out


def get_router(studypal_app) -> Optional[APIRouter]:
    """Return router for this feature; mounted with prefix /api/profile."""
    router = APIRouter(tags=["Profile"])

    @router.get("", response_model=ProfileResponse)
    def read_profile(user: CurrentUser = Depends(current_user)) -> ProfileResponse:
        try:
            row = get_profile(user.id)
        except Exception:
            logger.error(f"Error loading profile for {user.id}", exc_info=True)
            row = None
        return to_profile_response(row or user.user)

    @router.put("", response_model=ProfileResponse)
    def write_profile(payload: ProfileUpdate, user: CurrentUser = Depends(current_user)) -> ProfileResponse:
        """Profile setup and settings both land here; only fields present in the body change."""
        try:
            row = update_profile(user.id, payload.model_dump(exclude_unset=True))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception:
            logger.error(f"Error saving profile for {user.id}", exc_info=True)
            raise HTTPException(
                status_code=500, detail="There was an error saving your profile. Please try again."
            )
        if row is None:
            raise HTTPException(status_code=404, detail="Profile not found")
        return to_profile_response(row)

    return router
