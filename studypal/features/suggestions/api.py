"""
Per-feature API for check-in suggestions. Mounted at /api/suggestions/.
Stateless template lookup; no session required. Errors use {"error": "..."} bodies.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .selector import SuggestionInputError, build_response, parse_ratings

logger = logging.getLogger(__name__)


class SuggestionResponse(BaseModel):
    id: str
    label: str
    why: str
    est_min: int
    type: str


class NotNowResponse(BaseModel):
    message: str
    alternative: str


class ContextResponse(BaseModel):
    greeting: str
    encouragement: str


class SuggestionsResponse(BaseModel):
    suggestions: List[SuggestionResponse]
    not_now: NotNowResponse
    context: ContextResponse


def get_router(studypal_app) -> Optional[APIRouter]:
    """Return router for this feature; mounted with prefix /api/suggestions."""
    router = APIRouter(tags=["Suggestions"])

    @router.post(
        "",
        response_model=SuggestionsResponse,
        responses={400: {"description": "Missing or out-of-range ratings"}},
    )
    async def post_suggestions(request: Request):
        """Body: {mood, energy, focus, notes?} with ratings 1-5."""
        try:
            payload: Dict[str, Any] = await request.json()
        except ValueError:
            return JSONResponse(status_code=400, content={"error": "Missing required check-in data"})

        try:
            ratings = parse_ratings(payload)
        except SuggestionInputError as e:
            return JSONResponse(status_code=400, content={"error": str(e)})

        try:
            return build_response(ratings["mood"], ratings["energy"], ratings["focus"])
        except Exception:
            logger.error("Error generating suggestions", exc_info=True)
            return JSONResponse(status_code=500, content={"error": "Unable to generate suggestions right now"})

    return router
