"""
Per-feature API for accounts and sessions. Mounted at /api/auth/.
/session never fails: a missing or expired token reports logged_in=False.
"""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from studypal.core import auth
from studypal.core.auth import AuthError, CurrentUser, current_user, optional_user
from studypal.features.profile.api import ProfileResponse, to_profile_response

logger = logging.getLogger(__name__)


class SignUpRequest(BaseModel):
    email: str
    password: str
    full_name: Optional[str] = None
    school: Optional[str] = None
    academic_year: Optional[Literal["freshman", "sophomore", "junior", "senior", "graduate", "other"]] = None


class SignInRequest(BaseModel):
    email: str
    password: str


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str


class EmailChangeRequest(BaseModel):
    email: str


class AuthResponse(BaseModel):
    token: str
    user: ProfileResponse
    needs_profile_setup: bool


class SessionResponse(BaseModel):
    logged_in: bool
    user: Optional[ProfileResponse] = None
    needs_profile_setup: bool = False


def _to_http(e: AuthError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


def get_router(studypal_app) -> Optional[APIRouter]:
    """Return router for this feature; mounted with prefix /api/auth."""
    router = APIRouter(tags=["Auth"])
    session_days = int(studypal_app.config.get("auth", "session_days", auth.DEFAULT_SESSION_DAYS))

    @router.post("/signup", response_model=AuthResponse, status_code=201)
    def signup(payload: SignUpRequest) -> AuthResponse:
        try:
            user, token = auth.sign_up(
                payload.email,
                payload.password,
                full_name=payload.full_name,
                school=payload.school,
                academic_year=payload.academic_year,
                session_days=session_days,
            )
        except AuthError as e:
            raise _to_http(e)
        profile = to_profile_response(user)
        return AuthResponse(token=token, user=profile, needs_profile_setup=profile.needs_profile_setup)

    @router.post("/signin", response_model=AuthResponse)
    def signin(payload: SignInRequest) -> AuthResponse:
        try:
            user, token = auth.sign_in(payload.email, payload.password, session_days=session_days)
        except AuthError as e:
            raise _to_http(e)
        profile = to_profile_response(user)
        return AuthResponse(token=token, user=profile, needs_profile_setup=profile.needs_profile_setup)

    @router.post("/signout")
    def signout(user: CurrentUser = Depends(current_user)):
        auth.sign_out(user.token)
        return {"success": True, "message": "Signed out."}

    @router.get("/session", response_model=SessionResponse)
    def session(user: Optional[CurrentUser] = Depends(optional_user)) -> SessionResponse:
        if user is None:
            return SessionResponse(logged_in=False)
        return SessionResponse(
            logged_in=True,
            user=to_profile_response(user.user),
            needs_profile_setup=user.needs_profile_setup,
        )

    @router.post("/password")
    def password(payload: PasswordChangeRequest, user: CurrentUser = Depends(current_user)):
        try:
            auth.change_password(user.id, payload.current_password, payload.new_password)
        except AuthError as e:
            raise _to_http(e)
        return {"success": True, "message": "Password updated."}

    @router.post("/email", response_model=ProfileResponse)
    def email(payload: EmailChangeRequest, user: CurrentUser = Depends(current_user)) -> ProfileResponse:
        try:
            updated = auth.change_email(user.id, payload.email)
        except AuthError as e:
            raise _to_http(e)
        return to_profile_response(updated)

    return router
