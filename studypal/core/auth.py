"""
Email/password accounts and bearer-token sessions.

The rest of the app only sees CurrentUser: the signed-in User plus the
needs_profile_setup flag. Routers get it through the current_user dependency.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Tuple

from fastapi import Header, HTTPException, status
from sqlalchemy import delete, select
from werkzeug.security import check_password_hash, generate_password_hash

from studypal.core.db import session_scope
from studypal.core.models import ACADEMIC_YEARS, User, UserSession, utc_now

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
DEFAULT_SESSION_DAYS = 30


class AuthError(Exception):
    """Sign-up / sign-in failure with a message safe to show the user."""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class CurrentUser:
    user: User
    token: Optional[str] = None

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def needs_profile_setup(self) -> bool:
        return needs_profile_setup(self.user)


def needs_profile_setup(user: User) -> bool:
    """True until full name, school and academic year are all filled in."""
    return not (user.full_name and user.school and user.academic_year)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _check_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")


def _open_session(session, user_id: str, session_days: int) -> str:
    now = utc_now()
    token = secrets.token_urlsafe(32)
    session.add(
        UserSession(
            token=token,
            user_id=user_id,
            created_at=now,
            expires_at=now + timedelta(days=session_days),
        )
    )
    return token


def sign_up(
    email: str,
    password: str,
    full_name: Optional[str] = None,
    school: Optional[str] = None,
    academic_year: Optional[str] = None,
    session_days: int = DEFAULT_SESSION_DAYS,
) -> Tuple[User, str]:
    """Create an account and open a session. Returns (user, token)."""
    email = _normalize_email(email)
    if not email or "@" not in email:
        raise AuthError("A valid email address is required.")
    _check_password(password)
    if academic_year is not None and academic_year not in ACADEMIC_YEARS:
        raise AuthError(f"academic_year must be one of: {', '.join(ACADEMIC_YEARS)}")

    with session_scope() as session:
        existing = session.execute(select(User).where(User.email == email)).scalars().first()
        if existing:
            raise AuthError("An account with this email already exists.", status.HTTP_409_CONFLICT)
        now = utc_now()
        user = User(
            email=email,
            password_hash=hash_password(password),
            full_name=full_name or None,
            school=school or None,
            academic_year=academic_year,
            consent_at=now,
            created_at=now,
            updated_at=now,
        )
        session.add(user)
        session.flush()
        token = _open_session(session, user.id, session_days)
    logger.info(f"New account created: {user.id}")
    return user, token


def sign_in(email: str, password: str, session_days: int = DEFAULT_SESSION_DAYS) -> Tuple[User, str]:
    """Check credentials and open a new session. Returns (user, token)."""
    email = _normalize_email(email)
    with session_scope() as session:
        user = session.execute(select(User).where(User.email == email)).scalars().first()
        if user is None or not verify_password(password or "", user.password_hash):
            raise AuthError("Invalid email or password.", status.HTTP_401_UNAUTHORIZED)
        token = _open_session(session, user.id, session_days)
    logger.info(f"User signed in: {user.id}")
    return user, token


def sign_out(token: str) -> bool:
    """Delete the session. Returns False if the token was unknown."""
    with session_scope() as session:
        result = session.execute(delete(UserSession).where(UserSession.token == token))
        return result.rowcount > 0


def resolve_session(token: Optional[str]) -> Optional[User]:
    """Return the user for a live session token, or None."""
    if not token:
        return None
    with session_scope() as session:
        row = session.get(UserSession, token)
        if row is None:
            return None
        if row.expires_at <= utc_now():
            logger.debug(f"Session expired for user {row.user_id}")
            session.delete(row)
            return None
        return session.get(User, row.user_id)


def change_password(user_id: str, current_password: str, new_password: str) -> None:
    _check_password(new_password)
    with session_scope() as session:
        user = session.get(User, user_id)
        if user is None or not verify_password(current_password or "", user.password_hash):
            raise AuthError("Current password is incorrect.", status.HTTP_401_UNAUTHORIZED)
        user.password_hash = hash_password(new_password)
        user.updated_at = utc_now()


def change_email(user_id: str, new_email: str) -> User:
    new_email = _normalize_email(new_email)
    if not new_email or "@" not in new_email:
        raise AuthError("A valid email address is required.")
    with session_scope() as session:
        taken = session.execute(
            select(User).where(User.email == new_email, User.id != user_id)
        ).scalars().first()
        if taken:
            raise AuthError("An account with this email already exists.", status.HTTP_409_CONFLICT)
        user = session.get(User, user_id)
        if user is None:
            raise AuthError("Account not found.", status.HTTP_404_NOT_FOUND)
        user.email = new_email
        user.updated_at = utc_now()
        return user


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def current_user(authorization: Optional[str] = Header(default=None)) -> CurrentUser:
    """FastAPI dependency: the signed-in user, or 401."""
    token = bearer_token(authorization)
    user = resolve_session(token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentUser(user=user, token=token)


def optional_user(authorization: Optional[str] = Header(default=None)) -> Optional[CurrentUser]:
    """FastAPI dependency: the signed-in user, or None when there is no live session."""
    token = bearer_token(authorization)
    user = resolve_session(token)
    if user is None:
        return None
    return CurrentUser(user=user, token=token)
