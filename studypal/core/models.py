"""
Core DB models: users (identity + profile) and login sessions.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey

from studypal.core.db import Base

ACADEMIC_YEARS = ("freshman", "sophomore", "junior", "senior", "graduate", "other")


def utc_now() -> datetime:
    """UTC now as naive datetime for DateTime(timezone=False) columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


def to_naive_utc(dt: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed to be UTC already."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


class User(Base):
    """A student account. Profile fields stay null until profile setup."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    display_name = Column(String(255), nullable=True)
    school = Column(String(255), nullable=True)
    academic_year = Column(String(32), nullable=True)  # one of ACADEMIC_YEARS
    consent_at = Column(DateTime(timezone=False), default=utc_now, nullable=False)
    created_at = Column(DateTime(timezone=False), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=False), default=utc_now, nullable=False)


class UserSession(Base):
    """Bearer token issued at sign-in; removed at sign-out, ignored once expired."""
    __tablename__ = "user_sessions"

    token = Column(String(128), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=False), default=utc_now, nullable=False)
    expires_at = Column(DateTime(timezone=False), nullable=False)
