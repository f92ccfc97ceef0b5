"""
Service layer: read and update the signed-in user's profile columns on User.
"""
from typing import Any, Dict, Optional

from studypal.core.db import session_scope
from studypal.core.models import ACADEMIC_YEARS, User, utc_now

PROFILE_FIELDS = ("full_name", "display_name", "school", "academic_year")


def get_profile(user_id: str) -> Optional[User]:
    with session_scope() as session:
        return session.get(User, user_id)


def update_profile(user_id: str, updates: Dict[str, Any]) -> Optional[User]:
    """Partial update of profile fields; blank strings clear a field. Stamps updated_at."""
    unknown = set(updates) - set(PROFILE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
    cleaned = {}
    for key, value in updates.items():
        if isinstance(value, str):
            value = value.strip() or None
        cleaned[key] = value
    year = cleaned.get("academic_year")
    if year is not None and year not in ACADEMIC_YEARS:
        raise ValueError(f"academic_year must be one of: {', '.join(ACADEMIC_YEARS)}")

    with session_scope() as session:
        user = session.get(User, user_id)
        if user is None:
            return None
        for key, value in cleaned.items():
            setattr(user, key, value)
        user.updated_at = utc_now()
        return user
