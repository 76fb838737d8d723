"""Base models and shared types."""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime.

    Use this instead of datetime.utcnow() so every datetime stored or
    compared by the application is timezone-aware.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware UTC.

    MongoDB returns naive datetimes even if stored with timezone info.
    This function makes them timezone-aware for safe comparisons.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class UserRole(str, Enum):
    """User permission roles for RBAC."""
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


# JSON payload containing access token
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# Contents of JWT token
class TokenPayload(BaseModel):
    sub: Optional[str] = None
