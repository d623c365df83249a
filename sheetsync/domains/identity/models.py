"""
Identity Models - Users and session claims.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

MIN_PASSWORD_LENGTH = 6


class User(BaseModel):
    """Stored user. `password_hash` never leaves the service."""

    id: int
    email: str
    password_hash: str = Field(default="", exclude=True)
    api_key: str | None = None
    google_sheets_email: str | None = None
    google_access_token: str | None = Field(default=None, exclude=True)
    google_refresh_token: str | None = Field(default=None, exclude=True)
    created_at: datetime | None = None


class Credentials(BaseModel):
    """Email/password pair submitted to register or login."""

    email: str | None = None
    password: str | None = None


class SessionClaims(BaseModel):
    """Decoded JWT session payload."""

    user_id: int
    expires_at: datetime
