"""
Session tokens (JWT) and API keys.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

import jwt

from sheetsync.config.errors import AuthError, ErrorCode

from .models import SessionClaims

__all__ = ["issue_session_token", "decode_session_token", "generate_api_key"]

API_KEY_LENGTH = 36


def issue_session_token(
    user_id: int,
    secret: str,
    expiry_hours: int = 12,
    algorithm: str = "HS256",
) -> str:
    """Sign a session JWT carrying the user id."""
    now = datetime.now(timezone.utc)
    payload = {
        "id": user_id,
        "iat": now,
        "exp": now + timedelta(hours=expiry_hours),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_session_token(token: str, secret: str, algorithm: str = "HS256") -> SessionClaims:
    """
    Validate a session JWT.

    Raises:
        AuthError: expired or invalid token
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError as e:
        raise AuthError("Session expired", code=ErrorCode.SECURITY_UNAUTHORIZED) from e
    except jwt.InvalidTokenError as e:
        raise AuthError(f"Invalid token: {e}", code=ErrorCode.SECURITY_UNAUTHORIZED) from e

    user_id = payload.get("id")
    if user_id is None:
        raise AuthError("Token does not identify a user", code=ErrorCode.SECURITY_UNAUTHORIZED)

    return SessionClaims(
        user_id=int(user_id),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


def generate_api_key() -> str:
    """Random URL-safe API key."""
    return secrets.token_urlsafe(27)[:API_KEY_LENGTH]
