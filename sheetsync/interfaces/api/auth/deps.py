"""
Authentication Dependencies - Resolve the signed-in user.

Accepted credentials, in order:
1. `token` cookie set by /auth/login, /auth/register or the Google callback
2. `Authorization: Bearer <jwt>` header
3. `x-api-key` header issued by /auth/generate-api-key
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Cookie, Depends, Header, HTTPException

from sheetsync.adapters.sqlite import SQLiteRepository
from sheetsync.config import AuthError, Settings, get_settings
from sheetsync.domains.identity import User, decode_session_token
from sheetsync.interfaces.api.deps import get_repository

logger = logging.getLogger(__name__)

SESSION_COOKIE = "token"


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authentication scheme")
    return parts[1]


async def get_current_user(
    token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None),
    repo: SQLiteRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Return the signed-in user.

    Raises:
        HTTPException 401 if no valid credential is present
        HTTPException 404 if the session refers to a deleted user
    """
    session_token = token or _bearer_token(authorization)

    if session_token:
        try:
            claims = decode_session_token(
                session_token, settings.jwt_secret, settings.jwt_algorithm
            )
        except AuthError as e:
            logger.info("Rejected session token: %s", e.message)
            raise HTTPException(status_code=401, detail="Unauthorized")

        user = await repo.get_user(claims.user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    if x_api_key:
        user = await repo.get_user_by_api_key(x_api_key)
        if user is None:
            raise HTTPException(status_code=401, detail="Invalid API key")
        return user

    raise HTTPException(status_code=401, detail="Unauthorized")

