"""
Authentication - Session cookies, bearer JWTs and API keys.

Flow:
    /auth/login or /auth/google/callback -> JWT in httpOnly `token` cookie
    Later requests: cookie, `Authorization: Bearer`, or `x-api-key`
"""

from .deps import SESSION_COOKIE, get_current_user

__all__ = [
    "get_current_user",
    "SESSION_COOKIE",
]
