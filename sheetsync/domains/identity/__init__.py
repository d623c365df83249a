"""
Identity Domain - Users, passwords, sessions and API keys.
"""

from .encryption import TokenEncryption
from .models import MIN_PASSWORD_LENGTH, Credentials, SessionClaims, User
from .passwords import hash_password, needs_rehash, verify_password
from .tokens import decode_session_token, generate_api_key, issue_session_token

__all__ = [
    "User",
    "Credentials",
    "SessionClaims",
    "MIN_PASSWORD_LENGTH",
    "TokenEncryption",
    "hash_password",
    "verify_password",
    "needs_rehash",
    "issue_session_token",
    "decode_session_token",
    "generate_api_key",
]
