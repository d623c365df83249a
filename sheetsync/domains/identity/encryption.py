"""
Token Encryption - Secure storage for OAuth tokens.

Uses Fernet symmetric encryption for storing Google access/refresh tokens
in the database.
"""

from __future__ import annotations

import logging

from cryptography.fernet import Fernet, InvalidToken

from sheetsync.config.errors import SettingsError

logger = logging.getLogger(__name__)

__all__ = ["TokenEncryption"]


class TokenEncryption:
    """Handles encryption/decryption of OAuth tokens."""

    def __init__(self, key: str | bytes | None = None, allow_temporary_key: bool = False) -> None:
        """
        Args:
            key: Fernet key (urlsafe base64, 32 bytes)
            allow_temporary_key: Generate a throwaway key when `key` is empty.
                Tokens written with it are unreadable after a restart, so this
                is for development only.

        Raises:
            SettingsError: no key and temporary keys are not allowed
        """
        if not key:
            if not allow_temporary_key:
                raise SettingsError(
                    "OAUTH_ENCRYPTION_KEY is not set. Generate one with "
                    "`python -c \"from cryptography.fernet import Fernet; "
                    "print(Fernet.generate_key().decode())\"`"
                )
            logger.warning("OAUTH_ENCRYPTION_KEY not set, using a temporary key for this process")
            key = Fernet.generate_key().decode()

        self.cipher = Fernet(key.encode() if isinstance(key, str) else key)

    def encrypt(self, token: str | None) -> str | None:
        """
        Encrypt a token.

        Args:
            token: Plain text token

        Returns:
            Encrypted token string (base64), or the input if empty
        """
        if not token:
            return token

        return self.cipher.encrypt(token.encode()).decode()

    def decrypt(self, encrypted_token: str | None) -> str | None:
        """
        Decrypt a token.

        Args:
            encrypted_token: Encrypted token string

        Returns:
            Plain text token
        """
        if not encrypted_token:
            return encrypted_token

        try:
            return self.cipher.decrypt(encrypted_token.encode()).decode()
        except InvalidToken:
            logger.error("Decryption failed: token was not encrypted with the current key")
            raise
