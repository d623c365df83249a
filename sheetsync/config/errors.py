"""
Error Taxonomy - Consistent error codes across the application.

Usage:
    from sheetsync.config.errors import ErrorCode, SheetSyncError

    raise SheetSyncError(ErrorCode.SHEETS_API_FAILED, "append failed")
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for machine-readable error responses."""

    # Sync errors
    SYNC_NOT_FOUND = "SYNC_NOT_FOUND"
    SYNC_NOT_CONFIGURED = "SYNC_NOT_CONFIGURED"
    SYNC_RUN_NOT_READY = "SYNC_RUN_NOT_READY"
    SHEETS_API_FAILED = "SHEETS_API_FAILED"

    # Auth errors
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_USER_EXISTS = "AUTH_USER_EXISTS"
    AUTH_OAUTH_FAILED = "AUTH_OAUTH_FAILED"

    # Storage errors
    STORAGE_CONNECTION_FAILED = "STORAGE_CONNECTION_FAILED"
    STORAGE_WRITE_FAILED = "STORAGE_WRITE_FAILED"

    # Security errors
    SECURITY_UNAUTHORIZED = "SECURITY_UNAUTHORIZED"
    SECURITY_FORBIDDEN = "SECURITY_FORBIDDEN"
    SECURITY_RATE_LIMITED = "SECURITY_RATE_LIMITED"

    # Configuration errors
    CONFIG_INVALID = "CONFIG_INVALID"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"


class SheetSyncError(Exception):
    """Base exception with error code support."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


# Domain-specific exceptions for cleaner imports
class NotFoundError(SheetSyncError):
    """A run or robot record could not be located."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.SYNC_NOT_FOUND, message, details)


class ConfigurationError(SheetSyncError):
    """Google Sheets integration is not set up for a robot."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.SYNC_NOT_CONFIGURED, message, details)


class RunNotReadyError(SheetSyncError):
    """The run has not finished successfully, so there is no output yet."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.SYNC_RUN_NOT_READY, message, details)


class TransientAPIError(SheetSyncError):
    """Network or Google API failure; worth retrying."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.SHEETS_API_FAILED, message, details)


class AuthError(SheetSyncError):
    """Login, registration or OAuth errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: ErrorCode = ErrorCode.AUTH_INVALID_CREDENTIALS,
    ) -> None:
        super().__init__(code, message, details)


class StorageError(SheetSyncError):
    """Storage/database errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.STORAGE_CONNECTION_FAILED, message, details)


class SettingsError(SheetSyncError):
    """Required application configuration is missing or invalid."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.CONFIG_INVALID, message, details)
