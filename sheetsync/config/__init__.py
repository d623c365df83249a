"""
Configuration - Application settings and error taxonomy.
"""

from .errors import (
    AuthError,
    ConfigurationError,
    ErrorCode,
    NotFoundError,
    RunNotReadyError,
    SheetSyncError,
    SettingsError,
    StorageError,
    TransientAPIError,
)
from .settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Errors
    "ErrorCode",
    "SheetSyncError",
    "NotFoundError",
    "ConfigurationError",
    "RunNotReadyError",
    "TransientAPIError",
    "AuthError",
    "StorageError",
    "SettingsError",
]
