"""
Adapters - External service integrations.

All external API calls are wrapped here to isolate domains from third-party changes.
"""

from .google import GoogleOAuth, GoogleSheetsClient
from .sqlite import SQLiteRepository

__all__ = [
    "GoogleSheetsClient",
    "GoogleOAuth",
    "SQLiteRepository",
]
