"""
Google Adapter - Sheets, Drive and OAuth integration.
"""

from .oauth import GoogleOAuth
from .sheets import SCOPES, GoogleSheetsClient

__all__ = ["GoogleSheetsClient", "GoogleOAuth", "SCOPES"]
