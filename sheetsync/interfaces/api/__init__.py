"""
API Interface - FastAPI REST API for accounts, Google sign-in and sheet sync.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
