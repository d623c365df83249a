"""
API Routes.
"""

from . import auth, health, sync

__all__ = ["health", "auth", "sync"]
