"""
SQLite Adapter - Async persistence for users, robots and runs.
"""

from .repository import SQLiteRepository

__all__ = ["SQLiteRepository"]
