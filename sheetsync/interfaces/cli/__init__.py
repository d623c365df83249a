"""
CLI Interface - Command-line tools for SheetSync.

Provides commands for:
- Database setup
- Previewing and syncing run output
- Running the API server
"""

from .main import app, main

__all__ = ["app", "main"]
