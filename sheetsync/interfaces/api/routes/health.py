"""
Health Routes - System health and status endpoints.
"""

from typing import Any

from fastapi import APIRouter

from sheetsync import __version__

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "sheetsync"}


@router.get("/api")
async def api_info() -> dict[str, Any]:
    """API info endpoint."""
    return {
        "name": "SheetSync API",
        "version": __version__,
        "description": "Append workflow run output to Google Sheets",
        "docs": "/docs",
    }
