"""
API Dependencies - Dependency injection for FastAPI routes.

Provides singleton instances of the repository, Google clients and the
sync service.
"""

from __future__ import annotations

from functools import lru_cache

from sheetsync.adapters.google import GoogleOAuth, GoogleSheetsClient
from sheetsync.adapters.sqlite import SQLiteRepository
from sheetsync.config import get_settings
from sheetsync.domains.identity import TokenEncryption
from sheetsync.domains.sync import SheetWriter, SyncService, TaskRegistry, UpdateProcessor


@lru_cache
def get_encryption() -> TokenEncryption:
    """Get token cipher singleton. Without a configured key only debug mode starts."""
    settings = get_settings()
    return TokenEncryption(
        settings.oauth_encryption_key, allow_temporary_key=settings.api_debug
    )


@lru_cache
def get_repository() -> SQLiteRepository:
    """Get SQLite repository singleton."""
    settings = get_settings()
    return SQLiteRepository(settings.db_path, encryption=get_encryption())


@lru_cache
def get_sheets_client() -> GoogleSheetsClient:
    settings = get_settings()
    return GoogleSheetsClient(settings.google_client_id, settings.google_client_secret)


@lru_cache
def get_oauth() -> GoogleOAuth:
    settings = get_settings()
    return GoogleOAuth(
        settings.google_client_id,
        settings.google_client_secret,
        settings.google_redirect_uri,
    )


@lru_cache
def get_sync_service() -> SyncService:
    """
    Get the sync service singleton.

    The service owns the task registry for the lifetime of the process.
    """
    settings = get_settings()
    repo = get_repository()
    registry = TaskRegistry()
    writer = SheetWriter(
        runs=repo,
        robots=repo,
        sheets=get_sheets_client(),
        target_range=settings.sheets_target_range,
    )
    processor = UpdateProcessor(
        registry,
        writer,
        interval=settings.sheets_retry_interval_seconds,
        max_retries=settings.sheets_max_retries,
        retry_all_failures=settings.sheets_retry_all_failures,
    )
    return SyncService(registry, writer, runs=repo, processor=processor)


async def init_services() -> None:
    """
    Initialize services on startup.

    This should be called from the FastAPI lifespan handler.
    """
    repo = get_repository()
    await repo.initialize()


async def cleanup_services() -> None:
    """Stop background work and close storage on shutdown."""
    await get_sync_service().shutdown()
    repo = get_repository()
    await repo.close()
