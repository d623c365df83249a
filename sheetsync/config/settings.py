"""
Settings - Application configuration using Pydantic Settings.

Loads from environment variables and .env files.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Paths
    data_dir: Path = Path("data")
    db_path: Path = Path("data/sheetsync.db")

    # Sessions
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 12
    cookie_secure: bool = False

    # Fernet key for Google tokens at rest. A temporary key is generated if unset.
    oauth_encryption_key: str | None = None

    # Google OAuth client
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://localhost:8080/auth/google/callback"

    # Sheets sync
    sheets_target_range: str = "Sheet1!A1"
    sheets_retry_interval_seconds: float = 5.0
    sheets_max_retries: int = 5
    sheets_retry_all_failures: bool = True

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    api_debug: bool = False
    log_level: str = "INFO"
    rate_limit_per_minute: int = 60
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8080",
    ]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
