"""
Sync Models - Data types for the Google Sheets sync domain.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from sheetsync.config.errors import (
    ConfigurationError,
    NotFoundError,
    RunNotReadyError,
    SheetSyncError,
)

MAX_RETRIES = 5
RUN_SUCCESS = "success"


class TaskStatus(str, Enum):
    """Lifecycle states of an update task."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class UpdateTask(BaseModel):
    """One unit of work: sync this run's output to this robot's spreadsheet."""

    robot_id: str
    run_id: str
    status: TaskStatus = TaskStatus.PENDING
    retries: int = Field(default=0, ge=0)


class GoogleSheetsIntegration(BaseModel):
    """Stored credentials and target for a robot's spreadsheet."""

    email: str | None = None
    sheet_id: str | None = None
    sheet_name: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.email and self.sheet_id)

    @property
    def has_tokens(self) -> bool:
        return bool(self.access_token and self.refresh_token)


class RobotRecord(BaseModel):
    """Robot configuration as seen by the sync domain."""

    robot_id: str
    name: str = ""
    user_id: int | None = None
    integrations: dict[str, Any] = Field(default_factory=dict)

    @property
    def google_sheets(self) -> GoogleSheetsIntegration:
        return GoogleSheetsIntegration(**(self.integrations.get("google_sheets") or {}))


class RunRecord(BaseModel):
    """Completed (or in-flight) workflow execution."""

    run_id: str
    robot_id: str
    status: str
    serializable_output: dict[str, Any] = Field(default_factory=dict)
    binary_output: dict[str, str] = Field(default_factory=dict)


class OAuthTokens(BaseModel):
    """Access/refresh token pair for the Google API."""

    access_token: str | None = None
    refresh_token: str | None = None


class AppendResult(BaseModel):
    """Outcome of an append call against the spreadsheet API."""

    updated_rows: int = 0
    rotated_tokens: OAuthTokens | None = None


class AttemptOutcome(str, Enum):
    """Classification of a single sync attempt."""

    SYNCED = "synced"
    NOT_FOUND = "not_found"
    NOT_CONFIGURED = "not_configured"
    NOT_READY = "not_ready"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class AttemptResult:
    """Tagged result of `SheetWriter.attempt`."""

    outcome: AttemptOutcome
    error: SheetSyncError | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is AttemptOutcome.SYNCED

    @property
    def retryable(self) -> bool:
        return self.outcome in (AttemptOutcome.TRANSIENT, AttemptOutcome.NOT_READY)

    @classmethod
    def from_error(cls, error: SheetSyncError) -> AttemptResult:
        if isinstance(error, NotFoundError):
            return cls(AttemptOutcome.NOT_FOUND, error)
        if isinstance(error, ConfigurationError):
            return cls(AttemptOutcome.NOT_CONFIGURED, error)
        if isinstance(error, RunNotReadyError):
            return cls(AttemptOutcome.NOT_READY, error)
        return cls(AttemptOutcome.TRANSIENT, error)
