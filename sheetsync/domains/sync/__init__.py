"""
Sync Domain - Push workflow run output into Google Sheets.

This domain handles:
- Turning run output into spreadsheet rows
- Appending rows with the robot's stored Google credentials
- Tracking failed writes and retrying them a bounded number of times
"""

from .contracts import RobotStore, RunStore, SheetsAPI
from .models import (
    MAX_RETRIES,
    AppendResult,
    AttemptOutcome,
    AttemptResult,
    GoogleSheetsIntegration,
    OAuthTokens,
    RobotRecord,
    RunRecord,
    TaskStatus,
    UpdateTask,
)
from .processor import UpdateProcessor
from .registry import TaskRegistry
from .service import SyncService
from .writer import SheetWriter, build_rows

__all__ = [
    # Contracts
    "RunStore",
    "RobotStore",
    "SheetsAPI",
    # Models
    "MAX_RETRIES",
    "TaskStatus",
    "UpdateTask",
    "GoogleSheetsIntegration",
    "RobotRecord",
    "RunRecord",
    "OAuthTokens",
    "AppendResult",
    "AttemptOutcome",
    "AttemptResult",
    # Implementations
    "TaskRegistry",
    "SheetWriter",
    "UpdateProcessor",
    "SyncService",
    "build_rows",
]
