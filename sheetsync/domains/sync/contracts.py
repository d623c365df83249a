"""
Sync Contracts - Interfaces consumed by the sync domain.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .models import AppendResult, OAuthTokens, RobotRecord, RunRecord


@runtime_checkable
class RunStore(Protocol):
    """Contract for looking up workflow runs."""

    async def get_run(self, run_id: str) -> RunRecord | None:
        """Get a run by its identifier, or None."""
        ...


@runtime_checkable
class RobotStore(Protocol):
    """Contract for robot configuration storage."""

    async def get_robot(self, robot_id: str) -> RobotRecord | None:
        """Get a robot by its identifier, or None."""
        ...

    async def update_google_sheets(self, robot_id: str, fields: dict[str, Any]) -> None:
        """
        Merge fields into the robot's google_sheets integration.

        Other integration entries and unspecified google_sheets fields
        must be preserved.
        """
        ...


@runtime_checkable
class SheetsAPI(Protocol):
    """Contract for the external spreadsheet API."""

    async def append_values(
        self,
        tokens: OAuthTokens,
        spreadsheet_id: str,
        target_range: str,
        values: list[list[Any]],
    ) -> AppendResult:
        """
        Append rows to a spreadsheet.

        Returns:
            AppendResult, with `rotated_tokens` set when the client
            refreshed credentials during the call.
        """
        ...
