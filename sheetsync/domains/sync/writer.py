"""
Sheet Writer - Append a finished run's output to the robot's spreadsheet.

Flow:
    run record -> rows (headers + values) -> robot credentials
    -> Sheets append -> persist rotated tokens
"""

from __future__ import annotations

import logging
from typing import Any

from sheetsync.config.errors import (
    ConfigurationError,
    NotFoundError,
    RunNotReadyError,
    SheetSyncError,
    TransientAPIError,
)

from .contracts import RobotStore, RunStore, SheetsAPI
from .models import (
    RUN_SUCCESS,
    AttemptOutcome,
    AttemptResult,
    OAuthTokens,
    RobotRecord,
    RunRecord,
)

logger = logging.getLogger(__name__)

__all__ = ["SheetWriter", "build_rows", "DEFAULT_RANGE", "OUTPUT_KEY", "SCREENSHOT_HEADER"]

DEFAULT_RANGE = "Sheet1!A1"
OUTPUT_KEY = "item-0"
SCREENSHOT_HEADER = "Screenshot URL"


def build_rows(run: RunRecord) -> list[list[Any]]:
    """
    Turn run output into spreadsheet rows.

    Structured output wins: the first record's keys become the header row
    and every record is emitted in header order. With only binary output,
    a single "Screenshot URL" column holds the output's URL.

    Returns:
        Header row followed by value rows, or [] when there is no output.
    """
    if run.serializable_output:
        records = run.serializable_output.get(OUTPUT_KEY) or []
        if not records:
            return []
        headers = list(records[0].keys())
        return [headers] + [[record.get(key) for key in headers] for record in records]

    binary_url = run.binary_output.get(OUTPUT_KEY)
    if binary_url:
        return [[SCREENSHOT_HEADER], [binary_url]]
    return []


class SheetWriter:
    """
    Writes run output to Google Sheets using the robot's stored credentials.

    Example:
        >>> writer = SheetWriter(runs=repo, robots=repo, sheets=GoogleSheetsClient(...))
        >>> result = await writer.attempt("robot-1", "run-42")
        >>> result.ok
        True
    """

    def __init__(
        self,
        runs: RunStore,
        robots: RobotStore,
        sheets: SheetsAPI,
        target_range: str = DEFAULT_RANGE,
    ) -> None:
        self.runs = runs
        self.robots = robots
        self.sheets = sheets
        self.target_range = target_range

    async def attempt(self, robot_id: str, run_id: str) -> AttemptResult:
        """Run `sync_run` and tag the outcome instead of raising."""
        try:
            await self.sync_run(robot_id, run_id)
        except SheetSyncError as e:
            logger.error(
                "Failed to write data to Google Sheet for robot=%s run=%s: %s",
                robot_id,
                run_id,
                e.message,
            )
            return AttemptResult.from_error(e)
        except Exception:
            logger.exception("Unexpected error syncing robot=%s run=%s", robot_id, run_id)
            return AttemptResult(AttemptOutcome.TRANSIENT)
        return AttemptResult(AttemptOutcome.SYNCED)

    async def sync_run(self, robot_id: str, run_id: str) -> None:
        """
        Sync one run's output to the robot's configured spreadsheet.

        Raises:
            NotFoundError: run or robot missing
            RunNotReadyError: run has not finished successfully
            ConfigurationError: no email/sheet id or no stored tokens
            TransientAPIError: Sheets API or network failure
        """
        run = await self.runs.get_run(run_id)
        if run is None:
            raise NotFoundError(f"Run not found for runId: {run_id}", {"run_id": run_id})

        if run.status != RUN_SUCCESS:
            raise RunNotReadyError(
                f"Run {run_id} has status {run.status!r}, output not ready",
                {"run_id": run_id, "status": run.status},
            )

        rows = build_rows(run)

        robot = await self._load_robot(robot_id)
        integration = robot.google_sheets
        if not integration.is_configured:
            raise ConfigurationError(
                "Google Sheets integration not configured",
                {"robot_id": robot_id},
            )

        if not rows:
            logger.info("Run %s has no output to write, skipping", run_id)
            return

        logger.info(
            "Preparing to write data to Google Sheet for robot=%s spreadsheet=%s",
            robot_id,
            integration.sheet_id,
        )
        await self.write_rows(robot_id, integration.sheet_id, rows)
        logger.info("Data written to Google Sheet for robot=%s run=%s", robot_id, run_id)

    async def write_rows(
        self,
        robot_id: str,
        spreadsheet_id: str,
        rows: list[list[Any]],
    ) -> int:
        """
        Append rows with the robot's stored tokens.

        Returns:
            Number of rows the API reports as updated
        """
        robot = await self._load_robot(robot_id)
        integration = robot.google_sheets
        if not integration.has_tokens:
            raise ConfigurationError(
                "Google Sheets access not configured for user",
                {"robot_id": robot_id},
            )

        tokens = OAuthTokens(
            access_token=integration.access_token,
            refresh_token=integration.refresh_token,
        )

        try:
            result = await self.sheets.append_values(
                tokens, spreadsheet_id, self.target_range, rows
            )
        except TransientAPIError as e:
            rotated = e.details.get("rotated_tokens")
            if isinstance(rotated, OAuthTokens):
                await self._persist_tokens(robot_id, rotated)
            logger.error("Error writing data to Google Sheet %s: %s", spreadsheet_id, e.message)
            raise

        if result.rotated_tokens is not None:
            await self._persist_tokens(robot_id, result.rotated_tokens)

        logger.info(
            "Appended %d rows to Google Sheet: %s", result.updated_rows, spreadsheet_id
        )
        return result.updated_rows

    async def _load_robot(self, robot_id: str) -> RobotRecord:
        robot = await self.robots.get_robot(robot_id)
        if robot is None:
            raise NotFoundError(
                f"Robot not found for robotId: {robot_id}", {"robot_id": robot_id}
            )
        return robot

    async def _persist_tokens(self, robot_id: str, tokens: OAuthTokens) -> None:
        """Merge refreshed tokens into the stored integration record."""
        fields = tokens.model_dump(exclude_none=True)
        if not fields:
            return
        try:
            await self.robots.update_google_sheets(robot_id, fields)
        except Exception:
            # Rows are already appended at this point.
            logger.exception("Could not persist refreshed Google tokens for robot=%s", robot_id)
            return
        logger.info("Persisted refreshed Google tokens for robot=%s (%s)", robot_id, ", ".join(fields))
