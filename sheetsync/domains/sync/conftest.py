"""Shared fixtures for sync domain tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from .contracts import SheetsAPI
from .models import AppendResult, RobotRecord, RunRecord
from .registry import TaskRegistry
from .writer import SheetWriter


class InMemoryStore:
    """Run and robot store backed by dicts."""

    def __init__(self) -> None:
        self.runs: dict[str, RunRecord] = {}
        self.robots: dict[str, RobotRecord] = {}

    async def get_run(self, run_id: str) -> RunRecord | None:
        return self.runs.get(run_id)

    async def get_robot(self, robot_id: str) -> RobotRecord | None:
        return self.robots.get(robot_id)

    async def update_google_sheets(self, robot_id: str, fields: dict[str, Any]) -> None:
        robot = self.robots[robot_id]
        current = dict(robot.integrations.get("google_sheets") or {})
        current.update(fields)
        robot.integrations = {**robot.integrations, "google_sheets": current}


def make_robot(robot_id: str = "robot-1", **overrides: Any) -> RobotRecord:
    google_sheets = {
        "email": "owner@example.com",
        "sheet_id": "sheet-123",
        "sheet_name": "Leads",
        "access_token": "access-1",
        "refresh_token": "refresh-1",
    }
    google_sheets.update(overrides)
    return RobotRecord(
        robot_id=robot_id,
        name="Lead scraper",
        integrations={"google_sheets": google_sheets, "airtable": {"base": "keep-me"}},
    )


def make_run(run_id: str = "run-1", robot_id: str = "robot-1", **overrides: Any) -> RunRecord:
    fields: dict[str, Any] = {
        "run_id": run_id,
        "robot_id": robot_id,
        "status": "success",
        "serializable_output": {"item-0": [{"a": 1, "b": 2}, {"a": 3, "b": 4}]},
    }
    fields.update(overrides)
    return RunRecord(**fields)


@pytest.fixture
def store() -> InMemoryStore:
    store = InMemoryStore()
    store.robots["robot-1"] = make_robot()
    store.runs["run-1"] = make_run()
    return store


@pytest.fixture
def sheets() -> AsyncMock:
    """Sheets API that always succeeds."""
    mock = AsyncMock(spec=SheetsAPI)
    mock.append_values.return_value = AppendResult(updated_rows=3)
    return mock


@pytest.fixture
def writer(store: InMemoryStore, sheets: AsyncMock) -> SheetWriter:
    return SheetWriter(runs=store, robots=store, sheets=sheets)


@pytest.fixture
def registry() -> TaskRegistry:
    return TaskRegistry()
