"""
Tests for row building and the sheet writer.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

from sheetsync.config.errors import TransientAPIError

from .conftest import InMemoryStore, make_robot, make_run
from .models import AppendResult, AttemptOutcome, OAuthTokens, RunRecord
from .writer import DEFAULT_RANGE, SheetWriter, build_rows


# --- build_rows Tests ---


def test_build_rows_structured_output() -> None:
    """Test headers come from the first record and values follow."""
    run = make_run()
    assert build_rows(run) == [["a", "b"], [1, 2], [3, 4]]


def test_build_rows_follows_header_order() -> None:
    """Test later records are emitted in the first record's key order."""
    run = make_run(serializable_output={"item-0": [{"a": 1, "b": 2}, {"b": 4, "a": 3}]})
    assert build_rows(run) == [["a", "b"], [1, 2], [3, 4]]


def test_build_rows_binary_output() -> None:
    """Test screenshot-only runs produce a single URL column."""
    run = make_run(serializable_output={}, binary_output={"item-0": "https://x/y.png"})
    assert build_rows(run) == [["Screenshot URL"], ["https://x/y.png"]]


def test_build_rows_prefers_structured_output() -> None:
    """Test structured output wins when both kinds exist."""
    run = make_run(binary_output={"item-0": "https://x/y.png"})
    assert build_rows(run)[0] == ["a", "b"]


def test_build_rows_without_output() -> None:
    """Test a run with no output yields no rows."""
    run = RunRecord(run_id="run-9", robot_id="robot-1", status="success")
    assert build_rows(run) == []


# --- SheetWriter Tests ---


async def test_sync_run_appends_rows(writer: SheetWriter, sheets: AsyncMock) -> None:
    """Test a successful run is appended at the fixed first cell."""
    await writer.sync_run("robot-1", "run-1")

    sheets.append_values.assert_awaited_once_with(
        OAuthTokens(access_token="access-1", refresh_token="refresh-1"),
        "sheet-123",
        DEFAULT_RANGE,
        [["a", "b"], [1, 2], [3, 4]],
    )


async def test_attempt_tags_success(writer: SheetWriter) -> None:
    result = await writer.attempt("robot-1", "run-1")
    assert result.ok
    assert result.outcome is AttemptOutcome.SYNCED
    assert result.error is None


async def test_missing_run_is_not_found(writer: SheetWriter, sheets: AsyncMock) -> None:
    """Test a missing run is tagged not_found without calling the API."""
    result = await writer.attempt("robot-1", "missing")
    assert result.outcome is AttemptOutcome.NOT_FOUND
    sheets.append_values.assert_not_awaited()


async def test_missing_robot_is_not_found(
    writer: SheetWriter, store: InMemoryStore, sheets: AsyncMock
) -> None:
    store.runs["run-2"] = make_run("run-2", robot_id="ghost")
    result = await writer.attempt("ghost", "run-2")
    assert result.outcome is AttemptOutcome.NOT_FOUND
    sheets.append_values.assert_not_awaited()


async def test_unfinished_run_is_not_ready(
    writer: SheetWriter, store: InMemoryStore, sheets: AsyncMock
) -> None:
    store.runs["run-1"] = make_run(status="running")
    result = await writer.attempt("robot-1", "run-1")
    assert result.outcome is AttemptOutcome.NOT_READY
    assert result.retryable
    sheets.append_values.assert_not_awaited()


async def test_missing_sheet_id_skips_append(
    writer: SheetWriter, store: InMemoryStore, sheets: AsyncMock
) -> None:
    """Test an unconfigured integration never reaches the API."""
    store.robots["robot-1"] = make_robot(sheet_id=None)
    result = await writer.attempt("robot-1", "run-1")
    assert result.outcome is AttemptOutcome.NOT_CONFIGURED
    assert not result.retryable
    sheets.append_values.assert_not_awaited()


async def test_missing_email_skips_append(
    writer: SheetWriter, store: InMemoryStore, sheets: AsyncMock
) -> None:
    store.robots["robot-1"] = make_robot(email=None)
    result = await writer.attempt("robot-1", "run-1")
    assert result.outcome is AttemptOutcome.NOT_CONFIGURED
    sheets.append_values.assert_not_awaited()


async def test_missing_tokens_is_not_configured(
    writer: SheetWriter, store: InMemoryStore, sheets: AsyncMock
) -> None:
    store.robots["robot-1"] = make_robot(refresh_token=None)
    result = await writer.attempt("robot-1", "run-1")
    assert result.outcome is AttemptOutcome.NOT_CONFIGURED
    sheets.append_values.assert_not_awaited()


async def test_run_without_output_is_skipped(
    writer: SheetWriter, store: InMemoryStore, sheets: AsyncMock
) -> None:
    store.runs["run-1"] = make_run(serializable_output={})
    result = await writer.attempt("robot-1", "run-1")
    assert result.ok
    sheets.append_values.assert_not_awaited()


async def test_api_failure_is_transient(writer: SheetWriter, sheets: AsyncMock) -> None:
    sheets.append_values.side_effect = TransientAPIError("HTTP 503")
    result = await writer.attempt("robot-1", "run-1")
    assert result.outcome is AttemptOutcome.TRANSIENT
    assert isinstance(result.error, TransientAPIError)


async def test_unexpected_store_error_is_transient(
    writer: SheetWriter, store: InMemoryStore
) -> None:
    store.get_run = AsyncMock(side_effect=RuntimeError("database is locked"))
    result = await writer.attempt("robot-1", "run-1")
    assert result.outcome is AttemptOutcome.TRANSIENT
    assert result.error is None


# --- Token rotation Tests ---


async def test_refreshed_tokens_are_persisted(
    writer: SheetWriter, store: InMemoryStore, sheets: AsyncMock
) -> None:
    """Test a new refresh token is merged without touching other fields."""
    sheets.append_values.return_value = AppendResult(
        updated_rows=3,
        rotated_tokens=OAuthTokens(access_token="access-2", refresh_token="refresh-2"),
    )

    await writer.sync_run("robot-1", "run-1")

    robot = store.robots["robot-1"]
    stored = robot.integrations["google_sheets"]
    assert stored["refresh_token"] == "refresh-2"
    assert stored["access_token"] == "access-2"
    assert stored["sheet_id"] == "sheet-123"
    assert stored["email"] == "owner@example.com"
    assert stored["sheet_name"] == "Leads"
    assert robot.integrations["airtable"] == {"base": "keep-me"}


async def test_access_token_only_refresh_keeps_refresh_token(
    writer: SheetWriter, store: InMemoryStore, sheets: AsyncMock
) -> None:
    sheets.append_values.return_value = AppendResult(
        updated_rows=3, rotated_tokens=OAuthTokens(access_token="access-2")
    )

    await writer.sync_run("robot-1", "run-1")

    stored = store.robots["robot-1"].integrations["google_sheets"]
    assert stored["access_token"] == "access-2"
    assert stored["refresh_token"] == "refresh-1"


async def test_tokens_rotated_before_failure_are_kept(
    writer: SheetWriter, store: InMemoryStore, sheets: AsyncMock
) -> None:
    """Test tokens refreshed during a failed call still get persisted."""
    sheets.append_values.side_effect = TransientAPIError(
        "HTTP 500",
        {"rotated_tokens": OAuthTokens(access_token="access-3", refresh_token="refresh-3")},
    )

    result = await writer.attempt("robot-1", "run-1")

    assert result.outcome is AttemptOutcome.TRANSIENT
    assert store.robots["robot-1"].integrations["google_sheets"]["refresh_token"] == "refresh-3"


async def test_token_persist_failure_does_not_fail_sync(
    store: InMemoryStore, sheets: AsyncMock
) -> None:
    sheets.append_values.return_value = AppendResult(
        updated_rows=3, rotated_tokens=OAuthTokens(refresh_token="refresh-2")
    )
    store.update_google_sheets = AsyncMock(side_effect=RuntimeError("db locked"))  # type: ignore[method-assign]
    writer = SheetWriter(runs=store, robots=store, sheets=sheets)

    result = await writer.attempt("robot-1", "run-1")
    assert result.ok
