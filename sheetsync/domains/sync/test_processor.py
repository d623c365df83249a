"""
Tests for the update processor retry loop.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

from sheetsync.config.errors import TransientAPIError

from .conftest import InMemoryStore, make_robot
from .models import MAX_RETRIES, AttemptOutcome, AttemptResult, TaskStatus, UpdateTask
from .processor import UpdateProcessor
from .registry import TaskRegistry
from .writer import SheetWriter


def _processor(registry: TaskRegistry, writer: SheetWriter, **kwargs) -> UpdateProcessor:
    return UpdateProcessor(registry, writer, interval=0, **kwargs)


# --- Registry Tests ---


def test_registry_overwrites_same_run_id(registry: TaskRegistry) -> None:
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-1", retries=3))
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-1"))

    assert len(registry) == 1
    assert registry.get("run-1").retries == 0


def test_registry_clear_failed(registry: TaskRegistry) -> None:
    registry.put(UpdateTask(robot_id="r", run_id="a", status=TaskStatus.FAILED))
    registry.put(UpdateTask(robot_id="r", run_id="b"))

    assert registry.clear_failed() == 1
    assert "a" not in registry
    assert "b" in registry


# --- Processor Tests ---


async def test_success_removes_task(
    registry: TaskRegistry, writer: SheetWriter, sheets: AsyncMock
) -> None:
    """Test a synced task leaves the registry."""
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-1"))

    await _processor(registry, writer).run()

    assert len(registry) == 0
    sheets.append_values.assert_awaited_once()


async def test_failures_exhaust_retries(
    registry: TaskRegistry, writer: SheetWriter, sheets: AsyncMock
) -> None:
    """Test retries stop at the bound and the task ends up failed."""
    sheets.append_values.side_effect = TransientAPIError("HTTP 503")
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-1"))

    await _processor(registry, writer).run()

    task = registry.get("run-1")
    assert task is not None
    assert task.status is TaskStatus.FAILED
    assert task.retries == MAX_RETRIES
    assert sheets.append_values.await_count == MAX_RETRIES + 1


async def test_retries_never_exceed_bound(registry: TaskRegistry) -> None:
    writer = AsyncMock(spec=SheetWriter)
    writer.attempt.return_value = AttemptResult(AttemptOutcome.TRANSIENT)
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-1"))
    processor = _processor(registry, writer)

    seen: list[int] = []
    for _ in range(MAX_RETRIES + 3):
        await processor.scan_once()
        seen.append(registry.get("run-1").retries)

    assert max(seen) == MAX_RETRIES
    assert registry.get("run-1").status is TaskStatus.FAILED
    assert writer.attempt.await_count == MAX_RETRIES + 1


async def test_failed_task_is_never_retried(registry: TaskRegistry) -> None:
    """Test the loop exits immediately when only failed tasks remain."""
    writer = AsyncMock(spec=SheetWriter)
    registry.put(UpdateTask(robot_id="r", run_id="a", status=TaskStatus.FAILED, retries=5))
    registry.put(UpdateTask(robot_id="r", run_id="b", status=TaskStatus.FAILED, retries=5))

    await _processor(registry, writer).run()

    writer.attempt.assert_not_awaited()
    assert len(registry) == 2
    assert all(t.status is TaskStatus.FAILED for t in registry.all())


async def test_recovers_after_transient_failures(
    registry: TaskRegistry, writer: SheetWriter, sheets: AsyncMock
) -> None:
    """Test a task that fails twice then succeeds is removed."""
    from .models import AppendResult

    sheets.append_values.side_effect = [
        TransientAPIError("HTTP 503"),
        TransientAPIError("HTTP 503"),
        AppendResult(updated_rows=3),
    ]
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-1"))

    await _processor(registry, writer).run()

    assert "run-1" not in registry
    assert sheets.append_values.await_count == 3


async def test_every_failure_kind_counts_by_default(
    registry: TaskRegistry, writer: SheetWriter, store: InMemoryStore, sheets: AsyncMock
) -> None:
    """Test not-configured failures are retried like any other."""
    store.robots["robot-1"] = make_robot(sheet_id=None)
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-1"))

    await _processor(registry, writer).run()

    task = registry.get("run-1")
    assert task.status is TaskStatus.FAILED
    assert task.retries == MAX_RETRIES
    sheets.append_values.assert_not_awaited()


async def test_permanent_failures_skip_retry_budget(
    registry: TaskRegistry, writer: SheetWriter, store: InMemoryStore
) -> None:
    store.robots["robot-1"] = make_robot(email=None)
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-1"))

    await _processor(registry, writer, retry_all_failures=False).run()

    task = registry.get("run-1")
    assert task.status is TaskStatus.FAILED
    assert task.retries == 0


async def test_mixed_tasks(
    registry: TaskRegistry, writer: SheetWriter, store: InMemoryStore
) -> None:
    """Test one good and one broken task are resolved independently."""
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-1"))
    registry.put(UpdateTask(robot_id="robot-1", run_id="missing"))

    await _processor(registry, writer).run()

    assert "run-1" not in registry
    assert registry.get("missing").status is TaskStatus.FAILED


async def test_stop_interrupts_wait(registry: TaskRegistry) -> None:
    """Test stop() ends the loop during the inter-scan wait."""
    writer = AsyncMock(spec=SheetWriter)
    writer.attempt.return_value = AttemptResult(AttemptOutcome.TRANSIENT)
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-1"))
    processor = UpdateProcessor(registry, writer, interval=3600)

    processor.ensure_running()
    await asyncio.sleep(0.01)
    assert processor.is_running

    await asyncio.wait_for(processor.stop(), timeout=1)

    assert not processor.is_running
    assert registry.get("run-1").status is TaskStatus.PENDING
    assert writer.attempt.await_count == 1


async def test_ensure_running_reuses_active_loop(registry: TaskRegistry) -> None:
    writer = AsyncMock(spec=SheetWriter)
    writer.attempt.return_value = AttemptResult(AttemptOutcome.TRANSIENT)
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-1"))
    processor = UpdateProcessor(registry, writer, interval=3600)

    first = processor.ensure_running()
    second = processor.ensure_running()

    assert first is second
    await processor.stop()


async def test_loop_restarts_after_draining(
    registry: TaskRegistry, writer: SheetWriter, store: InMemoryStore
) -> None:
    """Test a fresh loop picks up work enqueued after the last one exited."""
    from .conftest import make_run

    processor = _processor(registry, writer)
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-1"))
    await processor.ensure_running()
    assert len(registry) == 0

    store.runs["run-2"] = make_run("run-2")
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-2"))
    await processor.ensure_running()
    assert len(registry) == 0


async def test_task_removed_mid_scan_is_not_attempted(registry: TaskRegistry) -> None:
    """Test a task deleted while an earlier one is in flight is skipped."""
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-1"))
    registry.put(UpdateTask(robot_id="robot-1", run_id="run-2"))

    async def attempt(robot_id: str, run_id: str) -> AttemptResult:
        registry.remove("run-2")
        return AttemptResult(AttemptOutcome.SYNCED)

    writer = AsyncMock(spec=SheetWriter)
    writer.attempt.side_effect = attempt

    await _processor(registry, writer).scan_once()

    writer.attempt.assert_awaited_once_with("robot-1", "run-1")
    assert len(registry) == 0
