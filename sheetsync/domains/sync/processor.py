"""
Update Processor - Polling loop that drains the task registry.

Per-task state machine:
    pending -> (success)                     -> removed
    pending -> (failure, retries < max)      -> pending, retries + 1
    pending -> (failure, retries >= max)     -> failed

The loop exits after a scan that found nothing pending. Between scans it
waits on a timer that also listens for `stop()`.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from .models import MAX_RETRIES, AttemptResult, TaskStatus, UpdateTask
from .registry import TaskRegistry
from .writer import SheetWriter

logger = logging.getLogger(__name__)

__all__ = ["UpdateProcessor"]


class UpdateProcessor:
    """
    Retries pending sheet updates until each succeeds or exhausts its budget.

    Example:
        >>> processor = UpdateProcessor(registry, writer, interval=5.0)
        >>> processor.ensure_running()   # background task, exits when drained
        >>> await processor.stop()
    """

    def __init__(
        self,
        registry: TaskRegistry,
        writer: SheetWriter,
        interval: float = 5.0,
        max_retries: int = MAX_RETRIES,
        retry_all_failures: bool = True,
    ) -> None:
        """
        Initialize processor.

        Args:
            registry: Tasks to process
            writer: Performs each sync attempt
            interval: Seconds between scans
            max_retries: Failed attempts allowed before a task is marked failed
            retry_all_failures: Count every failure kind toward the retry
                bound. When False, not-found and not-configured results fail
                the task immediately.
        """
        self.registry = registry
        self.writer = writer
        self.interval = interval
        self.max_retries = max_retries
        self.retry_all_failures = retry_all_failures
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def ensure_running(self) -> asyncio.Task[None]:
        """Start the loop in the background unless one is already active."""
        if self.is_running:
            assert self._task is not None
            return self._task
        self._stop.clear()
        self._task = asyncio.create_task(self.run(), name="sheets-update-processor")
        return self._task

    async def stop(self) -> None:
        """Signal the loop to exit and wait for it."""
        self._stop.set()
        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def run(self) -> None:
        """Scan until no pending task remains or `stop()` is called."""
        while not self._stop.is_set():
            had_pending = await self.scan_once()

            if not had_pending:
                logger.info("No pending tasks. Exiting loop.")
                return

            logger.debug("Waiting %.1fs before checking again...", self.interval)
            if await self._wait_or_stop():
                logger.info("Update processor stopped")
                return

    async def scan_once(self) -> bool:
        """
        Attempt every pending task once.

        Returns:
            True if at least one task was pending when visited
        """
        had_pending = False
        for run_id, task in self.registry.items():
            logger.debug("Processing task for run %s, status=%s", run_id, task.status.value)
            if task.status is not TaskStatus.PENDING:
                continue
            if self.registry.get(run_id) is not task:
                logger.debug("Task for run %s was removed or replaced mid-scan, skipping", run_id)
                continue

            had_pending = True
            result = await self.writer.attempt(task.robot_id, task.run_id)
            self._apply(task, result)
        return had_pending

    def _apply(self, task: UpdateTask, result: AttemptResult) -> None:
        if result.ok:
            logger.info("Successfully updated Google Sheet for run %s", task.run_id)
            if self.registry.get(task.run_id) is task:
                self.registry.remove(task.run_id)
            return

        if not self.retry_all_failures and not result.retryable:
            task.status = TaskStatus.FAILED
            logger.warning(
                "Task for run %s failed permanently (%s)", task.run_id, result.outcome.value
            )
            return

        if task.retries < self.max_retries:
            task.retries += 1
            logger.info("Retrying task for run %s, attempt: %d", task.run_id, task.retries)
        else:
            task.status = TaskStatus.FAILED
            logger.warning(
                "Max retries reached for run %s. Marking task as failed.", task.run_id
            )

    async def _wait_or_stop(self) -> bool:
        """Sleep for one interval; True if stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
        except asyncio.TimeoutError:
            return False
        return True
