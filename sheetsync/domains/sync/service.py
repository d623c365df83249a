"""
Sync Service - Enqueue interface for run-completion hooks.

Owns the task registry and the update processor for one application.
"""

from __future__ import annotations

import logging

from .contracts import RunStore
from .models import RUN_SUCCESS, AttemptOutcome, TaskStatus, UpdateTask
from .processor import UpdateProcessor
from .registry import TaskRegistry
from .writer import SheetWriter

logger = logging.getLogger(__name__)

__all__ = ["SyncService"]


class SyncService:
    """
    Entry point called when a run completes.

    Example:
        >>> service = SyncService(TaskRegistry(), writer, runs=repo)
        >>> await service.enqueue("robot-1", "run-42")
        >>> await service.shutdown()
    """

    def __init__(
        self,
        registry: TaskRegistry,
        writer: SheetWriter,
        runs: RunStore,
        processor: UpdateProcessor | None = None,
    ) -> None:
        self.registry = registry
        self.writer = writer
        self.runs = runs
        self.processor = processor or UpdateProcessor(registry, writer)

    async def enqueue(self, robot_id: str, run_id: str) -> TaskStatus | None:
        """
        Sync a run now if its output is ready, otherwise queue it.

        Never raises; every outcome is logged.

        Returns:
            TaskStatus.COMPLETED when synced immediately, TaskStatus.PENDING
            when a task was queued, None when the run was dropped.
        """
        try:
            run = await self.runs.get_run(run_id)
        except Exception:
            logger.exception("Run lookup failed for run %s, queueing for retry", run_id)
            self._queue(robot_id, run_id)
            return TaskStatus.PENDING

        if run is None:
            logger.error("Run not found for runId: %s", run_id)
            return None

        if run.status != RUN_SUCCESS:
            logger.info("Run %s not finished (status=%s), queueing sync", run_id, run.status)
            self._queue(robot_id, run_id)
            return TaskStatus.PENDING

        result = await self.writer.attempt(robot_id, run_id)
        if result.ok:
            return TaskStatus.COMPLETED

        if result.outcome in (AttemptOutcome.NOT_CONFIGURED, AttemptOutcome.NOT_FOUND):
            logger.info("Skipping sheet sync for run %s: %s", run_id, result.outcome.value)
            return None

        self._queue(robot_id, run_id, retries=1)
        return TaskStatus.PENDING

    def _queue(self, robot_id: str, run_id: str, retries: int = 0) -> None:
        self.registry.put(UpdateTask(robot_id=robot_id, run_id=run_id, retries=retries))
        self.processor.ensure_running()

    async def drain(self) -> None:
        """Run the processor in the foreground until nothing is pending."""
        await self.processor.ensure_running()

    async def shutdown(self) -> None:
        """Stop the background processor."""
        await self.processor.stop()
