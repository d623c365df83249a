"""
Task Registry - In-memory map of run id to update task.

Owned by whatever orchestrates run completion (normally `SyncService`) and
passed explicitly to the processor. Access is cooperative within one event
loop; reads return snapshots so callers may mutate while iterating.
"""

from __future__ import annotations

import logging
from collections.abc import Collection

from .models import TaskStatus, UpdateTask

logger = logging.getLogger(__name__)

__all__ = ["TaskRegistry"]


class TaskRegistry:
    """Keyed store of `UpdateTask` entries."""

    def __init__(self) -> None:
        self._tasks: dict[str, UpdateTask] = {}

    def put(self, task: UpdateTask) -> None:
        """Insert a task, overwriting any entry with the same run id."""
        if task.run_id in self._tasks:
            logger.debug("Overwriting task for run %s", task.run_id)
        self._tasks[task.run_id] = task

    def get(self, run_id: str) -> UpdateTask | None:
        return self._tasks.get(run_id)

    def remove(self, run_id: str) -> UpdateTask | None:
        """Delete an entry; returns it, or None if absent."""
        return self._tasks.pop(run_id, None)

    def items(self) -> list[tuple[str, UpdateTask]]:
        return list(self._tasks.items())

    def all(self) -> list[UpdateTask]:
        return list(self._tasks.values())

    def pending(self) -> list[UpdateTask]:
        return [t for t in self._tasks.values() if t.status is TaskStatus.PENDING]

    def failed(self) -> list[UpdateTask]:
        return [t for t in self._tasks.values() if t.status is TaskStatus.FAILED]

    def clear_failed(self, robot_ids: Collection[str] | None = None) -> int:
        """Drop failed tasks, optionally only those of `robot_ids`. Returns how many."""
        failed = [
            t.run_id
            for t in self.failed()
            if robot_ids is None or t.robot_id in robot_ids
        ]
        for run_id in failed:
            del self._tasks[run_id]
        return len(failed)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, run_id: object) -> bool:
        return run_id in self._tasks
