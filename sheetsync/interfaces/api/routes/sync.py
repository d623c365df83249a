"""
Sync Routes - Robot spreadsheet settings and the update queue.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from sheetsync.adapters.sqlite import SQLiteRepository
from sheetsync.domains.identity import User
from sheetsync.domains.sync import RobotRecord, SyncService, TaskStatus, UpdateTask
from sheetsync.interfaces.api.auth import get_current_user
from sheetsync.interfaces.api.deps import get_repository, get_sync_service

logger = logging.getLogger(__name__)

router = APIRouter()


class SheetSelection(BaseModel):
    """Spreadsheet chosen for a robot."""

    sheet_id: str = Field(..., min_length=1)
    sheet_name: str | None = None


class EnqueueRequest(BaseModel):
    """Run whose output should be synced."""

    robot_id: str = Field(..., min_length=1)
    run_id: str = Field(..., min_length=1)


class EnqueueResponse(BaseModel):
    robot_id: str
    run_id: str
    status: TaskStatus | None = Field(
        description="completed, pending, or null when the run was skipped"
    )


class TaskListResponse(BaseModel):
    tasks: list[UpdateTask]
    pending: int
    failed: int


async def _owned_robot(robot_id: str, user: User, repo: SQLiteRepository) -> RobotRecord:
    robot = await repo.get_robot(robot_id)
    if robot is None:
        raise HTTPException(status_code=404, detail="Robot not found")
    if robot.user_id != user.id:
        raise HTTPException(status_code=403, detail="Robot belongs to another user")
    return robot


@router.put("/robots/{robot_id}/google-sheets")
async def set_google_sheet(
    robot_id: str,
    body: SheetSelection,
    user: User = Depends(get_current_user),
    repo: SQLiteRepository = Depends(get_repository),
) -> dict[str, object]:
    """
    Point a robot at a spreadsheet.

    The user's Google account and tokens are copied onto the robot so later
    syncs can run without a session.
    """
    await _owned_robot(robot_id, user, repo)
    if not user.google_sheets_email or not user.google_access_token:
        raise HTTPException(status_code=400, detail="Google account not connected")

    await repo.update_google_sheets(
        robot_id,
        {
            "email": user.google_sheets_email,
            "sheet_id": body.sheet_id,
            "sheet_name": body.sheet_name,
            "access_token": user.google_access_token,
            "refresh_token": user.google_refresh_token,
        },
    )
    logger.info("Robot %s now syncs to sheet %s", robot_id, body.sheet_id)
    return {"message": "Google Sheet integration saved", "robot_id": robot_id}


@router.delete("/robots/{robot_id}/google-sheets")
async def remove_google_sheet(
    robot_id: str,
    user: User = Depends(get_current_user),
    repo: SQLiteRepository = Depends(get_repository),
) -> dict[str, str]:
    await _owned_robot(robot_id, user, repo)
    if not await repo.remove_google_sheets(robot_id):
        raise HTTPException(status_code=404, detail="Google Sheet integration not found")
    return {"message": "Google Sheet integration removed"}


@router.post("/enqueue", status_code=status.HTTP_202_ACCEPTED, response_model=EnqueueResponse)
async def enqueue(
    body: EnqueueRequest,
    user: User = Depends(get_current_user),
    repo: SQLiteRepository = Depends(get_repository),
    service: SyncService = Depends(get_sync_service),
) -> EnqueueResponse:
    """Sync a run's output now, or queue it for the background processor."""
    await _owned_robot(body.robot_id, user, repo)
    result = await service.enqueue(body.robot_id, body.run_id)
    return EnqueueResponse(robot_id=body.robot_id, run_id=body.run_id, status=result)


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(
    user: User = Depends(get_current_user),
    repo: SQLiteRepository = Depends(get_repository),
    service: SyncService = Depends(get_sync_service),
) -> TaskListResponse:
    """Tasks for the caller's robots."""
    owned = await repo.list_robot_ids(user.id)
    tasks = [t for t in service.registry.all() if t.robot_id in owned]
    return TaskListResponse(
        tasks=tasks,
        pending=sum(t.status is TaskStatus.PENDING for t in tasks),
        failed=sum(t.status is TaskStatus.FAILED for t in tasks),
    )


@router.delete("/tasks")
async def clear_failed_tasks(
    user: User = Depends(get_current_user),
    repo: SQLiteRepository = Depends(get_repository),
    service: SyncService = Depends(get_sync_service),
) -> dict[str, int]:
    """Drop the caller's tasks that exhausted their retries."""
    owned = await repo.list_robot_ids(user.id)
    return {"removed": service.registry.clear_failed(robot_ids=owned)}


@router.delete("/tasks/{run_id}")
async def delete_task(
    run_id: str,
    user: User = Depends(get_current_user),
    repo: SQLiteRepository = Depends(get_repository),
    service: SyncService = Depends(get_sync_service),
) -> dict[str, str]:
    """Drop a task from the registry, typically one that has failed."""
    task = service.registry.get(run_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    await _owned_robot(task.robot_id, user, repo)

    service.registry.remove(run_id)
    return {"message": "Task removed", "run_id": run_id}
