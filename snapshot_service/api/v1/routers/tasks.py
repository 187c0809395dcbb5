"""Task status endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
import structlog

from snapshot_service.api.dependencies import get_store
from snapshot_service.api.v1.schemas import TaskStatusResponse
from snapshot_service.core.task_store import TaskStore
from snapshot_service.tasks.models import SnapshotTask, TaskState

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/v1/task", tags=["tasks"])


async def get_task_or_404(task_id: str, store: TaskStore) -> SnapshotTask:
    """Get task by ID or raise 404."""
    task = await store.get(task_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Task not found or expired"
        )
    return task


@router.get("/{task_id}", response_model=TaskStatusResponse)
async def get_task_status(
    task_id: str,
    include_image: bool = Query(False, description="Embed the image as a data URI"),
    store: TaskStore = Depends(get_store),
) -> TaskStatusResponse:
    """Get current task status, for clients that cannot hold a WebSocket open.

    Expected behavior:
    - Returns 404 if task not found or evicted
    - Returns the image only when asked for and the task is done
    """
    task = await get_task_or_404(task_id, store)

    return TaskStatusResponse(
        task_id=task.task_id,
        url=task.url,
        status=task.state,
        msg=task.message,
        error=task.error,
        result=task.result.summary() if task.result else None,
        img=(
            task.result.to_data_uri()
            if include_image and task.state == TaskState.DONE and task.result
            else None
        ),
        created_at=task.created_at,
        updated_at=task.updated_at,
        finished_at=task.finished_at,
    )
