"""Snapshot submission endpoint."""

from fastapi import APIRouter, Depends
import structlog

from snapshot_service.api.dependencies import get_orchestrator
from snapshot_service.api.v1.schemas import SnapshotRequest, SnapshotResponse
from snapshot_service.core.orchestrator import SnapshotOrchestrator

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/v1", tags=["snapshot"])


@router.post("/snapshot", response_model=SnapshotResponse)
async def submit_snapshot(
    request: SnapshotRequest,
    orchestrator: SnapshotOrchestrator = Depends(get_orchestrator),
) -> SnapshotResponse:
    """Queue a page snapshot.

    Logic:
    1. Validate url and viewport options
    2. Create a pending task
    3. Schedule the render workflow
    4. Return the task id without waiting for the render

    Expected behavior:
    - Progress and the final image arrive over the /ws WebSocket
    - Missing or blank url is rejected with 400 and no task is created
    """
    settings = orchestrator.settings
    options = request.to_options(settings.default_width, settings.default_height)

    task_id = await orchestrator.submit(request.url, options)

    return SnapshotResponse(task_id=task_id)
