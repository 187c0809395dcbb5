"""Health check endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Request

from snapshot_service.api.dependencies import get_hub, get_orchestrator, get_store
from snapshot_service.api.v1.schemas import HealthStatus
from snapshot_service.core.notifier import NotificationHub
from snapshot_service.core.orchestrator import SnapshotOrchestrator
from snapshot_service.core.task_store import TaskStore

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthStatus)
async def health_check(
    request: Request,
    store: TaskStore = Depends(get_store),
    hub: NotificationHub = Depends(get_hub),
    orchestrator: SnapshotOrchestrator = Depends(get_orchestrator),
) -> HealthStatus:
    """Health check endpoint for load balancers and monitoring."""
    store_health = await store.health_check()
    dependencies = {
        "store": store_health.get("store", "unknown"),
        "renderer": orchestrator.renderer.__class__.__name__,
    }

    started_at: datetime = request.app.state.started_at

    return HealthStatus(
        status="healthy" if dependencies["store"] == "healthy" else "degraded",
        service="page-snapshot-api",
        version=orchestrator.settings.api_version,
        uptime_seconds=(datetime.now() - started_at).total_seconds(),
        tasks_in_memory=store_health["total_tasks"],
        active_tasks=orchestrator.active_count,
        listeners=hub.listener_count,
        dependencies=dependencies,
    )
