"""API v1 routes."""

from fastapi import APIRouter

from snapshot_service.api.v1.routers import health, snapshot, tasks, websocket

router = APIRouter()
router.include_router(snapshot.router)
router.include_router(tasks.router)
router.include_router(health.router)
router.include_router(websocket.router)

__all__ = ["router"]
