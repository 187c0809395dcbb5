"""FastAPI dependencies resolving the components created in the app lifespan."""

from fastapi import Request

from snapshot_service.config import Settings
from snapshot_service.core.notifier import NotificationHub
from snapshot_service.core.orchestrator import SnapshotOrchestrator
from snapshot_service.core.task_store import TaskStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> TaskStore:
    return request.app.state.store


def get_hub(request: Request) -> NotificationHub:
    return request.app.state.hub


def get_orchestrator(request: Request) -> SnapshotOrchestrator:
    return request.app.state.orchestrator
