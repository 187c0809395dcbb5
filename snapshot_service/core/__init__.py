"""Task store, notification fan-out and render orchestration."""

from snapshot_service.core.notifier import Listener, NotificationHub, WebSocketListener
from snapshot_service.core.orchestrator import SnapshotOrchestrator, task_notification
from snapshot_service.core.task_store import TaskStore

__all__ = [
    "Listener",
    "NotificationHub",
    "SnapshotOrchestrator",
    "TaskStore",
    "WebSocketListener",
    "task_notification",
]
