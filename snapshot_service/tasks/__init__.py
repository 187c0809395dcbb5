"""Task domain models."""

from snapshot_service.tasks.models import (
    InvalidTransitionError,
    RenderOptions,
    RenderResult,
    SnapshotTask,
    TaskState,
    WaitPolicy,
)

__all__ = [
    "InvalidTransitionError",
    "RenderOptions",
    "RenderResult",
    "SnapshotTask",
    "TaskState",
    "WaitPolicy",
]
