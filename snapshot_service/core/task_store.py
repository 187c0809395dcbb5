"""
In-memory task store with atomic snapshot updates and TTL retention.

Single source of truth for task state. Records are immutable snapshots that
are swapped under an asyncio lock, so concurrent readers always see either
the previous or the next complete record, never a half-written one.
"""

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any
import uuid

import structlog

from snapshot_service.tasks.models import (
    RenderOptions,
    RenderResult,
    SnapshotTask,
    TaskState,
)

logger = structlog.get_logger(__name__)


def _is_expired(task: SnapshotTask, now: datetime) -> bool:
    """Only finished tasks expire, from their expiry instant onward."""
    return bool(task.state.is_terminal and task.expires_at and task.expires_at <= now)


class TaskStore:
    """
    Async-safe in-memory store for snapshot tasks.

    Only finished tasks are ever evicted, and only once their retention period
    has passed. A ``ttl_minutes`` of zero keeps every task for the lifetime of
    the process.

    Example:
        >>> store = TaskStore(ttl_minutes=60)
        >>> task_id = await store.create("https://example.com")
        >>> await store.update(task_id, TaskState.PROCESSING, message="loading page")
        >>> (await store.get(task_id)).state
        <TaskState.PROCESSING: 'processing'>
    """

    def __init__(self, ttl_minutes: int = 60, cleanup_interval_minutes: int = 10):
        """
        Initialize the store.

        Args:
            ttl_minutes: How long finished tasks are kept, 0 disables eviction
            cleanup_interval_minutes: Minimum gap between opportunistic cleanups
        """
        self._tasks: dict[str, SnapshotTask] = {}
        self._lock = asyncio.Lock()
        self.ttl = timedelta(minutes=ttl_minutes) if ttl_minutes > 0 else None
        self.cleanup_interval = timedelta(minutes=cleanup_interval_minutes)
        self._last_cleanup = datetime.now()

        logger.info(
            "TaskStore initialized",
            ttl_minutes=ttl_minutes,
            cleanup_interval_minutes=cleanup_interval_minutes,
        )

    async def create(self, url: str, options: RenderOptions | None = None) -> str:
        """
        Insert a new pending task.

        Args:
            url: Page to render
            options: Viewport and navigation options

        Returns:
            The new task's identifier
        """
        async with self._lock:
            task_id = uuid.uuid4().hex
            while task_id in self._tasks:
                task_id = uuid.uuid4().hex

            self._tasks[task_id] = SnapshotTask(
                task_id=task_id,
                url=url,
                options=options or RenderOptions(),
            )

            logger.debug("Task created", task_id=task_id, url=url)

            await self._cleanup_if_needed()

            return task_id

    async def update(
        self,
        task_id: str,
        state: TaskState,
        message: str | None = None,
        result: RenderResult | None = None,
        error: str | None = None,
    ) -> SnapshotTask:
        """
        Replace a task's record with its next snapshot.

        Args:
            task_id: Task to move
            state: Target state
            message: Progress message, processing only
            result: Captured image, done only
            error: Failure description, error only

        Returns:
            The new snapshot

        Raises:
            ValueError: If the task doesn't exist
            InvalidTransitionError: If the transition is not allowed
        """
        async with self._lock:
            current = self._tasks.get(task_id)
            if current is None:
                raise ValueError(f"Task {task_id} not found")

            updated = current.transition(
                state, message=message, result=result, error=error
            )
            if updated.state.is_terminal and self.ttl is not None:
                updated = replace(updated, expires_at=updated.finished_at + self.ttl)

            self._tasks[task_id] = updated

            logger.debug(
                "Task updated",
                task_id=task_id,
                state=updated.state.value,
                message=updated.message,
            )

            return updated

    async def get(self, task_id: str) -> SnapshotTask | None:
        """
        Retrieve a task.

        Returns:
            The current snapshot, or None if unknown or expired
        """
        async with self._lock:
            task = self._tasks.get(task_id)

            if task is None:
                return None

            if _is_expired(task, datetime.now()):
                logger.debug("Task expired, removing from store", task_id=task_id)
                del self._tasks[task_id]
                return None

            return task

    async def list_tasks(
        self, state: TaskState | None = None, limit: int = 100
    ) -> list[SnapshotTask]:
        """List tasks newest first, optionally filtered by state."""
        async with self._lock:
            await self._cleanup_expired_tasks()

            # Insertion order is creation order
            tasks = list(reversed(self._tasks.values()))
            if state:
                tasks = [t for t in tasks if t.state == state]

            return tasks[:limit]

    async def count(self) -> int:
        async with self._lock:
            await self._cleanup_expired_tasks()
            return len(self._tasks)

    async def cleanup(self) -> dict[str, int]:
        """
        Force cleanup of expired tasks.

        Returns:
            Dictionary with cleanup statistics
        """
        async with self._lock:
            return await self._cleanup_expired_tasks()

    async def health_check(self) -> dict[str, Any]:
        """Store statistics for the health endpoint."""
        async with self._lock:
            await self._cleanup_expired_tasks()

            state_counts: dict[str, int] = {}
            for task in self._tasks.values():
                state_counts[task.state.value] = state_counts.get(task.state.value, 0) + 1

            return {
                "store": "healthy",
                "total_tasks": len(self._tasks),
                "state_breakdown": state_counts,
                "retention_minutes": (
                    int(self.ttl.total_seconds() // 60) if self.ttl else None
                ),
                "last_cleanup": self._last_cleanup.isoformat(),
            }

    async def _cleanup_if_needed(self) -> None:
        """Run cleanup if enough time has passed since last cleanup."""
        if datetime.now() - self._last_cleanup > self.cleanup_interval:
            await self._cleanup_expired_tasks()

    async def _cleanup_expired_tasks(self) -> dict[str, int]:
        """Drop finished tasks past their expiry. Caller holds the lock."""
        now = datetime.now()

        expired = [
            task_id
            for task_id, task in self._tasks.items()
            if _is_expired(task, now)
        ]
        for task_id in expired:
            del self._tasks[task_id]

        self._last_cleanup = now

        if expired:
            logger.info(
                "Store cleanup completed",
                expired_tasks=len(expired),
                remaining_tasks=len(self._tasks),
            )

        return {"expired_tasks": len(expired), "remaining_tasks": len(self._tasks)}
