"""
Snapshot task orchestration.

``submit`` records a task and returns its id right away; the render itself
runs as a separate asyncio task that walks the task through its milestones,
updating the store and broadcasting a notification at each one.
"""

import asyncio
import math
from typing import Any

import structlog

from snapshot_service.config import Settings
from snapshot_service.core.notifier import NotificationHub
from snapshot_service.core.task_store import TaskStore
from snapshot_service.renderer.base import Renderer, RenderSession, Viewport
from snapshot_service.tasks.models import (
    RenderOptions,
    RenderResult,
    SnapshotTask,
    TaskState,
)

logger = structlog.get_logger(__name__)

MSG_LAUNCHING = "launching renderer"
MSG_LOADING = "loading page"
MSG_CANCELLED = "renderer cancelled: service shutting down"


def task_notification(task: SnapshotTask) -> dict[str, Any]:
    """Build the wire payload broadcast for a task snapshot."""
    payload: dict[str, Any] = {"taskId": task.task_id, "status": task.state.value}
    if task.state == TaskState.PROCESSING and task.message:
        payload["msg"] = task.message
    elif task.state == TaskState.ERROR:
        payload["msg"] = task.error
    elif task.state == TaskState.DONE and task.result is not None:
        payload["img"] = task.result.to_data_uri()
    return payload


class SnapshotOrchestrator:
    """Creates snapshot tasks and drives their render workflows."""

    def __init__(
        self,
        store: TaskStore,
        hub: NotificationHub,
        renderer: Renderer,
        settings: Settings,
    ):
        self.store = store
        self.hub = hub
        self.renderer = renderer
        self.settings = settings
        self._workflows: dict[str, asyncio.Task] = {}

    @property
    def active_count(self) -> int:
        return len(self._workflows)

    def default_options(self) -> RenderOptions:
        return RenderOptions(
            width=self.settings.default_width, height=self.settings.default_height
        )

    async def submit(self, url: str, options: RenderOptions | None = None) -> str:
        """
        Create a task and schedule its workflow without waiting for it.

        Args:
            url: Page to render
            options: Viewport and navigation options, settings defaults if None

        Returns:
            The new task's identifier
        """
        options = options or self.default_options()
        task_id = await self.store.create(url, options)

        workflow = asyncio.create_task(
            self._run(task_id, url, options), name=f"snapshot-{task_id}"
        )
        self._workflows[task_id] = workflow
        workflow.add_done_callback(lambda _: self._workflows.pop(task_id, None))

        logger.info(
            "Snapshot task submitted",
            task_id=task_id,
            url=url,
            width=options.width,
            height=options.height,
            wait_until=options.wait_until.value,
            full_page=options.full_page,
        )
        return task_id

    async def wait(self, task_id: str) -> SnapshotTask | None:
        """Wait for a task's workflow to finish and return its final snapshot."""
        workflow = self._workflows.get(task_id)
        if workflow is not None:
            await asyncio.gather(workflow, return_exceptions=True)
        return await self.store.get(task_id)

    async def drain(self) -> None:
        """Wait for every in-flight workflow, including ones started meanwhile."""
        while self._workflows:
            await asyncio.gather(*list(self._workflows.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel in-flight workflows and wait for their cleanup."""
        workflows = list(self._workflows.items())
        if not workflows:
            return

        logger.info("Cancelling in-flight snapshot tasks", count=len(workflows))
        for _, workflow in workflows:
            workflow.cancel()
        await asyncio.gather(*(w for _, w in workflows), return_exceptions=True)

        # Workflows cancelled before their first step never reach their own handler
        for task_id, _ in workflows:
            task = await self.store.get(task_id)
            if task is not None and not task.state.is_terminal:
                await self._fail(task_id, MSG_CANCELLED)

    async def _advance(self, task_id: str, state: TaskState, **fields: Any) -> SnapshotTask:
        task = await self.store.update(task_id, state, **fields)
        await self.hub.broadcast(task_notification(task))
        return task

    async def _run(self, task_id: str, url: str, options: RenderOptions) -> None:
        session: RenderSession | None = None
        log = logger.bind(task_id=task_id, url=url)

        try:
            await self._advance(task_id, TaskState.PROCESSING, message=MSG_LAUNCHING)
            session = await self.renderer.launch(Viewport(options.width, options.height))

            await self._advance(task_id, TaskState.PROCESSING, message=MSG_LOADING)
            await session.navigate(
                url, options.wait_until, self.settings.navigation_timeout_ms
            )

            sizing_message = await self._fit_viewport(session, options)
            await self._advance(task_id, TaskState.PROCESSING, message=sizing_message)

            image = await session.capture(self.settings.image_format, options.full_page)
            result = RenderResult(content=image, image_format=self.settings.image_format)
            await self._advance(task_id, TaskState.DONE, result=result)

            log.info("Snapshot task completed", size_bytes=result.size_bytes)

        except asyncio.CancelledError:
            log.warning("Snapshot task cancelled")
            await self._fail(task_id, MSG_CANCELLED)
            raise

        except Exception as e:
            detail = str(e) or e.__class__.__name__
            log.error("Snapshot task failed", error=detail, error_type=e.__class__.__name__)
            await self._fail(task_id, detail)

        finally:
            if session is not None:
                try:
                    await session.close()
                except Exception as e:
                    log.warning("Failed to close render session", error=str(e))

    async def _fit_viewport(self, session: RenderSession, options: RenderOptions) -> str:
        """Resize the viewport to the content element's height when it exists."""
        measured = await session.measure_element(self.settings.content_selector)
        height = math.ceil(measured) if measured is not None else 0

        if height > 0:
            await session.resize_viewport(options.width, height)
            return f"viewport resized to {options.width}x{height}"

        return (
            f"content element not found, using default size "
            f"{options.width}x{options.height}"
        )

    async def _fail(self, task_id: str, detail: str) -> None:
        """Move a task to error and announce it, unless it already finished."""
        task = await self.store.get(task_id)
        if task is None or task.state.is_terminal:
            logger.warning(
                "Task already finished, dropping failure",
                task_id=task_id,
                error=detail,
            )
            return

        if task.state == TaskState.PENDING:
            await self.store.update(task_id, TaskState.PROCESSING, message=MSG_LAUNCHING)

        await self._advance(task_id, TaskState.ERROR, error=detail)
