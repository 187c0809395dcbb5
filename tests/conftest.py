"""Shared test configuration and fixtures for all tests."""

import asyncio
from typing import Any

import pytest

from snapshot_service.config import Settings
from snapshot_service.core.notifier import NotificationHub
from snapshot_service.core.orchestrator import SnapshotOrchestrator
from snapshot_service.core.task_store import TaskStore
from snapshot_service.renderer.base import RenderError, Renderer, RenderSession, Viewport
from snapshot_service.tasks.models import WaitPolicy

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


class FakeSession(RenderSession):
    """Scripted render session that records every call."""

    def __init__(self, renderer: "FakeRenderer", viewport: Viewport):
        self.renderer = renderer
        self.viewport = viewport
        self.calls: list[tuple[Any, ...]] = []
        self.close_calls = 0

    async def navigate(self, url: str, wait_until: WaitPolicy, timeout_ms: int) -> None:
        self.calls.append(("navigate", url, wait_until, timeout_ms))
        if self.renderer.navigation_gate is not None:
            await self.renderer.navigation_gate.wait()
        if url in self.renderer.unreachable_urls:
            raise RenderError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        if self.renderer.navigate_error is not None:
            raise self.renderer.navigate_error

    async def measure_element(self, selector: str) -> float | None:
        self.calls.append(("measure_element", selector))
        return self.renderer.element_height

    async def resize_viewport(self, width: int, height: int) -> None:
        self.calls.append(("resize_viewport", width, height))
        self.viewport = Viewport(width, height)

    async def capture(self, image_format: str, full_page: bool) -> bytes:
        self.calls.append(("capture", image_format, full_page))
        if self.renderer.capture_error is not None:
            raise self.renderer.capture_error
        return self.renderer.image

    async def close(self) -> None:
        self.close_calls += 1
        if self.renderer.close_error is not None:
            raise self.renderer.close_error


class FakeRenderer(Renderer):
    """In-process stand-in for the browser engine."""

    def __init__(
        self,
        element_height: float | None = None,
        image: bytes = PNG_BYTES,
        unreachable_urls: set[str] | None = None,
    ):
        self.element_height = element_height
        self.image = image
        self.unreachable_urls = unreachable_urls or set()
        self.launch_error: Exception | None = None
        self.navigate_error: Exception | None = None
        self.capture_error: Exception | None = None
        self.close_error: Exception | None = None
        self.navigation_gate: asyncio.Event | None = None
        self.sessions: list[FakeSession] = []

    async def launch(self, viewport: Viewport) -> FakeSession:
        if self.launch_error is not None:
            raise self.launch_error
        session = FakeSession(self, viewport)
        self.sessions.append(session)
        return session


class RecordingListener:
    """Listener that keeps every payload it receives."""

    def __init__(self, listener_id: str, open_: bool = True, fail: bool = False):
        self.listener_id = listener_id
        self.open = open_
        self.fail = fail
        self.received: list[dict[str, Any]] = []

    @property
    def is_open(self) -> bool:
        return self.open

    async def send(self, payload: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionResetError("socket closed by peer")
        self.received.append(payload)

    def for_task(self, task_id: str) -> list[dict[str, Any]]:
        return [m for m in self.received if m["taskId"] == task_id]


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        task_ttl_minutes=60,
        cleanup_interval_minutes=10,
        navigation_timeout_ms=30_000,
        content_selector=".page-create-message-img",
        image_format="png",
        log_level="DEBUG",
    )


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def store() -> TaskStore:
    return TaskStore(ttl_minutes=60, cleanup_interval_minutes=10)


@pytest.fixture
def hub() -> NotificationHub:
    return NotificationHub()


@pytest.fixture
def listener(hub: NotificationHub) -> RecordingListener:
    recording = RecordingListener("observer-1")
    hub.register(recording)
    return recording


@pytest.fixture
def orchestrator(store, hub, renderer, test_settings) -> SnapshotOrchestrator:
    return SnapshotOrchestrator(
        store=store, hub=hub, renderer=renderer, settings=test_settings
    )
