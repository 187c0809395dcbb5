"""Boundary to the browser engine that loads pages and captures images."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from snapshot_service.tasks.models import WaitPolicy


class RenderError(Exception):
    """Raised by renderers when a page cannot be loaded or captured."""


@dataclass(frozen=True)
class Viewport:
    width: int
    height: int


class RenderSession(ABC):
    """One browser session, bound to a single page, owned by one task."""

    @abstractmethod
    async def navigate(self, url: str, wait_until: WaitPolicy, timeout_ms: int) -> None:
        """Load ``url`` and wait until ``wait_until`` is satisfied or the timeout hits."""

    @abstractmethod
    async def measure_element(self, selector: str) -> float | None:
        """Return the rendered height in CSS pixels of ``selector``, or None if absent."""

    @abstractmethod
    async def resize_viewport(self, width: int, height: int) -> None:
        """Change the page viewport."""

    @abstractmethod
    async def capture(self, image_format: str, full_page: bool) -> bytes:
        """Screenshot the page and return the encoded image."""

    @abstractmethod
    async def close(self) -> None:
        """Release the browser. Must be safe to call more than once."""


class Renderer(ABC):
    """Factory for render sessions."""

    @abstractmethod
    async def launch(self, viewport: Viewport) -> RenderSession:
        """Start a browser session with the given initial viewport."""
