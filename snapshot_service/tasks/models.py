"""Task domain models."""

import base64
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any


class TaskState(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.DONE, TaskState.ERROR)


class WaitPolicy(str, Enum):
    """When navigation counts as finished."""

    LOAD = "load"
    DOM_CONTENT_LOADED = "domcontentloaded"
    NETWORK_IDLE = "network-idle"
    COMMIT = "commit"

    @classmethod
    def _missing_(cls, value: object) -> "WaitPolicy | None":
        # Puppeteer and Playwright spellings used by existing clients
        if isinstance(value, str) and value.lower() in (
            "networkidle",
            "networkidle0",
            "networkidle2",
            "network_idle",
        ):
            return cls.NETWORK_IDLE
        return None


_ALLOWED_TRANSITIONS: dict[TaskState, frozenset[TaskState]] = {
    TaskState.PENDING: frozenset({TaskState.PROCESSING}),
    TaskState.PROCESSING: frozenset(
        {TaskState.PROCESSING, TaskState.DONE, TaskState.ERROR}
    ),
    TaskState.DONE: frozenset(),
    TaskState.ERROR: frozenset(),
}

MIME_TYPES = {"png": "image/png", "jpeg": "image/jpeg"}


class InvalidTransitionError(ValueError):
    """Raised when a task is moved to a state its current state cannot reach."""


@dataclass(frozen=True)
class RenderOptions:
    """Viewport and navigation options for one render."""

    width: int = 1280
    height: int = 720
    wait_until: WaitPolicy = WaitPolicy.NETWORK_IDLE
    full_page: bool = True

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Viewport dimensions must be positive, got {self.width}x{self.height}"
            )


@dataclass(frozen=True)
class RenderResult:
    """Captured image plus its encoding metadata."""

    content: bytes
    image_format: str = "png"

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    @property
    def mime_type(self) -> str:
        return MIME_TYPES.get(self.image_format, f"image/{self.image_format}")

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    def summary(self) -> dict[str, Any]:
        return {
            "format": self.image_format,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
        }


@dataclass(frozen=True)
class SnapshotTask:
    """
    Immutable snapshot of one render job.

    Every state change produces a new instance through ``transition``, so a
    reader holding a task never sees it change underneath it.

    Attributes:
        task_id: Unique identifier, used as the correlation key in notifications
        url: Requested page
        options: Viewport and navigation options
        state: Current lifecycle state
        message: Current milestone, only while processing
        result: Captured image, only when done
        error: Failure description, only on error
        created_at: When the task was submitted
        updated_at: When the last transition happened
        finished_at: When a terminal state was reached
        expires_at: When the store may evict the task
    """

    task_id: str
    url: str
    options: RenderOptions = field(default_factory=RenderOptions)
    state: TaskState = TaskState.PENDING
    message: str | None = None
    result: RenderResult | None = None
    error: str | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime | None = None
    finished_at: datetime | None = None
    expires_at: datetime | None = None

    def transition(
        self,
        state: TaskState,
        message: str | None = None,
        result: RenderResult | None = None,
        error: str | None = None,
    ) -> "SnapshotTask":
        """
        Return a copy of this task moved to ``state``.

        Raises:
            InvalidTransitionError: If ``state`` is not reachable, or the
                payload does not match the target state
        """
        state = TaskState(state)
        if state not in _ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Task {self.task_id} cannot move from {self.state.value} to {state.value}"
            )

        if state == TaskState.DONE and result is None:
            raise InvalidTransitionError(f"Task {self.task_id} done without a result")
        if state == TaskState.ERROR and not error:
            raise InvalidTransitionError(
                f"Task {self.task_id} failed without an error detail"
            )
        if state != TaskState.DONE and result is not None:
            raise InvalidTransitionError("Only done tasks carry a result")
        if state != TaskState.ERROR and error is not None:
            raise InvalidTransitionError("Only failed tasks carry an error detail")

        now = datetime.now()
        return replace(
            self,
            state=state,
            message=message if state == TaskState.PROCESSING else None,
            result=result,
            error=error,
            updated_at=now,
            finished_at=now if state.is_terminal else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary, without the image bytes."""
        return {
            "task_id": self.task_id,
            "url": self.url,
            "state": self.state.value,
            "options": {
                "width": self.options.width,
                "height": self.options.height,
                "wait_until": self.options.wait_until.value,
                "full_page": self.options.full_page,
            },
            "message": self.message,
            "result": self.result.summary() if self.result else None,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
