"""Pydantic schemas for API v1 - Simple DTOs only."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from snapshot_service.tasks.models import RenderOptions, TaskState, WaitPolicy


class ErrorDetail(BaseModel):
    """Error information."""

    code: str
    message: str
    field: str | None = None


class ErrorResponse(BaseModel):
    """Error envelope returned for rejected requests."""

    error: ErrorDetail
    request_id: str | None = None


class SnapshotRequest(BaseModel):
    """Snapshot submission. Accepts camelCase and snake_case option names."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., description="Page to render")
    width: int | None = Field(None, gt=0, description="Viewport width in pixels")
    height: int | None = Field(None, gt=0, description="Viewport height in pixels")
    wait_until: WaitPolicy = Field(
        WaitPolicy.NETWORK_IDLE,
        alias="waitUntil",
        description="When navigation counts as finished",
    )
    full_page: bool = Field(True, alias="fullPage", description="Capture the full page")

    @field_validator("url")
    @classmethod
    def url_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("url required")
        return v

    @field_validator("wait_until", mode="before")
    @classmethod
    def parse_wait_policy(cls, v: Any) -> Any:
        if isinstance(v, str):
            return WaitPolicy(v)
        return v

    def to_options(self, default_width: int, default_height: int) -> RenderOptions:
        return RenderOptions(
            width=self.width or default_width,
            height=self.height or default_height,
            wait_until=self.wait_until,
            full_page=self.full_page,
        )


class SnapshotResponse(BaseModel):
    """Snapshot submission response."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(..., alias="taskId")


class TaskStatusResponse(BaseModel):
    """Task status response."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(..., alias="taskId")
    url: str
    status: TaskState
    msg: str | None = None
    error: str | None = None
    result: dict[str, Any] | None = None
    img: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    finished_at: datetime | None = None


class HealthStatus(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str
    timestamp: datetime = Field(default_factory=datetime.now)
    uptime_seconds: float
    tasks_in_memory: int
    active_tasks: int
    listeners: int
    dependencies: dict[str, str] = {}
