"""
FastAPI application for the page snapshot service.

Accepts snapshot requests over HTTP, renders pages in a headless browser in
the background and streams progress and results to WebSocket clients.
"""

from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from snapshot_service.api.v1 import router as api_v1_router
from snapshot_service.api.v1.schemas import ErrorDetail, ErrorResponse
from snapshot_service.config import Settings, configure_structlog, settings
from snapshot_service.core.notifier import NotificationHub
from snapshot_service.core.orchestrator import SnapshotOrchestrator
from snapshot_service.core.task_store import TaskStore
from snapshot_service.renderer.base import Renderer

logger = structlog.get_logger(__name__)


def create_error_response(
    status_code: int,
    error_code: str,
    message: str,
    field: str | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create standardized error response."""
    error_response = ErrorResponse(
        error=ErrorDetail(code=error_code, message=message, field=field),
        request_id=request_id,
    )
    return JSONResponse(status_code=status_code, content=error_response.model_dump())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed submissions as 400 client errors."""
    first = exc.errors()[0] if exc.errors() else {}
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = ".".join(location) or None

    if first.get("type") == "missing" and field:
        message = f"{field} required"
    else:
        message = first.get("msg", "Invalid request").removeprefix("Value error, ")

    logger.info("Rejected invalid request", path=request.url.path, field=field, error=message)
    return create_error_response(
        status.HTTP_400_BAD_REQUEST, "invalid_request", message, field=field
    )


def build_renderer(config: Settings) -> Renderer:
    from snapshot_service.renderer.playwright_renderer import PlaywrightRenderer

    return PlaywrightRenderer(headless=config.headless, browser_args=config.browser_args)


def create_app(config: Settings | None = None, renderer: Renderer | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        config: Settings to use, the global settings if None
        renderer: Browser backend, headless Chromium via Playwright if None
    """
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create the store, hub and orchestrator; stop workflows on shutdown."""
        store = TaskStore(
            ttl_minutes=config.task_ttl_minutes,
            cleanup_interval_minutes=config.cleanup_interval_minutes,
        )
        hub = NotificationHub()
        orchestrator = SnapshotOrchestrator(
            store=store,
            hub=hub,
            renderer=renderer or build_renderer(config),
            settings=config,
        )

        app.state.settings = config
        app.state.store = store
        app.state.hub = hub
        app.state.orchestrator = orchestrator
        app.state.started_at = datetime.now()

        logger.info(
            "Page Snapshot API starting up",
            version=config.api_version,
            environment=config.get_environment_display(),
            renderer=orchestrator.renderer.__class__.__name__,
        )

        yield

        logger.info("Page Snapshot API shutting down", active_tasks=orchestrator.active_count)
        await orchestrator.shutdown()
        await hub.close_all()

    app = FastAPI(
        title=config.api_title,
        description=(
            "Render web pages to images in the background. Submit a URL to "
            "`/api/v1/snapshot`, then follow progress and receive the image on "
            "the `/ws` WebSocket."
        ),
        version=config.api_version,
        debug=config.debug,
        lifespan=lifespan,
        docs_url="/docs" if not config.is_production() else None,
        redoc_url="/redoc" if not config.is_production() else None,
        openapi_url="/openapi.json" if not config.is_production() else None,
    )

    app.add_middleware(CORSMiddleware, **config.get_cors_config())
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(api_v1_router)

    @app.get("/", tags=["Root"])
    async def root():
        """
        Root endpoint providing basic API information.

        Use `/api/v1/health` for detailed health checks.
        """
        return {
            "service": config.api_title,
            "version": config.api_version,
            "environment": config.get_environment_display(),
            "status": "operational",
            "docs": "/docs" if not config.is_production() else "disabled",
            "health": "/api/v1/health",
            "notifications": "/ws",
        }

    return app


configure_structlog()
app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "snapshot_service.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_config=None,  # Use our structured logging
    )


if __name__ == "__main__":
    run()
