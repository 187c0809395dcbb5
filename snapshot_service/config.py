"""
Configuration for the page snapshot service.

Supports multiple environments (development, staging, production) with
appropriate defaults and validation. Environment variables override defaults.
"""

from enum import Enum
from typing import Annotated, Any

from dotenv import load_dotenv
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
import structlog

load_dotenv()

# Chromium flags for running inside containers and on hosts without a GPU
DEFAULT_BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-web-security",
    "--disable-features=VizDisplayCompositor",
    "--allow-running-insecure-content",
    "--ignore-certificate-errors",
    "--ignore-ssl-errors",
    "--ignore-certificate-errors-spki-list",
]


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Application settings with environment-specific defaults.

    Uses Pydantic for validation and type safety.
    Environment variables override defaults.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )

    # API Configuration
    api_title: str = Field(
        default="Page Snapshot API", description="API title for OpenAPI docs"
    )
    api_version: str = Field(default="1.0.0", description="API version")
    debug: bool = Field(default=True, description="Enable debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3001, ge=1, le=65535, description="Server port")
    reload: bool = Field(
        default=False, description="Enable auto-reload (development only)"
    )

    # Task Store Configuration
    task_ttl_minutes: int = Field(
        default=60,
        ge=0,
        le=24 * 60,
        description="How long finished tasks are kept, 0 keeps them forever",
    )
    cleanup_interval_minutes: int = Field(
        default=10, ge=1, le=60, description="Store cleanup interval in minutes"
    )

    # Renderer Configuration
    navigation_timeout_ms: int = Field(
        default=30_000, ge=1, description="Upper bound for page navigation"
    )
    content_selector: str = Field(
        default=".page-create-message-img",
        description="Element whose height drives adaptive viewport sizing",
    )
    image_format: str = Field(default="png", description="Capture format")
    headless: bool = Field(default=True, description="Run Chromium headless")
    browser_args: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_BROWSER_ARGS),
        description="Extra Chromium launch flags",
    )
    default_width: int = Field(default=1280, ge=1, description="Default viewport width")
    default_height: int = Field(
        default=720, ge=1, description="Default viewport height"
    )

    # CORS Configuration
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["*"], description="Allowed CORS origins (comma-separated)"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Enable JSON logging")

    @field_validator("image_format")
    @classmethod
    def validate_image_format(cls, v: str) -> str:
        """Only formats every browser backend can capture are accepted."""
        v = v.lower()
        if v not in ("png", "jpeg"):
            raise ValueError("image_format must be 'png' or 'jpeg'")
        return v

    @field_validator("cors_origins", "browser_args", mode="before")
    @classmethod
    def parse_comma_separated(cls, v: Any) -> Any:
        """Parse comma-separated strings into lists."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("debug")
    @classmethod
    def set_debug_from_environment(cls, v: bool, info: ValidationInfo) -> bool:
        """Automatically disable debug in production."""
        if info.data.get("environment") == Environment.PRODUCTION:
            return False
        return v

    @field_validator("reload")
    @classmethod
    def set_reload_from_environment(cls, v: bool, info: ValidationInfo) -> bool:
        """Only allow reload in development."""
        env = info.data.get("environment", Environment.DEVELOPMENT)
        if env != Environment.DEVELOPMENT:
            return False
        return v

    def get_environment_display(self) -> str:
        """Get human-readable environment name."""
        return self.environment.value.title()

    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    def get_cors_config(self) -> dict[str, Any]:
        """Get CORS middleware keyword arguments."""
        if self.is_production():
            return {
                "allow_origins": [o for o in self.cors_origins if o != "*"],
                "allow_credentials": True,
                "allow_methods": ["GET", "POST"],
                "allow_headers": ["*"],
            }
        return {
            "allow_origins": self.cors_origins,
            "allow_credentials": True,
            "allow_methods": ["*"],
            "allow_headers": ["*"],
        }


# Global settings instance
settings = Settings()


def configure_structlog(config: Settings | None = None) -> None:
    """Initialize structlog with console output, or JSON lines when enabled."""
    import logging
    import sys

    config = config or settings
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        stream=sys.stdout,
        force=True,
        format="%(message)s",
    )

    if config.log_json:
        renderer: Any = structlog.processors.JSONRenderer()
        timestamper = structlog.processors.TimeStamper(fmt="iso")
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)
        timestamper = structlog.processors.TimeStamper(fmt="%H:%M:%S")

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            timestamper,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
