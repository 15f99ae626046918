"""Typed view of config.yaml.

Every section has working defaults, so a partial file (or none at all in
tests) still yields a complete ``ConfigData``.
"""

from __future__ import annotations

from typing import Literal

from loguru import logger
from pydantic import BaseModel, Field, computed_field, field_validator


class CORSConfig(BaseModel):
    """CORS configuration for the application."""

    origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001"]
    )
    allow_credentials: bool = True
    allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )
    allow_headers: list[str] = Field(default=["*"])


class RetryConfig(BaseModel):
    """Retry policy settings shared by Temporal workflows and activities."""

    maximum_attempts: int = Field(default=5, description="Maximum attempts (0 = unlimited)")
    initial_interval_seconds: int = Field(default=1, description="First retry delay")
    backoff_coefficient: float = Field(default=2.0, description="Retry backoff multiplier")
    maximum_interval_seconds: int = Field(default=60, description="Upper bound on retry delay")


class TemporalWorkflowsConfig(BaseModel):
    """Default timeouts applied when starting workflows."""

    execution_timeout_s: int = Field(default=3600, description="Workflow execution timeout")
    run_timeout_s: int = Field(default=3600, description="Single run timeout")
    task_timeout_s: int = Field(default=10, description="Workflow task timeout")
    retry: RetryConfig = Field(
        default_factory=lambda: RetryConfig(maximum_attempts=1),
        description="Workflow retry policy",
    )


class TemporalActivitiesConfig(BaseModel):
    """Default timeouts applied when executing activities."""

    start_to_close_timeout_s: int = Field(default=300, description="Single attempt timeout")
    schedule_to_close_timeout_s: int = Field(default=1800, description="Overall timeout including retries")
    retry: RetryConfig = Field(default_factory=RetryConfig, description="Activity retry policy")


class TemporalWorkerConfig(BaseModel):
    """Temporal worker configuration model."""

    max_concurrent_activities: int = Field(
        default=100, description="Maximum concurrent activities"
    )
    max_concurrent_workflow_tasks: int = Field(
        default=100, description="Maximum concurrent workflow tasks"
    )


class TemporalConfig(BaseModel):
    """Temporal configuration model."""

    enabled: bool = Field(default=True, description="Enable temporal service")
    url: str = Field(default="temporal:7233", description="Temporal server url")
    namespace: str = Field(default="default", description="Temporal namespace")
    tls: bool = Field(default=False, description="Connect to Temporal over TLS")
    media_queue: str = Field(
        default="product-media", description="Task queue for product media ingestion"
    )
    worker: TemporalWorkerConfig = Field(
        default_factory=TemporalWorkerConfig, description="Worker configuration"
    )
    workflows: TemporalWorkflowsConfig = Field(
        default_factory=TemporalWorkflowsConfig, description="Workflow defaults"
    )
    activities: TemporalActivitiesConfig = Field(
        default_factory=TemporalActivitiesConfig, description="Activity defaults"
    )


class RedisConfig(BaseModel):
    """Redis configuration model."""

    enabled: bool = Field(default=True, description="Enable Redis service")
    url: str = Field(default="", description="Redis connection URL")
    password: str | None = Field(
        default=None, description="Password for Redis authentication"
    )
    decode_responses: bool = Field(
        default=True, description="Decode Redis responses to strings"
    )
    max_connections: int = Field(default=50, description="Connection pool size")
    socket_timeout: float = Field(default=5.0, description="Socket timeout in seconds")
    socket_connect_timeout: float = Field(
        default=5.0, description="Socket connect timeout in seconds"
    )

    @field_validator("url", mode="before")
    @classmethod
    def empty_url(cls, value: str | None) -> str:
        return value or ""

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the Redis connection string with password if provided."""
        if self.password:
            if "@" in self.url:
                # URL already has auth info
                return self.url
            parts = self.url.split("://", 1)
            if len(parts) == 2:
                scheme, rest = parts
                return f"{scheme}://:{self.password}@{rest}"
        return self.url

    @property
    def sanitized_connection_string(self) -> str:
        """Connection string safe for logs."""
        if self.password:
            return self.connection_string.replace(self.password, "****")
        return self.connection_string


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="json", description="Log format")
    file: str = Field(default="", description="Log file path (empty disables the file sink)")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )

    @field_validator("file", mode="before")
    @classmethod
    def empty_file(cls, value: str | None) -> str:
        return value or ""


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./database.db",
        description="Database connection URL",
    )
    pool_size: int = Field(default=20, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    password_env_var: str | None = Field(
        default=None,
        description="Environment variable name containing database password",
    )

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the database connection string with password if provided."""
        from sqlalchemy.engine import make_url

        base_url = make_url(self.url)
        if base_url.password or not self.password_env_var:
            return self.url

        import os

        password = os.getenv(self.password_env_var)
        if not password:
            logger.warning(
                "Environment variable {} is not set; connecting without a password",
                self.password_env_var,
            )
            return self.url
        return base_url.set(password=password).render_as_string(hide_password=False)


class CacheConfig(BaseModel):
    """Cache-aside TTLs for catalog reads, in seconds."""

    list_ttl_seconds: int = Field(default=600, ge=1, description="TTL for cached list pages")
    show_ttl_seconds: int = Field(default=60, ge=1, description="TTL for detail entries populated by reads")
    record_ttl_seconds: int = Field(
        default=600, ge=1, description="TTL for detail entries populated by create/update"
    )


class MediaConfig(BaseModel):
    """Media normalization and upload limits."""

    image_width: int = Field(default=800, ge=1, description="Target image width in pixels")
    image_height: int = Field(default=600, ge=1, description="Target image height in pixels")
    jpeg_quality: int = Field(default=75, ge=1, le=95, description="JPEG re-encode quality")
    allowed_image_extensions: list[str] = Field(
        default_factory=lambda: ["jpg", "jpeg", "png", "webp"]
    )
    allowed_video_extensions: list[str] = Field(
        default_factory=lambda: ["mp4", "avi", "mov", "webm"]
    )
    max_image_kb: int = Field(default=2048, description="Largest accepted image upload")
    max_video_kb: int = Field(default=10240, description="Largest accepted video upload")

    @field_validator("allowed_image_extensions", "allowed_video_extensions")
    @classmethod
    def normalize_extensions(cls, value: list[str]) -> list[str]:
        return [ext.strip().lstrip(".").lower() for ext in value]


class StorageConfig(BaseModel):
    """Artifact storage location."""

    root: str = Field(default="storage/app/public", description="Filesystem root for artifacts")
    public_url: str = Field(
        default="http://localhost:8000/storage", description="Base URL artifacts are served from"
    )


class CatalogConfig(BaseModel):
    """Catalog query settings."""

    page_size: int = Field(default=11, ge=1, description="Products per list page")
    queue_backend: Literal["temporal", "memory"] = Field(
        default="temporal", description="Where media ingestion jobs are enqueued"
    )


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=8000, description="Application port")
    cors: CORSConfig = Field(
        default_factory=CORSConfig, description="CORS configuration"
    )


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    temporal: TemporalConfig = Field(
        default_factory=TemporalConfig, description="Temporal configuration"
    )
    redis: RedisConfig = Field(
        default_factory=RedisConfig, description="Redis configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    cache: CacheConfig = Field(
        default_factory=CacheConfig, description="Cache TTL configuration"
    )
    media: MediaConfig = Field(
        default_factory=MediaConfig, description="Media normalization configuration"
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig, description="Artifact storage configuration"
    )
    catalog: CatalogConfig = Field(
        default_factory=CatalogConfig, description="Catalog configuration"
    )
    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
