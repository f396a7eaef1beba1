"""
Tubely Ingest Configuration Management Module

This module provides configuration management for the Tubely media ingestion
service using Pydantic Settings. It loads and validates every environment
variable required for:
- Application settings (name, environment, debug mode, logging)
- Bearer credential verification (HS256 secret and issuer)
- Local asset storage for thumbnails and the public URL they are served from
- MongoDB metadata store connection and pooling
- S3-compatible object storage for processed videos
- External media tooling (ffprobe / ffmpeg) and per-endpoint upload caps

The resulting Settings object is frozen: it is created once at startup and
threaded into the request pipeline through FastAPI dependency injection.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# 10 MiB and 1 GiB body caps for the two upload endpoints
THUMBNAIL_MAX_BYTES = 10 << 20
VIDEO_MAX_BYTES = 1 << 30


class Settings(BaseSettings):
    """
    Configuration settings for the Tubely ingestion service.

    Values are read from environment variables and an optional ``.env`` file.
    All fields have development defaults so the service can boot locally
    against a MinIO / MongoDB pair without further setup.

    Configuration Categories:
    - Application: name, environment, debug, logging
    - Auth: JWT secret, issuer and lifetime
    - Assets: local thumbnail root, scratch directory, public URL parts
    - MongoDB: metadata store connection and pool
    - S3: bucket, region, endpoint and credentials
    - Media tooling: ffprobe / ffmpeg executables and timeout
    - Upload limits: per-endpoint body caps

    Example usage:
        ```python
        from app.config import get_settings

        settings = get_settings()
        print(settings.public_base_url)
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(default="tubely-ingest", description="Application name used in logs")

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    debug: bool = Field(default=False, description="Enable debug mode and hot-reload")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(default=False, description="Emit structured JSON log lines")

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8091, description="Port number for the API server", ge=1, le=65535)

    cors_origins: list[str] = Field(
        default=["http://localhost:8091"],
        description="List of allowed CORS origins for the web client",
    )

    # =========================================================================
    # Auth Settings
    # =========================================================================

    jwt_secret: str = Field(
        default="development-jwt-secret-change-in-production",
        description="HS256 secret used to verify bearer credentials",
        min_length=32,
    )

    jwt_issuer: str = Field(
        default="tubely-access", description="Required `iss` claim of access tokens"
    )

    jwt_expiration_hours: int = Field(
        default=1, description="Lifetime of tokens minted by make_jwt", ge=1, le=168
    )

    # =========================================================================
    # Local Assets
    # =========================================================================

    assets_root: Path = Field(
        default=Path("./assets"), description="Directory thumbnails are written to"
    )

    scratch_dir: Path | None = Field(
        default=None,
        description="Directory for per-request video scratch files (system temp dir if unset)",
    )

    public_scheme: str = Field(default="http", description="Scheme of public asset URLs")

    public_host: str = Field(default="localhost", description="Host of public asset URLs")

    public_port: int | None = Field(
        default=None, description="Port of public asset URLs (defaults to `port`)", ge=1, le=65535
    )

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017", description="MongoDB connection URI"
    )

    mongodb_db_name: str = Field(default="tubely", description="MongoDB database name")

    mongodb_min_pool_size: int = Field(default=1, description="Minimum pool size", ge=0)

    mongodb_max_pool_size: int = Field(default=50, description="Maximum pool size", ge=1)

    # =========================================================================
    # S3/MinIO Storage Configuration
    # =========================================================================

    s3_bucket_name: str = Field(default="tubely-videos", description="Bucket videos are put to")

    s3_region: str = Field(default="us-east-2", description="AWS region of the bucket")

    s3_region_host: str | None = Field(
        default=None,
        description="Host suffix of canonical object URLs (defaults to s3.<region>.amazonaws.com)",
    )

    s3_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint URL for MinIO (None for AWS S3)"
    )

    s3_access_key_id: str | None = Field(
        default=None, description="Access key ID (falls back to the default AWS chain)"
    )

    s3_secret_access_key: str | None = Field(default=None, description="Secret access key")

    # =========================================================================
    # Media Tooling
    # =========================================================================

    ffprobe_path: str = Field(default="ffprobe", description="ffprobe executable")

    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable")

    media_tool_timeout_seconds: float = Field(
        default=300.0, description="Upper bound for a single probe or remux run", gt=0
    )

    # =========================================================================
    # Upload Limits
    # =========================================================================

    thumbnail_max_bytes: int = Field(
        default=THUMBNAIL_MAX_BYTES, description="Request body cap for thumbnail uploads", ge=1
    )

    video_max_bytes: int = Field(
        default=VIDEO_MAX_BYTES, description="Request body cap for video uploads", ge=1
    )

    owner_mismatch_status_code: int = Field(
        default=401,
        description="Status returned when the caller does not own the video (401 or 403)",
    )

    # =========================================================================
    # Model Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"debug", "info", "warning", "error", "critical"}
        normalized = v.lower()
        if normalized not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {', '.join(valid_levels)}")
        return normalized

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate that app_env is a valid environment name."""
        valid_envs = {"development", "staging", "production", "testing"}
        normalized = v.lower()
        if normalized not in valid_envs:
            raise ValueError(f"Invalid app_env '{v}'. Must be one of: {', '.join(valid_envs)}")
        return normalized

    @field_validator("public_scheme")
    @classmethod
    def validate_public_scheme(cls, v: str) -> str:
        normalized = v.lower()
        if normalized not in {"http", "https"}:
            raise ValueError(f"Invalid public_scheme '{v}'. Must be http or https")
        return normalized

    @field_validator("owner_mismatch_status_code")
    @classmethod
    def validate_owner_mismatch_status(cls, v: int) -> int:
        if v not in (401, 403):
            raise ValueError("owner_mismatch_status_code must be 401 or 403")
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string if provided as string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def object_url_host(self) -> str:
        """Host part of canonical object URLs: ``{bucket}.{object_url_host}``."""
        return self.s3_region_host or f"s3.{self.s3_region}.amazonaws.com"

    @property
    def public_base_url(self) -> str:
        """Base URL the static asset server answers on."""
        port = self.public_port or self.port
        return f"{self.public_scheme}://{self.public_host}:{port}"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get the process-wide Settings instance.

    The instance is created on first call and cached; it is frozen, so every
    consumer sees the same read-only configuration. Routes receive it through
    ``Depends(get_settings)``, which tests replace via ``dependency_overrides``.
    """
    return Settings()
