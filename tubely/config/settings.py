"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Values such as bucket names, secrets and the asset root are read once here
and then handed to the application factory, which threads them into the
services that need them. Nothing reads these settings from a global.

Mock modes enable local development without S3, Snowflake or FFmpeg.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Tubely API"
    api_version: str = "v1"

    # Auth
    jwt_secret: str = Field(
        default="",
        description="Shared HS256 secret used to validate bearer tokens."
    )
    jwt_issuer: str = Field(
        default="tubely-access",
        description="Expected 'iss' claim on access tokens."
    )

    # S3 Storage Configuration
    s3_bucket: str = Field(
        default="tubely-videos",
        description="Bucket that receives processed videos"
    )
    s3_region: str = Field(
        default="us-east-1",
        description="Region of the bucket"
    )
    s3_access_key_id: str = Field(
        default="",
        description="S3 access key ID"
    )
    s3_secret_access_key: str = Field(
        default="",
        description="S3 secret access key"
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom endpoint for S3-compatible storage (MinIO, R2). Leave unset for AWS."
    )
    s3_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real object storage."
    )
    signed_url_expiry_seconds: int = Field(
        default=3600,
        description="Lifetime of presigned video URLs handed to clients."
    )

    # Snowflake Configuration
    snowflake_account: str = Field(
        default="",
        description="Snowflake account identifier"
    )
    snowflake_user: str = Field(
        default="",
        description="Snowflake service account username"
    )
    snowflake_password: str = Field(
        default="",
        description="Snowflake service account password"
    )
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="Path to RSA private key file for key-pair authentication"
    )
    snowflake_database: str = Field(
        default="TUBELY",
        description="Snowflake database name"
    )
    snowflake_schema: str = Field(
        default="MEDIA",
        description="Snowflake schema name"
    )
    snowflake_warehouse: str = Field(
        default="COMPUTE_WH",
        description="Snowflake warehouse for query execution"
    )
    snowflake_role: Optional[str] = Field(
        default=None,
        description="Snowflake role to use (optional)"
    )
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real Snowflake connection."
    )

    # Local storage
    assets_root: Path = Field(
        default=Path("./assets"),
        description="Directory that holds thumbnails. Served at /assets."
    )
    public_base_url: str = Field(
        default="http://localhost:8091",
        description="Externally reachable base URL used to build thumbnail links."
    )
    scratch_dir: Optional[Path] = Field(
        default=None,
        description="Directory for staged uploads. Defaults to the system temp dir."
    )

    # Upload limits
    max_video_upload_bytes: int = Field(
        default=1 << 30,
        description="Maximum video upload size (1 GiB)."
    )
    max_thumbnail_upload_mb: int = Field(
        default=10,
        description="Maximum thumbnail upload size in MB."
    )

    # FFmpeg
    ffmpeg_path: str = Field(
        default="ffmpeg",
        description="Path to the ffmpeg binary"
    )
    ffprobe_path: str = Field(
        default="ffprobe",
        description="Path to the ffprobe binary"
    )
    probe_timeout_seconds: float = Field(
        default=30.0,
        description="Upper bound for a single ffprobe run."
    )
    remux_timeout_seconds: float = Field(
        default=300.0,
        description="Upper bound for a single fast-start remux."
    )
    video_processor_mock_mode: bool = Field(
        default=False,
        description="Use a mock video processor instead of FFmpeg."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def max_thumbnail_upload_bytes(self) -> int:
        return self.max_thumbnail_upload_mb * 1024 * 1024

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        if not self.jwt_secret:
            missing.append("JWT_SECRET")

        if not self.s3_mock_mode:
            if not self.s3_bucket:
                missing.append("S3_BUCKET")
            if not self.s3_region:
                missing.append("S3_REGION")

        if not self.snowflake_mock_mode:
            if not self.snowflake_account:
                missing.append("SNOWFLAKE_ACCOUNT")
            if not self.snowflake_user:
                missing.append("SNOWFLAKE_USER")
            if not self.snowflake_password and not self.snowflake_private_key_path:
                missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Only the entry point calls this; everything else receives the
    settings from the application factory. For tests, build a
    Settings(...) directly or call get_settings.cache_clear().
    """
    return Settings()
