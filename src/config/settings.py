"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock modes enable local development without a bucket or ffmpeg.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Names are case-insensitive, so AWS_REGION maps to aws_region.
    """

    # API Configuration
    api_title: str = "Media Gallery API"
    api_version: str = "v1"

    # Authentication
    auth_username: str = Field(
        default="user",
        description="Username for HTTP Basic authentication"
    )
    auth_password: str = Field(
        default="",
        description="Shared secret for HTTP Basic authentication. Requests are rejected while unset."
    )

    # S3 Storage Configuration
    aws_region: str = Field(
        default="us-east-1",
        description="Region of the bucket"
    )
    aws_access_key_id: str = Field(
        default="",
        description="Access key ID for the object store"
    )
    aws_secret_access_key: str = Field(
        default="",
        description="Secret access key for the object store"
    )
    s3_bucket_name: str = Field(
        default="",
        description="Bucket holding the gallery media"
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom endpoint for S3-compatible stores (R2, MinIO). AWS is used when unset."
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of a real bucket. Enables local dev without credentials."
    )

    # Listing cache
    cache_max_size_bytes: int = Field(
        default=2 * 1024 * 1024 * 1024,
        description="Byte ceiling across all cached records. Oldest records are evicted first."
    )
    cache_staleness_seconds: float = Field(
        default=300.0,
        description="Age after which a gallery query refreshes the listing before answering."
    )
    signed_url_expiry_seconds: int = Field(
        default=3600,
        description="Lifetime of presigned read URLs handed to the browser."
    )

    # Uploads
    max_files_per_upload: int = Field(
        default=10,
        description="Maximum files accepted in one upload request."
    )
    staging_dir: str = Field(
        default="temp",
        description="Directory where uploads are staged before transcoding and upload."
    )

    # Transcoding
    ffmpeg_path: str = Field(
        default="ffmpeg",
        description="Path to the ffmpeg binary (default assumes it's in PATH)"
    )
    transcode_video_codec: str = Field(
        default="libx264",
        description="Video codec for normalized output. H.264 plays in every browser."
    )
    transcode_preset: str = Field(
        default="fast",
        description="Encoder speed/quality preset"
    )
    transcode_crf: int = Field(
        default=23,
        description="Constant rate factor for the video encoder"
    )
    transcode_audio_codec: str = Field(
        default="copy",
        description="Audio codec for normalized output. 'copy' keeps the source audio untouched."
    )
    transcode_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Kill ffmpeg after this many seconds. No limit when unset."
    )
    transcoder_mock_mode: bool = Field(
        default=False,
        description="Copy files instead of running ffmpeg. Enables local dev without ffmpeg."
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

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        if not self.auth_password:
            missing.append("AUTH_PASSWORD")

        # Bucket credentials only required if not in mock mode
        if not self.storage_mock_mode:
            if not self.s3_bucket_name:
                missing.append("S3_BUCKET_NAME")
            if not self.aws_access_key_id:
                missing.append("AWS_ACCESS_KEY_ID")
            if not self.aws_secret_access_key:
                missing.append("AWS_SECRET_ACCESS_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
