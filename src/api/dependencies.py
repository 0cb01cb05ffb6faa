"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be mocked for testing
- Configuration is centralized

The listing cache is process-wide state, so the cache and the clients it
talks to are created once and shared by every request.
"""

import logging
import secrets
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from ..config.settings import Settings, get_settings
from ..core.gallery.cache import ListingCache
from ..core.gallery.pipeline import UploadPipeline
from ..core.gallery.query import GalleryService
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client
from ..infrastructure.video.transcoder import TranscodeOptions, Transcoder, create_transcoder

logger = logging.getLogger(__name__)

# HTTP Basic security scheme
basic_auth = HTTPBasic(auto_error=False)

# Process-wide instances, created on first use
_storage_client: Optional[StorageClient] = None
_transcoder: Optional[Transcoder] = None
_listing_cache: Optional[ListingCache] = None


class GalleryAPIError(Exception):
    """
    Error surfaced to the client as {"error": message}.

    The application registers a handler that renders it with status_code.
    """

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def reset_dependencies() -> None:
    """Drop the shared instances. Tests call this between cases."""
    global _storage_client, _transcoder, _listing_cache
    _storage_client = None
    _transcoder = None
    _listing_cache = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_credentials(
    settings: Annotated[Settings, Depends(get_settings)],
    credentials: Optional[HTTPBasicCredentials] = Depends(basic_auth),
) -> str:
    """
    Validate HTTP Basic credentials against the shared secret.

    Comparison is constant-time. With no AUTH_PASSWORD configured every
    request is rejected. Raises 401 with a challenge so browsers prompt
    for a login.
    """
    challenge = {"WWW-Authenticate": "Basic"}

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers=challenge,
        )

    username_ok = secrets.compare_digest(
        credentials.username.encode("utf-8"),
        settings.auth_username.encode("utf-8"),
    )
    password_ok = secrets.compare_digest(
        credentials.password.encode("utf-8"),
        settings.auth_password.encode("utf-8"),
    )

    if not settings.auth_password or not (username_ok and password_ok):
        logger.warning(
            "Invalid credentials attempt",
            extra={"username": credentials.username}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers=challenge,
        )

    return credentials.username


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorageClient:
    """
    Provide the shared storage client.

    Returns either an S3 client or the in-memory mock based on settings.
    """
    global _storage_client

    if _storage_client is None:
        if settings.storage_mock_mode:
            _storage_client = create_storage_client(mock_mode=True)
            logger.info("Created shared mock storage client")
        else:
            config = StorageConfig(
                access_key_id=settings.aws_access_key_id,
                secret_access_key=settings.aws_secret_access_key,
                bucket_name=settings.s3_bucket_name,
                region=settings.aws_region,
                endpoint_url=settings.s3_endpoint_url,
            )
            _storage_client = create_storage_client(config=config)
            logger.info("Created S3 storage client")

    return _storage_client


def get_transcoder(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Transcoder:
    """Provide the shared transcoder (ffmpeg or mock)."""
    global _transcoder

    if _transcoder is None:
        options = TranscodeOptions(
            video_codec=settings.transcode_video_codec,
            preset=settings.transcode_preset,
            crf=settings.transcode_crf,
            audio_codec=settings.transcode_audio_codec,
        )
        _transcoder = create_transcoder(
            mock_mode=settings.transcoder_mock_mode,
            ffmpeg_path=settings.ffmpeg_path,
            options=options,
            timeout_seconds=settings.transcode_timeout_seconds,
        )

    return _transcoder


def get_listing_cache(
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
) -> ListingCache:
    """Provide the process-wide listing cache."""
    global _listing_cache

    if _listing_cache is None:
        _listing_cache = ListingCache(
            store=storage,
            max_size_bytes=settings.cache_max_size_bytes,
        )
        logger.info(
            "Created listing cache",
            extra={"max_size_bytes": settings.cache_max_size_bytes}
        )

    return _listing_cache


def get_gallery_service(
    settings: Annotated[Settings, Depends(get_settings)],
    cache: Annotated[ListingCache, Depends(get_listing_cache)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
) -> GalleryService:
    """
    Provide a GalleryService.

    The service itself is stateless, so a new one per request is fine;
    all state lives in the shared cache.
    """
    return GalleryService(
        cache=cache,
        signer=storage,
        staleness_seconds=settings.cache_staleness_seconds,
        url_expiry_seconds=settings.signed_url_expiry_seconds,
    )


def get_upload_pipeline(
    settings: Annotated[Settings, Depends(get_settings)],
    cache: Annotated[ListingCache, Depends(get_listing_cache)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
    transcoder: Annotated[Transcoder, Depends(get_transcoder)],
) -> UploadPipeline:
    """Provide an UploadPipeline wired to the shared cache and clients."""
    return UploadPipeline(
        store=storage,
        transcoder=transcoder,
        cache=cache,
        staging_dir=settings.staging_dir,
        max_files=settings.max_files_per_upload,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
AuthenticatedUser = Annotated[str, Depends(verify_credentials)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
ListingCacheDep = Annotated[ListingCache, Depends(get_listing_cache)]
GalleryServiceDep = Annotated[GalleryService, Depends(get_gallery_service)]
UploadPipelineDep = Annotated[UploadPipeline, Depends(get_upload_pipeline)]
