"""
Object storage client for gallery media.

Supports AWS S3 and S3-compatible stores (Cloudflare R2, MinIO) through
boto3, with a mock mode for local development.

boto3 is synchronous, so every call is pushed onto a worker thread with
asyncio.to_thread. That lets an upload batch or a page of presigned URLs
proceed concurrently instead of serializing on the event loop.

Mock mode stores objects in memory, enabling API testing without
provisioning a bucket.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol, Union

from ...core.gallery.models import ObjectListingPage, ObjectRecord

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """
    Configuration for S3-compatible storage.

    endpoint_url stays None for AWS itself; set it for R2 or MinIO.
    """
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Using a protocol means tests can provide mocks and we can
    swap storage backends without changing dependent code.
    """

    async def list_objects_page(
        self,
        continuation_token: Optional[str] = None,
    ) -> ObjectListingPage:
        """Return one page of the bucket listing."""
        ...

    async def get_object(self, key: str) -> bytes:
        """Download object data by key."""
        ...

    async def put_object(
        self,
        key: str,
        file_path: Union[str, Path],
        content_type: str,
    ) -> str:
        """Upload a local file and return its key."""
        ...

    async def get_presigned_url(
        self,
        key: str,
        expiry_seconds: int = 3600,
    ) -> str:
        """Generate temporary download URL."""
        ...


class S3StorageClient:
    """
    S3 object storage client.

    Uses boto3's managed transfer for uploads, which switches to multipart
    for large videos on its own.
    """

    def __init__(self, config: StorageConfig) -> None:
        """
        Initialize the boto3 client.

        We import boto3 here (not at module level) because mock mode
        doesn't need it.
        """
        import boto3
        from botocore.config import Config

        self._config = config

        # v4 signatures are required for presigned URLs in newer regions and on R2
        boto_config = Config(signature_version="s3v4")

        self._s3_client = boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized S3 storage client",
            extra={
                "bucket": config.bucket_name,
                "region": config.region,
                "endpoint": config.endpoint_url,
            }
        )

    async def list_objects_page(
        self,
        continuation_token: Optional[str] = None,
    ) -> ObjectListingPage:
        """
        Fetch one page of ListObjectsV2.

        An empty bucket has no 'Contents' key at all, so that case
        yields an empty page rather than an error.
        """
        params = {"Bucket": self._config.bucket_name}
        if continuation_token:
            params["ContinuationToken"] = continuation_token

        try:
            response = await asyncio.to_thread(self._s3_client.list_objects_v2, **params)
        except Exception as e:
            logger.error(
                "Failed to list objects",
                extra={"bucket": self._config.bucket_name, "error": str(e)}
            )
            raise StorageError(f"Listing failed: {e}")

        records = tuple(
            ObjectRecord(
                key=obj["Key"],
                size=obj["Size"],
                last_modified=obj["LastModified"],
            )
            for obj in response.get("Contents", [])
        )
        next_token = response.get("NextContinuationToken") if response.get("IsTruncated") else None

        return ObjectListingPage(records=records, next_token=next_token)

    async def get_object(self, key: str) -> bytes:
        """Download object data from the bucket."""
        try:
            response = await asyncio.to_thread(
                self._s3_client.get_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
            return await asyncio.to_thread(response["Body"].read)

        except Exception as e:
            logger.error(
                "Failed to download object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Download failed: {e}")

    async def put_object(
        self,
        key: str,
        file_path: Union[str, Path],
        content_type: str,
    ) -> str:
        """Upload a staged file under ``key`` tagged with ``content_type``."""
        try:
            await asyncio.to_thread(
                self._s3_client.upload_file,
                str(file_path),
                self._config.bucket_name,
                key,
                ExtraArgs={"ContentType": content_type},
            )

            logger.info(
                "Uploaded object",
                extra={"key": key, "content_type": content_type}
            )

            return key

        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}")

    async def get_presigned_url(
        self,
        key: str,
        expiry_seconds: int = 3600,
    ) -> str:
        """
        Generate a temporary download URL.

        Presigned URLs let the browser fetch media straight from the
        bucket without routing bytes through this service.
        """
        try:
            return await asyncio.to_thread(
                self._s3_client.generate_presigned_url,
                "get_object",
                Params={
                    "Bucket": self._config.bucket_name,
                    "Key": key,
                },
                ExpiresIn=expiry_seconds,
            )

        except Exception as e:
            logger.error(
                "Failed to generate presigned URL",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Presigned URL generation failed: {e}")


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class _StoredObject:
    data: bytes
    content_type: str
    last_modified: datetime


class MockStorageClient:
    """
    In-memory storage for local development.

    This mock enables testing the full API flow without provisioning
    a real bucket. Objects live in a dictionary, listing pages are cut at
    page_size so pagination gets exercised, and "URLs" are mock URIs.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self, page_size: int = 1000) -> None:
        self._objects: dict[str, _StoredObject] = {}
        self._page_size = page_size
        self.list_calls = 0
        self.put_calls = 0
        logger.info("Initialized mock storage client (in-memory)")

    def add_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        last_modified: Optional[datetime] = None,
    ) -> None:
        """Seed an object directly, bypassing the upload path."""
        self._objects[key] = _StoredObject(
            data=data,
            content_type=content_type,
            last_modified=last_modified or datetime.now(timezone.utc),
        )

    def content_type_of(self, key: str) -> str:
        return self._objects[key].content_type

    async def list_objects_page(
        self,
        continuation_token: Optional[str] = None,
    ) -> ObjectListingPage:
        """List keys in lexical order, the way S3 does."""
        self.list_calls += 1

        keys = sorted(self._objects)
        start = int(continuation_token) if continuation_token else 0
        page_keys = keys[start:start + self._page_size]
        end = start + len(page_keys)

        records = tuple(
            ObjectRecord(
                key=key,
                size=len(self._objects[key].data),
                last_modified=self._objects[key].last_modified,
            )
            for key in page_keys
        )
        next_token = str(end) if end < len(keys) else None

        return ObjectListingPage(records=records, next_token=next_token)

    async def get_object(self, key: str) -> bytes:
        """Retrieve object from memory."""
        if key not in self._objects:
            raise StorageError(f"Object not found: {key}")

        return self._objects[key].data

    async def put_object(
        self,
        key: str,
        file_path: Union[str, Path],
        content_type: str,
    ) -> str:
        """Store a copy of the file in memory."""
        self.put_calls += 1
        data = await asyncio.to_thread(Path(file_path).read_bytes)
        self.add_object(key, data, content_type=content_type)

        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(data)}
        )

        return key

    async def get_presigned_url(
        self,
        key: str,
        expiry_seconds: int = 3600,
    ) -> str:
        """Return a mock URL for the object."""
        if key not in self._objects:
            raise StorageError(f"Object not found: {key}")

        return f"mock://storage/{key}?expires={expiry_seconds}"


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        StorageClient implementation (S3 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)
