"""
Unit tests for the storage clients.

The S3 client is exercised against a MagicMock standing in for the boto3
client, so no network or credentials are needed.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.infrastructure.storage.client import (
    MockStorageClient,
    S3StorageClient,
    StorageConfig,
    StorageError,
    create_storage_client,
)


@pytest.fixture
def s3_client():
    config = StorageConfig(
        access_key_id="AKIATEST",
        secret_access_key="secret",
        bucket_name="gallery",
        region="eu-west-1",
    )
    client = S3StorageClient(config)
    client._s3_client = MagicMock()
    return client


class TestS3StorageClient:

    @pytest.mark.asyncio
    async def test_list_maps_contents_and_token(self, s3_client):
        modified = datetime(2024, 6, 1, tzinfo=timezone.utc)
        s3_client._s3_client.list_objects_v2.return_value = {
            "Contents": [{"Key": "a.jpg", "Size": 12, "LastModified": modified}],
            "IsTruncated": True,
            "NextContinuationToken": "tok-2",
        }

        page = await s3_client.list_objects_page("tok-1")

        s3_client._s3_client.list_objects_v2.assert_called_once_with(
            Bucket="gallery", ContinuationToken="tok-1"
        )
        assert page.records[0].key == "a.jpg"
        assert page.records[0].size == 12
        assert page.records[0].last_modified == modified
        assert page.next_token == "tok-2"

    @pytest.mark.asyncio
    async def test_empty_bucket_lists_no_records(self, s3_client):
        s3_client._s3_client.list_objects_v2.return_value = {"IsTruncated": False, "KeyCount": 0}

        page = await s3_client.list_objects_page()

        s3_client._s3_client.list_objects_v2.assert_called_once_with(Bucket="gallery")
        assert page.records == ()
        assert page.next_token is None

    @pytest.mark.asyncio
    async def test_put_sets_content_type(self, s3_client, tmp_path):
        path = tmp_path / "a.jpg"
        path.write_bytes(b"data")

        key = await s3_client.put_object("a.jpg", path, "image/jpeg")

        assert key == "a.jpg"
        s3_client._s3_client.upload_file.assert_called_once_with(
            str(path), "gallery", "a.jpg", ExtraArgs={"ContentType": "image/jpeg"}
        )

    @pytest.mark.asyncio
    async def test_presigned_url_uses_expiry(self, s3_client):
        s3_client._s3_client.generate_presigned_url.return_value = "https://signed"

        url = await s3_client.get_presigned_url("a.jpg", expiry_seconds=3600)

        assert url == "https://signed"
        s3_client._s3_client.generate_presigned_url.assert_called_once_with(
            "get_object",
            Params={"Bucket": "gallery", "Key": "a.jpg"},
            ExpiresIn=3600,
        )

    @pytest.mark.asyncio
    async def test_errors_are_wrapped(self, s3_client):
        s3_client._s3_client.list_objects_v2.side_effect = RuntimeError("connection reset")
        s3_client._s3_client.upload_file.side_effect = RuntimeError("AccessDenied")

        with pytest.raises(StorageError, match="Listing failed: connection reset"):
            await s3_client.list_objects_page()
        with pytest.raises(StorageError, match="Upload failed: AccessDenied"):
            await s3_client.put_object("a.jpg", "/tmp/a.jpg", "image/jpeg")


class TestMockStorageClient:

    @pytest.mark.asyncio
    async def test_pages_follow_continuation_tokens(self):
        storage = MockStorageClient(page_size=2)
        for name in ["a", "b", "c"]:
            storage.add_object(name, b"x")

        first = await storage.list_objects_page()
        second = await storage.list_objects_page(first.next_token)

        assert [r.key for r in first.records] == ["a", "b"]
        assert [r.key for r in second.records] == ["c"]
        assert second.next_token is None
        assert storage.list_calls == 2

    @pytest.mark.asyncio
    async def test_put_then_get(self, tmp_path):
        storage = MockStorageClient()
        path = tmp_path / "a.png"
        path.write_bytes(b"png-bytes")

        await storage.put_object("a.png", path, "image/png")

        assert await storage.get_object("a.png") == b"png-bytes"
        assert storage.content_type_of("a.png") == "image/png"

    @pytest.mark.asyncio
    async def test_missing_object_raises(self):
        storage = MockStorageClient()

        with pytest.raises(StorageError, match="not found"):
            await storage.get_object("nope")
        with pytest.raises(StorageError, match="not found"):
            await storage.get_presigned_url("nope")


class TestCreateStorageClient:

    def test_mock_mode(self):
        assert isinstance(create_storage_client(mock_mode=True), MockStorageClient)

    def test_requires_config_outside_mock_mode(self):
        with pytest.raises(ValueError, match="config is required"):
            create_storage_client()
