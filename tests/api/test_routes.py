"""
HTTP-level tests for the gallery API.

The app is built with mock storage and a mock transcoder injected through
dependency overrides, so uploads and listings run entirely in memory.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_storage_client, get_transcoder, reset_dependencies
from src.config.settings import get_settings
from src.infrastructure.storage.client import MockStorageClient, StorageError
from src.infrastructure.video.transcoder import MockTranscoder, TranscodeError
from src.main import create_app

AUTH = ("user", "secret")


class BrokenListingStorage(MockStorageClient):
    async def list_objects_page(self, continuation_token=None):
        raise StorageError("Listing failed: connection reset")


class UnexpectedListingStorage(MockStorageClient):
    async def list_objects_page(self, continuation_token=None):
        raise ValueError("unexpected listing payload")


class BrokenTranscoder:
    async def transcode(self, input_path, output_path):
        raise TranscodeError("FFmpeg exited with code 1: moov atom not found")


@pytest.fixture
def storage():
    return MockStorageClient(page_size=2)


@pytest.fixture
def transcoder():
    return MockTranscoder()


@pytest.fixture
def make_client(monkeypatch, tmp_path):
    """Build a TestClient around the given storage and transcoder."""
    monkeypatch.setenv("AUTH_PASSWORD", "secret")
    monkeypatch.setenv("STORAGE_MOCK_MODE", "true")
    monkeypatch.setenv("TRANSCODER_MOCK_MODE", "true")
    monkeypatch.setenv("STAGING_DIR", str(tmp_path / "staging"))
    get_settings.cache_clear()
    reset_dependencies()

    clients = []

    def _make(storage, transcoder):
        app = create_app()
        app.dependency_overrides[get_storage_client] = lambda: storage
        if transcoder is not None:
            app.dependency_overrides[get_transcoder] = lambda: transcoder
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
    get_settings.cache_clear()
    reset_dependencies()


@pytest.fixture
def client(make_client, storage, transcoder):
    return make_client(storage, transcoder)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class TestAuthentication:

    def test_gallery_requires_credentials(self, client):
        response = client.get("/gallery")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Basic"

    def test_wrong_password_rejected(self, client):
        response = client.get("/gallery", auth=("user", "wrong"))

        assert response.status_code == 401

    def test_upload_requires_credentials(self, client, jpeg_bytes):
        response = client.post("/upload", files=[("media", ("a.jpg", jpeg_bytes, "image/jpeg"))])

        assert response.status_code == 401

    def test_health_is_open(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


# ---------------------------------------------------------------------------
# Upload + Gallery
# ---------------------------------------------------------------------------

class TestUploadThenBrowse:

    def test_end_to_end_image_and_quicktime(self, client, storage, transcoder, jpeg_bytes, quicktime_bytes):
        """
        Upload a JPEG and a QuickTime clip, then list the gallery.

        The clip is converted once, both files are stored, the cache is
        refreshed by the upload, and the following query is served from
        that refreshed cache.
        """
        response = client.post(
            "/upload",
            files=[
                ("media", ("beach.jpg", jpeg_bytes, "image/jpeg")),
                ("media", ("clip.mov", quicktime_bytes, "video/quicktime")),
            ],
            auth=AUTH,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Files uploaded successfully"
        keys = [result["Key"] for result in body["results"]]
        assert len(keys) == 2
        assert keys[0].endswith(".jpg")
        assert keys[1].endswith("_converted.mp4")

        assert len(transcoder.calls) == 1
        assert storage.put_calls == 2
        list_calls_after_upload = storage.list_calls
        assert list_calls_after_upload >= 1

        response = client.get("/gallery?limit=10&offset=0", auth=AUTH)

        assert response.status_code == 200
        gallery = response.json()
        assert storage.list_calls == list_calls_after_upload
        assert gallery["nextOffset"] is None
        types = {item["key"]: item["type"] for item in gallery["media"]}
        assert types == {keys[0]: "image", keys[1]: "video"}
        for item in gallery["media"]:
            assert item["url"].startswith("mock://storage/")
            assert "lastModified" in item

    def test_gallery_pagination(self, client, storage, jpeg_bytes):
        for i in range(3):
            storage.add_object(f"photo-{i}.jpg", jpeg_bytes)

        first = client.get("/gallery?limit=2&offset=0", auth=AUTH).json()
        second = client.get(f"/gallery?limit=2&offset={first['nextOffset']}", auth=AUTH).json()

        assert len(first["media"]) == 2
        assert first["nextOffset"] == 2
        assert len(second["media"]) == 1
        assert second["nextOffset"] is None

    def test_gallery_defaults(self, client, storage, jpeg_bytes):
        for i in range(12):
            storage.add_object(f"photo-{i:02d}.jpg", jpeg_bytes)

        body = client.get("/gallery", auth=AUTH).json()

        assert len(body["media"]) == 10
        assert body["nextOffset"] == 10

    def test_offset_past_end_is_empty(self, client, storage, jpeg_bytes):
        storage.add_object("photo.jpg", jpeg_bytes)

        body = client.get("/gallery?offset=40", auth=AUTH).json()

        assert body == {"media": [], "nextOffset": None}

    @pytest.mark.parametrize("query", ["limit=0", "limit=101", "offset=-1", "limit=abc"])
    def test_invalid_query_rejected(self, client, query):
        response = client.get(f"/gallery?{query}", auth=AUTH)

        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestFailures:

    def test_too_many_files(self, client, jpeg_bytes):
        files = [("media", (f"{i}.jpg", jpeg_bytes, "image/jpeg")) for i in range(11)]

        response = client.post("/upload", files=files, auth=AUTH)

        assert response.status_code == 400
        assert "Too many files" in response.json()["error"]

    def test_transcode_failure_is_500_with_message(self, make_client, storage, jpeg_bytes, quicktime_bytes):
        client = make_client(storage, BrokenTranscoder())

        response = client.post(
            "/upload",
            files=[
                ("media", ("beach.jpg", jpeg_bytes, "image/jpeg")),
                ("media", ("clip.mov", quicktime_bytes, "video/quicktime")),
            ],
            auth=AUTH,
        )

        assert response.status_code == 500
        assert "moov atom not found" in response.json()["error"]
        # the JPEG went through anyway; the batch is not rolled back
        assert storage.put_calls == 1

    def test_listing_failure_is_500_with_message(self, make_client, transcoder):
        client = make_client(BrokenListingStorage(), transcoder)

        response = client.get("/gallery", auth=AUTH)

        assert response.status_code == 500
        assert response.json() == {"error": "Listing failed: connection reset"}

    def test_unexpected_listing_error_keeps_its_message(self, make_client, transcoder):
        client = make_client(UnexpectedListingStorage(), transcoder)

        response = client.get("/gallery", auth=AUTH)

        assert response.status_code == 500
        assert response.json() == {"error": "unexpected listing payload"}


# ---------------------------------------------------------------------------
# Missing ffmpeg
# ---------------------------------------------------------------------------

class TestWithoutFFmpeg:
    """A real transcoder pointed at a binary that doesn't exist."""

    @pytest.fixture
    def client(self, make_client, monkeypatch, storage):
        monkeypatch.setenv("TRANSCODER_MOCK_MODE", "false")
        monkeypatch.setenv("FFMPEG_PATH", "/nonexistent/ffmpeg")
        get_settings.cache_clear()
        return make_client(storage, None)

    def test_images_still_upload(self, client, storage, jpeg_bytes):
        response = client.post(
            "/upload",
            files=[("media", ("beach.jpg", jpeg_bytes, "image/jpeg"))],
            auth=AUTH,
        )

        assert response.status_code == 200
        assert storage.put_calls == 1

    def test_quicktime_fails_with_ffmpeg_message(self, client, storage, quicktime_bytes):
        response = client.post(
            "/upload",
            files=[("media", ("clip.mov", quicktime_bytes, "video/quicktime"))],
            auth=AUTH,
        )

        assert response.status_code == 500
        assert "FFmpeg not found" in response.json()["error"]
        assert storage.put_calls == 0
