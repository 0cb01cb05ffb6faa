"""
Shared fixtures.

Payload fixtures are just long enough to carry the magic bytes the
sniffer looks for; nothing here needs a real decodable image or video.
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.core.gallery.models import ObjectRecord
from src.infrastructure.storage.client import MockStorageClient


BASE_TIME = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_record():
    """Build records modified `minutes` after a fixed base time."""
    def _make(key: str, size: int = 100, minutes: int = 0) -> ObjectRecord:
        return ObjectRecord(key=key, size=size, last_modified=BASE_TIME + timedelta(minutes=minutes))
    return _make


@pytest.fixture
def jpeg_bytes() -> bytes:
    return b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 64


@pytest.fixture
def png_bytes() -> bytes:
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def quicktime_bytes() -> bytes:
    """ISO base media header with the QuickTime major brand."""
    return b"\x00\x00\x00\x14ftypqt  \x00\x00\x02\x00qt  " + b"\x00" * 64


@pytest.fixture
def mp4_bytes() -> bytes:
    return b"\x00\x00\x00\x18ftypisom\x00\x00\x02\x00isomiso2" + b"\x00" * 64


@pytest.fixture
def mock_storage() -> MockStorageClient:
    return MockStorageClient()


@pytest.fixture
def staging_dir(tmp_path):
    return tmp_path / "staging"
