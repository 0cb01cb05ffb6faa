"""
Domain models for the media gallery.

These models have no dependencies on FastAPI, boto3 or ffmpeg. The listing
cache, upload pipeline and query service pass them between each other and
the infrastructure layer translates to and from them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


class FormatTag(Enum):
    """Container formats recognized by content sniffing."""
    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    WEBP = "webp"
    BMP = "bmp"
    TIFF = "tiff"
    HEIC = "heic"
    MP4 = "mp4"
    QUICKTIME = "quicktime"
    WEBM = "webm"
    MATROSKA = "matroska"
    AVI = "avi"
    OGG = "ogg"
    UNKNOWN = "unknown"


class MediaType(Enum):
    """How the browser client should render an item."""
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class ObjectRecord:
    """
    One stored object as known to the listing cache.

    Frozen because records are snapshots of the store at listing time.
    A refresh replaces them, it never edits them.
    """
    key: str
    size: int
    last_modified: datetime


@dataclass(frozen=True)
class ObjectListingPage:
    """A single page of a store listing."""
    records: tuple[ObjectRecord, ...]
    next_token: Optional[str] = None


@dataclass(frozen=True)
class CacheSnapshot:
    """
    Complete listing state installed by one refresh.

    Readers grab the snapshot reference once and work from it, so a
    concurrent refresh can never show them a half-built listing.
    """
    records: tuple[ObjectRecord, ...] = ()
    refreshed_at: Optional[datetime] = None

    @property
    def total_size(self) -> int:
        return sum(record.size for record in self.records)


@dataclass(frozen=True)
class CachePage:
    """A slice of the cached listing."""
    records: tuple[ObjectRecord, ...]
    next_offset: Optional[int] = None


@dataclass(frozen=True)
class IncomingFile:
    """
    A file received from the client.

    Both filename and content_type are client-declared and only partly
    trusted: the name supplies the extension, the type is stored as
    object metadata, and the actual format is sniffed from the bytes.
    """
    filename: str
    content_type: str
    data: bytes


@dataclass
class StagedUpload:
    """
    Working state for one file moving through the upload pipeline.

    Owned by a single pipeline invocation. final_path starts out equal to
    staging_path and moves to the converted artifact after a transcode.
    """
    original_name: str
    extension: str
    staging_path: Path
    detected_format: FormatTag = FormatTag.UNKNOWN
    final_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.final_path is None:
            self.final_path = self.staging_path

    @property
    def was_transcoded(self) -> bool:
        return self.final_path != self.staging_path

    @property
    def object_key(self) -> str:
        """Store key derived from the final artifact's filename."""
        return self.final_path.name


@dataclass(frozen=True)
class UploadResult:
    """Outcome of one successfully uploaded file."""
    key: str


@dataclass(frozen=True)
class MediaItem:
    """A gallery entry ready for the browser."""
    url: str
    type: MediaType
    last_modified: datetime
    key: str


@dataclass
class GalleryPage:
    """One page of the gallery listing."""
    media: list[MediaItem] = field(default_factory=list)
    next_offset: Optional[int] = None
