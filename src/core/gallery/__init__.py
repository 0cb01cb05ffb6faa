"""
Media gallery logic.

Contains the listing cache, the upload pipeline, the query service and
content sniffing.
"""

from .cache import ListingCache
from .models import (
    CachePage,
    CacheSnapshot,
    FormatTag,
    GalleryPage,
    IncomingFile,
    MediaItem,
    MediaType,
    ObjectListingPage,
    ObjectRecord,
    StagedUpload,
    UploadResult,
)
from .pipeline import UploadBatchError, UploadPipeline
from .query import GalleryService, classify_media_type
from .sniffing import requires_transcode, sniff, sniff_file

__all__ = [
    "CachePage",
    "CacheSnapshot",
    "FormatTag",
    "GalleryPage",
    "GalleryService",
    "IncomingFile",
    "ListingCache",
    "MediaItem",
    "MediaType",
    "ObjectListingPage",
    "ObjectRecord",
    "StagedUpload",
    "UploadBatchError",
    "UploadPipeline",
    "UploadResult",
    "classify_media_type",
    "requires_transcode",
    "sniff",
    "sniff_file",
]
