"""
Gallery query service.

Turns a slice of the listing cache into browser-ready entries: a presigned
URL plus an image/video classification for every key.
"""

import asyncio
import logging
from typing import Protocol

from .cache import ListingCache
from .models import GalleryPage, MediaItem, MediaType, ObjectRecord

logger = logging.getLogger(__name__)

# Formats browsers play natively in a <video> tag
VIDEO_EXTENSIONS = (".mp4", ".webm", ".ogg")

DEFAULT_STALENESS_SECONDS = 5 * 60
DEFAULT_URL_EXPIRY_SECONDS = 3600


class UrlSigner(Protocol):
    """The part of the store client the query service needs."""

    async def get_presigned_url(self, key: str, expiry_seconds: int = 3600) -> str:
        ...


def classify_media_type(key: str) -> MediaType:
    """Classify by filename suffix only; no content is inspected."""
    if key.lower().endswith(VIDEO_EXTENSIONS):
        return MediaType.VIDEO
    return MediaType.IMAGE


class GalleryService:
    """
    Serves paginated gallery listings from the cache.

    A query that finds the cache stale refreshes it first and waits for the
    result; there is no serve-stale-while-refreshing mode.
    """

    def __init__(
        self,
        cache: ListingCache,
        signer: UrlSigner,
        staleness_seconds: float = DEFAULT_STALENESS_SECONDS,
        url_expiry_seconds: int = DEFAULT_URL_EXPIRY_SECONDS,
    ) -> None:
        self._cache = cache
        self._signer = signer
        self._staleness_seconds = staleness_seconds
        self._url_expiry_seconds = url_expiry_seconds

    async def list_page(self, limit: int = 10, offset: int = 0) -> GalleryPage:
        """
        Return one page of signed media entries.

        If any URL can't be signed the whole page fails.
        """
        if self._cache.is_stale(self._staleness_seconds):
            logger.info("Listing cache stale, refreshing before query")
            await self._cache.refresh_if_stale(self._staleness_seconds)

        page = self._cache.get_page(offset, limit)
        media = await asyncio.gather(*(self._to_media_item(record) for record in page.records))

        logger.debug(
            "Gallery page served",
            extra={"offset": offset, "limit": limit, "count": len(media)}
        )

        return GalleryPage(media=list(media), next_offset=page.next_offset)

    async def _to_media_item(self, record: ObjectRecord) -> MediaItem:
        url = await self._signer.get_presigned_url(
            record.key,
            expiry_seconds=self._url_expiry_seconds,
        )
        return MediaItem(
            url=url,
            type=classify_media_type(record.key),
            last_modified=record.last_modified,
            key=record.key,
        )
