"""
In-memory listing cache for the gallery.

Holds a sorted, size-bounded snapshot of every object in the bucket so that
gallery pages can be cut without listing the store on each request.

The cache is a "most recent content that fits" view: eviction is driven by
when objects were modified in the store, not by how often they are viewed.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from .models import CachePage, CacheSnapshot, ObjectListingPage, ObjectRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE_BYTES = 2 * 1024 * 1024 * 1024  # 2 GB


class ObjectLister(Protocol):
    """The part of the store client the cache needs."""

    async def list_objects_page(
        self,
        continuation_token: Optional[str] = None,
    ) -> ObjectListingPage:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def order_records(records: list[ObjectRecord]) -> list[ObjectRecord]:
    """
    Drop duplicate keys and sort newest first.

    When a key shows up twice, the most recently modified copy wins.
    Ties on last_modified fall back to key order so the result is stable.
    """
    latest: dict[str, ObjectRecord] = {}
    for record in records:
        current = latest.get(record.key)
        if current is None or record.last_modified > current.last_modified:
            latest[record.key] = record

    ordered = sorted(latest.values(), key=lambda r: r.key)
    ordered.sort(key=lambda r: r.last_modified, reverse=True)
    return ordered


def enforce_size_limit(
    records: list[ObjectRecord],
    max_size_bytes: int,
) -> list[ObjectRecord]:
    """
    Evict the oldest records until the total size fits the budget.

    Expects records sorted newest first, so the oldest sits at the tail.
    Returns the input unchanged when already under budget.
    """
    total_size = sum(record.size for record in records)
    if total_size <= max_size_bytes:
        return records

    kept = list(records)
    while total_size > max_size_bytes and kept:
        removed = kept.pop()
        total_size -= removed.size

    logger.info(
        "Evicted records over cache budget",
        extra={
            "evicted": len(records) - len(kept),
            "kept": len(kept),
            "total_size": total_size,
            "max_size_bytes": max_size_bytes,
        }
    )
    return kept


class ListingCache:
    """
    Process-wide snapshot of the bucket listing.

    The whole state lives in one immutable CacheSnapshot. A refresh builds
    the replacement off to the side and swaps the reference in a single
    assignment, so a reader sees either the old listing or the new one.

    Refreshes are serialized and coalesced. Every call takes a ticket; an
    enumeration covers all tickets issued before it started. A caller whose
    ticket is already covered when it gets the lock just returns the
    installed snapshot. This way a refresh requested after an upload always
    sees that upload, and an older enumeration can never be installed over
    a newer one.
    """

    def __init__(
        self,
        store: ObjectLister,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._max_size_bytes = max_size_bytes
        self._clock = clock
        self._snapshot = CacheSnapshot()
        self._lock = asyncio.Lock()
        self._tickets_issued = 0
        self._tickets_covered = 0

    @property
    def snapshot(self) -> CacheSnapshot:
        return self._snapshot

    @property
    def max_size_bytes(self) -> int:
        return self._max_size_bytes

    @property
    def last_refreshed_at(self) -> Optional[datetime]:
        return self._snapshot.refreshed_at

    @property
    def total_size(self) -> int:
        return self._snapshot.total_size

    def __len__(self) -> int:
        return len(self._snapshot.records)

    def is_stale(self, threshold_seconds: float) -> bool:
        """True if never refreshed or older than threshold_seconds."""
        refreshed_at = self._snapshot.refreshed_at
        if refreshed_at is None:
            return True
        age = (self._clock() - refreshed_at).total_seconds()
        return age > threshold_seconds

    def get_page(self, offset: int, limit: int) -> CachePage:
        """
        Slice the current snapshot.

        next_offset is offset + limit while records remain past the page,
        otherwise None. Does not refresh.
        """
        if offset < 0:
            raise ValueError("offset cannot be negative")
        if limit <= 0:
            raise ValueError("limit must be positive")

        records = self._snapshot.records
        page = records[offset:offset + limit]
        next_offset = offset + limit if offset + limit < len(records) else None

        return CachePage(records=page, next_offset=next_offset)

    async def refresh(self) -> CacheSnapshot:
        """
        Re-list the store and install a new snapshot.

        The enumeration that satisfies this call always starts after the
        call was made, so files written just before are visible. Failure
        of any listing page propagates and leaves the previous snapshot in
        place.
        """
        self._tickets_issued += 1
        ticket = self._tickets_issued

        async with self._lock:
            if self._tickets_covered >= ticket:
                logger.debug("Refresh satisfied by a concurrent enumeration", extra={"ticket": ticket})
                return self._snapshot
            return await self._enumerate()

    async def refresh_if_stale(self, threshold_seconds: float) -> CacheSnapshot:
        """
        Refresh only if the cache is stale once the lock is held.

        Callers that queue behind an in-flight refresh share its result
        instead of listing the store again.
        """
        async with self._lock:
            if not self.is_stale(threshold_seconds):
                logger.debug("Stale refresh satisfied by a concurrent enumeration")
                return self._snapshot
            return await self._enumerate()

    async def _enumerate(self) -> CacheSnapshot:
        # caller holds self._lock
        covers = self._tickets_issued
        records = await self._fetch_all_records()
        records = enforce_size_limit(order_records(records), self._max_size_bytes)

        snapshot = CacheSnapshot(records=tuple(records), refreshed_at=self._clock())
        self._snapshot = snapshot
        self._tickets_covered = covers

        logger.info(
            "Listing cache refreshed",
            extra={"records": len(snapshot.records), "total_size": snapshot.total_size}
        )
        return snapshot

    async def _fetch_all_records(self) -> list[ObjectRecord]:
        """Follow continuation tokens until the listing is exhausted."""
        records: list[ObjectRecord] = []
        token: Optional[str] = None
        pages = 0

        while True:
            page = await self._store.list_objects_page(token)
            records.extend(page.records)
            pages += 1
            token = page.next_token
            if not token:
                break

        logger.debug("Fetched store listing", extra={"pages": pages, "objects": len(records)})
        return records
