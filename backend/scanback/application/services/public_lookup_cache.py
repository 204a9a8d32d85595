"""Public lookup cache: TTL cache with in-flight request coalescing.

Sits in front of the record store on the unauthenticated read path. A popular
tag scanned many times in a short window costs one store query per TTL
window, no matter how many lookups arrive concurrently.

Usage:
    cache = PublicLookupCache(store.find_public_view, ttl_seconds=600)
    view = await cache.get("A1B2C3D4E5F6")
    ...
    cache.invalidate("A1B2C3D4E5F6")   # after any mutation of that code
"""

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from scanback.application.services.store_timeout import with_store_timeout
from scanback.domain.entities import PublicTagView
from scanback.domain.exceptions import TagNotFoundError

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[PublicTagView | None]]


@dataclass
class _CacheEntry:
    view: PublicTagView
    inserted_at: float


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    coalesced: int = 0
    evictions: int = 0


class PublicLookupCache:
    """In-process cache keyed by code.

    Concurrency rules (single asyncio event loop):
      * the in-flight registry is checked and filled with no ``await`` in
        between, so at most one fetch per code runs at a time;
      * waiters await the shared fetch through ``asyncio.shield`` so a caller
        giving up never cancels it for the others;
      * the registry entry is dropped when the fetch ends, whatever the outcome;
      * ``invalidate`` detaches a running fetch so a read that started before a
        mutation can never repopulate the cache afterwards.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        ttl_seconds: float = 600.0,
        fetch_timeout: float = 5.0,
        sweep_interval: float = 60.0,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._fetcher = fetcher
        self._ttl = ttl_seconds
        self._fetch_timeout = fetch_timeout
        self._sweep_interval = sweep_interval
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, _CacheEntry] = OrderedDict()
        self._in_flight: dict[str, asyncio.Task[PublicTagView | None]] = {}
        self._last_sweep = clock()
        self._stats = CacheStats()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, code: object) -> bool:
        return code in self._entries

    def in_flight(self, code: str) -> bool:
        return code in self._in_flight

    async def get(self, code: str) -> PublicTagView:
        """Return the public view for ``code``.

        Raises:
            TagNotFoundError: the store has no record for ``code`` (not cached).
            StoreTimeoutError: the shared fetch missed its deadline.
        """
        entry = self._entries.get(code)
        if entry is not None:
            if self._clock() - entry.inserted_at < self._ttl:
                self._stats.hits += 1
                return entry.view
            del self._entries[code]
            self._stats.evictions += 1

        task = self._in_flight.get(code)
        if task is None:
            self._stats.misses += 1
            task = asyncio.create_task(self._fetch(code), name=f"public-lookup:{code}")
            task.add_done_callback(self._log_failure)
            self._in_flight[code] = task
        else:
            self._stats.coalesced += 1

        view = await asyncio.shield(task)
        if view is None:
            raise TagNotFoundError(code)
        return view

    async def _fetch(self, code: str) -> PublicTagView | None:
        current = asyncio.current_task()
        try:
            view = await with_store_timeout(
                self._fetcher(code),
                code=code,
                operation="find_public_view",
                timeout=self._fetch_timeout,
            )
            # Skip the insert if invalidate() detached this fetch meanwhile
            if view is not None and self._in_flight.get(code) is current:
                self._store(code, view)
            return view
        finally:
            if self._in_flight.get(code) is current:
                del self._in_flight[code]

    def _store(self, code: str, view: PublicTagView) -> None:
        now = self._clock()
        self._entries.pop(code, None)
        self._entries[code] = _CacheEntry(view=view, inserted_at=now)
        if now - self._last_sweep >= self._sweep_interval:
            self.sweep()
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
            self._stats.evictions += 1

    @staticmethod
    def _log_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and not isinstance(exc, TagNotFoundError):
            logger.warning("Public lookup fetch failed: %s", exc)

    def invalidate(self, code: str) -> bool:
        """Evict ``code`` and detach any running fetch. True if an entry was dropped."""
        self._in_flight.pop(code, None)
        removed = self._entries.pop(code, None) is not None
        if removed:
            logger.debug("Evicted %s from public lookup cache", code)
        return removed

    def sweep(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        self._last_sweep = now
        expired = [
            code
            for code, entry in self._entries.items()
            if now - entry.inserted_at >= self._ttl
        ]
        for code in expired:
            del self._entries[code]
        if expired:
            self._stats.evictions += len(expired)
            logger.debug("Swept %d expired lookup entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self._in_flight.clear()
