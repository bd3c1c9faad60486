"""In-process TTL cache for fetched candle series.

Entries are keyed by request identity (symbol, interval, market type) and
overwritten, never merged, when they go stale. Failed fetches are not
cached: the exception propagates and the next call fetches again.

Concurrent callers for the same key share one fetch through a per-key
asyncio.Lock.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Hashable, NamedTuple, TypeVar

from core.models.candle import CandleSeries, MarketType

logger = logging.getLogger(__name__)

# Default TTL (60 seconds - candles for an open bucket change constantly)
DEFAULT_TTL = 60.0

K = TypeVar("K", bound=Hashable)

FetchFn = Callable[[], Awaitable[CandleSeries]]


class CacheKey(NamedTuple):
    """Request identity for a history fetch."""

    symbol: str
    interval: str
    market_type: MarketType

    def __str__(self) -> str:
        return f"{self.symbol}-{self.interval}-{self.market_type.value}"


@dataclass
class CacheEntry(Generic[K]):
    key: K
    timestamp: float
    series: CandleSeries


class ResultCache(Generic[K]):
    """Time-bounded memo of candle series.

    Args:
        ttl: Seconds an entry stays fresh
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[K, CacheEntry[K]] = {}
        self._locks: dict[K, asyncio.Lock] = {}

    def _lock_for(self, key: K) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def _fresh_entry(self, key: K) -> CacheEntry[K] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.series:
            # Empty entry is treated as a miss
            del self._entries[key]
            return None
        if self._clock() - entry.timestamp > self.ttl:
            return None
        return entry

    def get(self, key: K) -> CandleSeries | None:
        """Return a copy of the fresh series for ``key``, or None."""
        entry = self._fresh_entry(key)
        if entry is None:
            return None
        return list(entry.series)

    async def get_or_fetch(self, key: K, fetch_fn: FetchFn) -> CandleSeries:
        """
        Return the cached series or fetch, store and return a new one.

        Args:
            key: Request identity
            fetch_fn: Coroutine factory producing the series

        Returns:
            Copy of the series

        Raises:
            Whatever ``fetch_fn`` raises; nothing is stored in that case.
        """
        async with self._lock_for(key):
            entry = self._fresh_entry(key)
            if entry is not None:
                logger.debug(f"[Cache Hit] {key}")
                return list(entry.series)

            logger.debug(f"[Cache Miss] {key}")
            series = await fetch_fn()
            self._entries[key] = CacheEntry(
                key=key, timestamp=self._clock(), series=list(series)
            )
            return list(series)

    def _drop_lock(self, key: K) -> None:
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def invalidate(self, key: K) -> bool:
        """Drop one entry and its idle lock. Returns True if the entry existed."""
        self._drop_lock(key)
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop all entries and every lock not currently held."""
        self._entries.clear()
        for key in list(self._locks):
            self._drop_lock(key)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
