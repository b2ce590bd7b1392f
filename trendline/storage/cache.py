"""In-memory TTL cache shared by every fetch path."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    cached_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.cached_at > self.ttl


class TTLCache:
    """
    Keyed cache with per-entry expiration.

    Expired entries are evicted lazily when read; there is no background
    sweeper. The cache never raises: a failure to read is reported as a miss.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if entry.is_expired(self._clock()):
            self._entries.pop(key, None)
            self._evictions += 1
            self._misses += 1
            logger.debug(f"Cache expired: {key}")
            return None

        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        self._entries[key] = CacheEntry(key=key, value=value, cached_at=self._clock(), ttl=float(ttl))

    async def get_or_fetch(self, key: str, ttl: float, fetch: Callable[[], Awaitable[Any]]) -> Any:
        """Cached value for ``key``, else await ``fetch()`` and cache its result. Fetch errors propagate."""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = await fetch()
        if value is not None:
            self.set(key, value, ttl)
        return value

    def invalidate(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``; returns the number dropped."""
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.debug(f"Invalidated {len(doomed)} cache entries for prefix {prefix!r}")
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def stats(self) -> Dict[str, Any]:
        total = self._hits + self._misses
        return {
            'entries': len(self._entries),
            'hits': self._hits,
            'misses': self._misses,
            'evictions': self._evictions,
            'hit_rate': round(self._hits / total, 3) if total else 0.0,
        }
