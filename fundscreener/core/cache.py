"""
In-memory LRU cache with per-entry expiry for assembled fund responses.

Screener traffic is dominated by a handful of popular screens ("Equity,
Direct, sorted by 3y return"), so keeping recently *used* responses around
for a few seconds removes most of the fan-out queries from the hot path.

- Each entry carries its own deadline; ``set(..., ttl=...)`` may override the
  default.
- Reads refresh recency; when ``max_size`` is reached the least recently used
  entry is dropped.
- ``invalidate(*prefixes)`` drops every key under the given namespaces (the
  seed script clears ``mutual_funds:`` after loading rows).

No method awaits, so the event loop never interleaves two operations.
"""

import logging
import time
from collections import OrderedDict
from typing import Any, Optional

from fundscreener.core.config import settings

logger = logging.getLogger(__name__)


class CacheEntry:
    """A cached value and the monotonic time after which it is stale."""

    __slots__ = ("value", "expires_at")

    def __init__(self, value: Any, ttl: float):
        self.value = value
        self.expires_at = time.monotonic() + ttl

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at


class TTLCache:
    """
    OrderedDict-backed LRU cache with expiry.

    Parameters
    ----------
    ttl : float
        Default lifetime of an entry, in seconds.
    max_size : int
        Capacity; the least recently used entry is evicted beyond it.
    enabled : bool
        When False, reads always miss and writes are dropped.
    """

    def __init__(self, ttl: float = 30.0, max_size: int = 1000, enabled: bool = True):
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._ttl = ttl
        self._max_size = max_size
        self._enabled = enabled
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Optional[Any]:
        if not self._enabled:
            return None

        entry = self._entries.get(key)
        if entry is None or entry.expired:
            if entry is not None:
                del self._entries[key]
            self._misses += 1
            return None

        self._entries.move_to_end(key)
        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        if not self._enabled:
            return

        self._entries[key] = CacheEntry(value, self._ttl if ttl is None else ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("Cache evicted %s", evicted)

    def invalidate(self, *prefixes: str) -> int:
        """Drop every key starting with one of ``prefixes``; return how many went."""
        stale = [key for key in self._entries if key.startswith(prefixes)]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.info("Cache invalidated %d entries under %s", len(stale), ", ".join(prefixes))
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and not entry.expired

    def get_stats(self) -> dict:
        """Counters reported by ``/health``."""
        lookups = self._hits + self._misses
        return {
            "enabled": self._enabled,
            "size": len(self._entries),
            "max_size": self._max_size,
            "ttl_seconds": self._ttl,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "hit_rate": f"{self._hits / lookups:.1%}" if lookups else "N/A",
        }


cache = TTLCache(
    ttl=settings.CACHE_TTL,
    max_size=settings.CACHE_MAX_SIZE,
    enabled=settings.CACHE_ENABLED,
)
