"""In-process TTL cache for provider lookups.

Cache Keys:
- hs:classify:{normalized_description} → ranked provider candidates
- hs:children:{level}:{parent_code} → provider child listings
- hs:examples:{code} → provider product examples
- market:{market_code}:{field}:{categories} → market data fetches

The store is a single-process map with no locking; it is not shared across
workers.
"""

from __future__ import annotations

import hashlib
import json
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

_MISSING = object()


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class TTLCache(Generic[T]):
    """String-keyed store bounded by a time-to-live and an entry count.

    Expired entries are removed lazily on read. When the store is full, the
    least-recently-inserted entry is evicted before a new key is inserted.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry[T]]" = OrderedDict()

    # -------------------------------------------------------------------------
    # Core operations
    # -------------------------------------------------------------------------

    def get(self, key: str) -> Optional[T]:
        """Return the cached value or ``None`` on a miss or expiry."""

        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: T) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, _MISSING) is not _MISSING

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    # -------------------------------------------------------------------------
    # Maintenance and helpers
    # -------------------------------------------------------------------------

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""

        now = self._clock()
        stale = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in stale:
            del self._entries[key]
        return len(stale)

    async def get_or_set(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value, computing and storing it on a miss.

        Args:
            key: Cache key
            factory: Coroutine function producing the value

        Returns:
            Cached or freshly computed value. Exceptions from ``factory``
            propagate and nothing is stored.
        """

        cached = self.get(key)
        if cached is not None:
            return cached
        value = await factory()
        self.set(key, value)
        return value


def make_key(namespace: str, payload: Any) -> str:
    """Build a stable cache key from a namespace and a JSON-serializable payload."""

    serialized = json.dumps(payload, sort_keys=True, default=str)
    digest = hashlib.sha256(serialized.encode("utf-8")).hexdigest()
    return f"{namespace}:{digest[:32]}"
