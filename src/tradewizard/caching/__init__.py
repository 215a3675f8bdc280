"""Caching layer for provider lookups.

Provides a process-local TTL store; entries are not shared between workers.
"""

from tradewizard.caching.ttl_cache import CacheEntry, TTLCache, make_key

__all__ = ["CacheEntry", "TTLCache", "make_key"]
