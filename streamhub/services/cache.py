#!/usr/bin/env python3
"""
Cache Module

A small keyed store with per-entry TTL and lazy expiry, and the registry
that hands out one named cache per concern. Entries expire on read when
they have not been touched within their TTL; when a cache is full the
entry with the oldest last access is evicted.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import time, logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

# setup the logger
logger = logging.getLogger(__name__)

"""
A single cached value with its access time and ttl
"""
@dataclass
class CacheEntry:
    value: Any
    last_accessed: float
    ttl: float

"""
Keyed store with per-entry TTL and lazy expiry

@param name: str Name used in stats and logs
@param max_size: int Maximum entries before eviction
@param clock: callable Monotonic clock returning seconds
"""
class Cache:

    def __init__(self, name: str, max_size: int = 1000, clock: Callable[[], float] = time.monotonic):

        # setup the internals
        self.name = name
        self.max_size = max_size
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    """
    Get a value from the cache
    Expired entries are removed on read. A hit refreshes the entry's
    last access time unless update_ttl is False.

    @param key: hashable Cache key
    @param update_ttl: bool Refresh the last access time on a hit
    @return any: The cached value or None
    """
    def get(self, key: Hashable, update_ttl: bool = True) -> Optional[Any]:

        # hold the entry
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        # check the expiry
        now = self._clock()
        if now - entry.last_accessed > entry.ttl:
            del self._entries[key]
            self.misses += 1
            return None

        # touch it and return the value
        if update_ttl:
            entry.last_accessed = now
        self.hits += 1
        return entry.value

    """
    Set a value in the cache
    Evicts the least recently accessed entry when the cache is full.

    @param key: hashable Cache key
    @param value: any Value to store
    @param ttl: float Time to live in seconds
    @return None
    """
    def set(self, key: Hashable, value: Any, ttl: float) -> None:

        # make room if this is a new key and we are full
        if key not in self._entries and len(self._entries) >= self.max_size:
            self._evict_oldest()

        # store it
        self._entries[key] = CacheEntry(value=value, last_accessed=self._clock(), ttl=ttl)

    """
    Replace the value of an existing entry, keeping its ttl

    @param key: hashable Cache key
    @param value: any New value
    @return bool: False when the key is not cached
    """
    def update(self, key: Hashable, value: Any) -> bool:

        # grab the entry
        entry = self._entries.get(key)
        if entry is None:
            return False

        # update it
        entry.value = value
        entry.last_accessed = self._clock()
        return True

    def delete(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    """
    Memoize an awaitable call
    Returns the cached value for key if present, otherwise awaits fn with
    the given arguments and caches a non-None result.

    @param fn: callable Coroutine function to call on a miss
    @param key: hashable Cache key
    @param ttl: float Time to live in seconds
    @return any: The cached or freshly computed value
    """
    async def wrap(self, fn: Callable[..., Awaitable[Any]], key: Hashable, ttl: float, *args, **kwargs) -> Any:

        # check the cache first
        cached = self.get(key)
        if cached is not None:
            return cached

        # compute and store it
        value = await fn(*args, **kwargs)
        if value is not None:
            self.set(key, value, ttl)
        return value

    """
    Remove the entry with the oldest last access time

    @return None
    """
    def _evict_oldest(self) -> None:

        # nothing to do if we're empty
        if not self._entries:
            return

        # find and drop the oldest
        oldest_key = min(self._entries, key=lambda k: self._entries[k].last_accessed)
        del self._entries[oldest_key]
        logger.debug(f"Cache {self.name} evicted {oldest_key!r}")

    def stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, update_ttl=False) is not None

"""
Registry of named caches

Built once at startup and passed to every component that needs a cache,
so that components asking for the same name share the same store.
"""
class CacheRegistry:

    """
    Initialize the CacheRegistry

    @param max_size: int Default maximum size for new caches
    @param clock: callable Clock handed to every cache
    """
    def __init__(self, max_size: int = 1000, clock: Callable[[], float] = time.monotonic):

        # setup the internals
        self.max_size = max_size
        self._clock = clock
        self._caches: Dict[str, Cache] = {}

    """
    Get a cache by name, creating it on first use

    @param name: str Cache name
    @param max_size: int Size for a newly created cache
    @return Cache: The named cache
    """
    def get(self, name: str, max_size: Optional[int] = None) -> Cache:

        # create it if we don't have it yet
        if name not in self._caches:
            self._caches[name] = Cache(name, max_size or self.max_size, self._clock)
        return self._caches[name]

    def stats(self) -> Dict[str, Dict[str, Any]]:
        return {name: cache.stats() for name, cache in self._caches.items()}

    def clear_all(self) -> None:
        for cache in self._caches.values():
            cache.clear()

    """
    Log a one line summary for each cache

    @return None
    """
    def log_stats(self) -> None:

        # loop and log
        for name, cache in self._caches.items():
            stats = cache.stats()
            total = stats["hits"] + stats["misses"]
            ratio = (stats["hits"] / total * 100) if total else 0.0
            logger.info(f"Cache {name}: {stats['size']}/{stats['max_size']} entries, {stats['hits']} hits, {stats['misses']} misses ({ratio:.1f}% hit rate)")
