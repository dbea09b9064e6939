# device_service/Services/cache_manager.py
"""
In-memory cache manager for enrichment lookups.

Purpose:
- Memoize remote specs lookups per device name
- Coalesce concurrent lookups of the same name into one upstream request
- Limit memory usage with LRU eviction

Architecture:
- Thread-safe (uses threading.Lock)
- LRU eviction (removes least recently used entry when full)
- Optional TTL per entry (None = never expires)
- One in-flight loader per key; other callers wait on its Future
"""

import time
import threading
from collections import OrderedDict
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional, Union

TTL = Union[None, int, float, Callable[[Any], Optional[float]]]


class CacheManager:
    """
    Thread-safe in-memory cache with LRU eviction, optional TTL expiration
    and load-if-absent coalescing.

    Attributes:
        max_size: Maximum number of cache entries (default: 1000)
        default_ttl: Default TTL in seconds, None for no expiry
    """

    def __init__(self, max_size: int = 1000, default_ttl: Optional[float] = None):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")

        self._cache: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self._loading: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self.max_size = max_size
        self.default_ttl = default_ttl

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Get cached entry if it exists and has not expired.

        Returns:
            Entry dict ({"data", "expires_at", "created_at"}) or None

        Example:
            entry = cache.get("Samsung Galaxy S9")
            if entry:
                details = entry["data"]
        """
        with self._lock:
            return self._get_unlocked(key)

    def set(self, key: str, data: Any, ttl: TTL = None) -> None:
        """
        Store an entry, evicting the least recently used one if full.

        Args:
            key: Cache key
            data: Value to cache (None is a valid value)
            ttl: Seconds, a callable mapping data to seconds, or None for default_ttl
        """
        with self._lock:
            self._set_unlocked(key, data, ttl)

    def get_or_load(self, key: str, loader: Callable[[str], Any], ttl: TTL = None) -> Any:
        """
        Return the cached value for `key`, calling `loader(key)` on a miss.

        Only one loader runs per key at a time: callers arriving while a load
        is in flight wait for it and receive the same value. If the loader
        raises, every waiting caller receives that exception and nothing is
        cached.

        Example:
            details = cache.get_or_load("Samsung Galaxy S9", fetch_from_api)
        """
        with self._lock:
            entry = self._get_unlocked(key)
            if entry is not None:
                return entry["data"]

            pending = self._loading.get(key)
            owner = pending is None
            if owner:
                pending = Future()
                self._loading[key] = pending

        if not owner:
            return pending.result()

        try:
            value = loader(key)
        except BaseException as exc:
            with self._lock:
                self._loading.pop(key, None)
            pending.set_exception(exc)
            raise

        with self._lock:
            self._set_unlocked(key, value, ttl)
            self._loading.pop(key, None)
        pending.set_result(value)
        return value

    def invalidate(self, key: str) -> bool:
        """
        Remove an entry.

        Returns:
            True if the entry was present
        """
        with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    def invalidate_pattern(self, pattern: str) -> int:
        """
        Invalidate all keys containing `pattern` (simple substring match).

        Returns:
            Number of entries invalidated

        Example:
            cache.invalidate_pattern("iPhone")
        """
        with self._lock:
            keys_to_remove = [key for key in self._cache.keys() if pattern in key]

            for key in keys_to_remove:
                del self._cache[key]

            return len(keys_to_remove)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return self._get_unlocked(key, touch=False) is not None

    def stats(self) -> Dict[str, Any]:
        """
        Cache statistics (for monitoring/debugging).

        Example:
            stats = cache.stats()
            print(f"Cache size: {stats['size']}/{stats['max_size']}")
        """
        with self._lock:
            now = time.time()
            expired_count = sum(
                1 for entry in self._cache.values()
                if entry["expires_at"] is not None and now > entry["expires_at"]
            )

            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "expired_count": expired_count,
                "loading": len(self._loading),
                "oldest_age_seconds": (
                    now - next(iter(self._cache.values()))["created_at"]
                    if self._cache else 0
                ),
            }

    # ==========================================================
    # Internals (caller holds self._lock)
    # ==========================================================

    def _get_unlocked(self, key: str, touch: bool = True) -> Optional[Dict[str, Any]]:
        entry = self._cache.get(key)
        if entry is None:
            return None

        if entry["expires_at"] is not None and time.time() > entry["expires_at"]:
            del self._cache[key]
            return None

        if touch:
            self._cache.move_to_end(key)

        return entry

    def _set_unlocked(self, key: str, data: Any, ttl: TTL) -> None:
        if callable(ttl):
            ttl = ttl(data)
        elif ttl is None:
            ttl = self.default_ttl

        now = time.time()
        self._cache[key] = {
            "data": data,
            "expires_at": now + ttl if ttl is not None else None,
            "created_at": now,
        }
        self._cache.move_to_end(key)

        while len(self._cache) > self.max_size:
            oldest_key = next(iter(self._cache))
            del self._cache[oldest_key]
