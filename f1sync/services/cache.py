"""
CacheManager - Async-compatible key/value cache with TTL.

Features:
- Memory-based store with eviction of the oldest entry at capacity
- TTL (Time To Live) for cache entries
- Values are stored as JSON text, so callers always get a fresh copy
- Never raises: failures are logged and reported as None / False
"""

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from loguru import logger

from f1sync.services.errors import CacheError

SEASONS_CACHE_KEY = "seasons"


def races_cache_key(year: int) -> str:
    return f"races:{year}"


@dataclass
class CacheEntry:
    """A single cache entry with metadata."""

    payload: str
    timestamp: datetime
    ttl: timedelta

    def is_expired(self) -> bool:
        """Check if entry is past its TTL."""
        return datetime.now() > self.timestamp + self.ttl


class CacheManager:
    """
    Read-through accelerator keyed by namespaced strings.

    Usage:
        cache = CacheManager(max_size=256)

        cached = await cache.get("races:2023")
        if cached is not None:
            return cached

        data = await load_races(2023)
        await cache.set("races:2023", data, ttl_seconds=300)
    """

    def __init__(
        self,
        max_size: int = 256,
        default_ttl_seconds: int = 300,
        debug: bool = False,
    ):
        self._memory: dict[str, CacheEntry] = {}
        self._max_size = max_size
        self._default_ttl = timedelta(seconds=default_ttl_seconds)
        self._debug = debug
        self._lock = asyncio.Lock()
        self._stats = CacheStats()

    async def get(self, key: str) -> Any | None:
        """
        Get value from cache.

        Returns the deserialized value, or None on miss, expiry or error.
        """
        try:
            async with self._lock:
                entry = self._memory.get(key)
                if entry is None:
                    self._stats.misses += 1
                    self._log(f"MISS: {key}")
                    return None

                if entry.is_expired():
                    del self._memory[key]
                    self._stats.misses += 1
                    self._log(f"EXPIRED: {key}")
                    return None

                self._stats.hits += 1
                self._log(f"HIT: {key}")
                payload = entry.payload

            return self._deserialize(key, payload)
        except Exception as e:
            self._stats.errors += 1
            logger.warning(f"Cache get failed for '{key}': {e}")
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        """
        Serialize and store a value with expiry.

        Args:
            key: Cache key
            value: JSON-serializable data
            ttl_seconds: Time to live (uses default if not specified)

        Returns:
            True if stored, False otherwise
        """
        try:
            payload = self._serialize(key, value)
            ttl = (
                timedelta(seconds=ttl_seconds)
                if ttl_seconds is not None
                else self._default_ttl
            )
            entry = CacheEntry(payload=payload, timestamp=datetime.now(), ttl=ttl)

            async with self._lock:
                if len(self._memory) >= self._max_size and key not in self._memory:
                    self._evict_oldest()

                self._memory[key] = entry
                self._log(f"SET: {key} (TTL: {ttl.total_seconds()}s)")
            return True
        except Exception as e:
            self._stats.errors += 1
            logger.warning(f"Cache set failed for '{key}': {e}")
            return False

    async def invalidate(self, key: str) -> bool:
        """Delete a key. Deleting an absent key counts as success."""
        try:
            async with self._lock:
                removed = self._memory.pop(key, None) is not None
                self._log(f"INVALIDATE: {key} (present: {removed})")
            return True
        except Exception as e:
            self._stats.errors += 1
            logger.warning(f"Cache invalidate failed for '{key}': {e}")
            return False

    async def clear(self) -> None:
        """Clear all cache entries."""
        async with self._lock:
            count = len(self._memory)
            self._memory.clear()
            self._log(f"CLEAR: {count} entries removed")

    def _evict_oldest(self) -> None:
        if not self._memory:
            return

        oldest_key = min(
            self._memory.keys(),
            key=lambda k: self._memory[k].timestamp,
        )
        del self._memory[oldest_key]
        self._stats.evictions += 1
        self._log(f"EVICT: {oldest_key}")

    @staticmethod
    def _serialize(key: str, value: Any) -> str:
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise CacheError(f"Cannot serialize value for '{key}': {e}") from e

    @staticmethod
    def _deserialize(key: str, payload: str) -> Any:
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise CacheError(f"Corrupt cache payload for '{key}': {e}") from e

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._memory)
        self._stats.max_size = self._max_size
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[CacheManager] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    errors: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "evictions": self.evictions,
            "size": self.size,
            "max_size": self.max_size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
