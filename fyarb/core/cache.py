"""
Caching utilities for fyarb.

TTL caches for slow-moving external data (benchmark rate series).
Pool snapshots are never cached: reserves change every block.
"""

from typing import Any, Optional

from cachetools import TTLCache

from fyarb.core.config import get_settings
from fyarb.core.logging import get_logger

logger = get_logger("cache")


class CacheManager:
    """
    TTL-based cache manager.

    Features:
    - Configurable TTL per cache
    - Manual invalidation
    - Hit/miss statistics
    """

    def __init__(self, maxsize: int = 256, ttl: Optional[int] = None):
        self.ttl = ttl or get_settings().cache_ttl
        self._cache = TTLCache(maxsize=maxsize, ttl=self.ttl)
        self._stats = {"hits": 0, "misses": 0}

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        value = self._cache.get(key)
        if value is not None:
            self._stats["hits"] += 1
            logger.debug(f"Cache hit: {key}")
        else:
            self._stats["misses"] += 1
        return value

    def set(self, key: str, value: Any) -> None:
        """Set value in cache."""
        self._cache[key] = value

    def delete(self, key: str) -> None:
        """Delete key from cache."""
        self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cached values."""
        self._cache.clear()
        logger.info("Cache cleared")

    @property
    def stats(self) -> dict[str, int]:
        """Get cache statistics."""
        total = self._stats["hits"] + self._stats["misses"]
        hit_rate = self._stats["hits"] / total if total > 0 else 0
        return {
            **self._stats,
            "total": total,
            "hit_rate": round(hit_rate, 3),
            "size": len(self._cache),
        }


_provider_caches: dict[str, CacheManager] = {}


def get_provider_cache(provider_name: str) -> CacheManager:
    """Get (or create) the shared cache for a provider."""
    if provider_name not in _provider_caches:
        _provider_caches[provider_name] = CacheManager()
    return _provider_caches[provider_name]
