"""Thread-safe TTL cache for vehicle picker queries.

The picker cascades year -> make -> model -> trim, and every step is a
``car_trims`` scan. Results change only when the catalog is reseeded, so they
are cached per worker for ``CATALOG_CACHE_TTL`` seconds.
"""

import logging
import threading
from typing import Any, Callable, TypeVar

from cachetools import TTLCache

from modcalc.core.config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CatalogCache:
    """TTL cache for picker option lists.

    Thread-safe via a threading.Lock. Keys hold the filter values exactly as
    the loader receives them, since ``car_trims`` lookups are case-sensitive.
    """

    def __init__(self, maxsize: int = 512, ttl: int = 600) -> None:
        self._cache: TTLCache[tuple[Any, ...], Any] = TTLCache(
            maxsize=maxsize, ttl=ttl
        )
        self._lock = threading.Lock()

    @staticmethod
    def make_key(kind: str, **filters: Any) -> tuple[Any, ...]:
        """Build a cache key from the query kind and its filters."""
        return (kind, *sorted(filters.items()))

    def get(self, key: tuple[Any, ...]) -> Any | None:
        """Get a cached result (thread-safe). Returns None on miss."""
        with self._lock:
            return self._cache.get(key)

    def set(self, key: tuple[Any, ...], value: Any) -> None:
        """Store a result in the cache (thread-safe)."""
        with self._lock:
            self._cache[key] = value
        logger.debug("Catalog cache set: %s", key)

    def get_or_load(self, key: tuple[Any, ...], loader: Callable[[], T]) -> T:
        """Return the cached value for ``key`` or load, store and return it.

        Empty results are not cached so a freshly seeded catalog shows up
        without waiting for the TTL.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        value = loader()
        if value:
            self.set(key, value)
        return value

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


_catalog_cache: CatalogCache | None = None
_cache_lock = threading.Lock()


def get_catalog_cache() -> CatalogCache:
    """Get or create the per-process picker cache."""
    global _catalog_cache
    if _catalog_cache is None:
        with _cache_lock:
            if _catalog_cache is None:
                settings = get_settings()
                _catalog_cache = CatalogCache(
                    maxsize=settings.catalog_cache_size,
                    ttl=settings.catalog_cache_ttl,
                )
    return _catalog_cache
