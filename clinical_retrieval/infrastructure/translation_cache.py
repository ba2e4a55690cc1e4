"""Translation Cache - injected cache of compiled library artifacts.

Library source and translated models are expensive to produce and are shared
between evaluations. Instead of a process-wide static map, the hosting
application creates a TranslationCache, owns its lifecycle, and injects it
into the components that need it.

Architecture:
    - Keyed by ``(identifier, version)``
    - Thread-safe: every operation holds a single lock
    - Bounded: the oldest entry is evicted once ``max_entries`` is reached
"""

import logging
from collections import OrderedDict
from threading import Lock
from typing import Any, Callable, Optional

from clinical_retrieval.domain.models import VersionedIdentifier

logger = logging.getLogger(__name__)

CacheKey = tuple[str, Optional[str]]


class TranslationCache:
    """Thread-safe cache keyed by ``(identifier, version)``.

    Parameters:
        max_entries: Maximum number of cached entries (0 disables the bound)

    Example Usage:
        ```python
        cache = TranslationCache(max_entries=100)
        source = cache.get_or_load(
            VersionedIdentifier(id="Diabetes", version="1.0.0"),
            lambda ident: library_source.get_library_source(ident),
        )
        ```
    """

    def __init__(self, max_entries: int = 256):
        if max_entries < 0:
            raise ValueError("max_entries must be >= 0")
        self.max_entries = max_entries
        self._entries: "OrderedDict[CacheKey, Any]" = OrderedDict()
        self._lock = Lock()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def _key(identifier: VersionedIdentifier) -> CacheKey:
        return identifier.cache_key()

    def get(self, identifier: VersionedIdentifier) -> Optional[Any]:
        """Return the cached value, or None."""
        with self._lock:
            key = self._key(identifier)
            if key in self._entries:
                self._hits += 1
                return self._entries[key]
            self._misses += 1
            return None

    def put(self, identifier: VersionedIdentifier, value: Any) -> None:
        """Store ``value`` for ``identifier``."""
        with self._lock:
            self._store(self._key(identifier), value)

    def _store(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while self.max_entries and len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted {evicted} from translation cache")

    def get_or_load(
        self,
        identifier: VersionedIdentifier,
        loader: Callable[[VersionedIdentifier], Any],
    ) -> Optional[Any]:
        """Return the cached value, loading and caching it on a miss.

        A loader result of None is returned but not cached. The loader runs
        under the cache lock, so a key is loaded at most once at a time.
        """
        with self._lock:
            key = self._key(identifier)
            if key in self._entries:
                self._hits += 1
                return self._entries[key]

            self._misses += 1
            value = loader(identifier)
            if value is not None:
                self._store(key, value)
            return value

    def invalidate(self, identifier: VersionedIdentifier) -> bool:
        """Remove one entry. Returns True if it was present."""
        with self._lock:
            return self._entries.pop(self._key(identifier), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            logger.info("Translation cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identifier: VersionedIdentifier) -> bool:
        with self._lock:
            return self._key(identifier) in self._entries

    def get_statistics(self) -> dict:
        """Get current statistics about the cache."""
        with self._lock:
            return {
                'entries': len(self._entries),
                'max_entries': self.max_entries,
                'hits': self._hits,
                'misses': self._misses,
            }
