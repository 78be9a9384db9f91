"""Bounded classification cache keyed by normalized text."""

from __future__ import annotations

import logging
import math
import threading

from cpad.core.classification.models import DomainClassification

logger = logging.getLogger(__name__)

EVICTION_FRACTION = 0.2


class ClassificationCache:
    """Insertion-ordered cache with batch eviction of the oldest entries.

    Writes and counter updates take the lock; lookups read the dict directly.
    When the cache is full, the oldest ~20% of entries are dropped before
    the new one is inserted.
    """

    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 1:
            raise ValueError("Cache capacity must be at least 1")
        self._capacity = capacity
        self._entries: dict[str, DomainClassification] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def hits(self) -> int:
        return self._hits

    @property
    def misses(self) -> int:
        return self._misses

    @property
    def evictions(self) -> int:
        return self._evictions

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    @property
    def hit_rate(self) -> float:
        total = self._hits + self._misses
        return self._hits / total if total else 0.0

    def get(self, key: str) -> DomainClassification | None:
        """Return the cached classification and count the hit or miss."""
        result = self._entries.get(key)
        with self._lock:
            if result is None:
                self._misses += 1
            else:
                self._hits += 1
        return result

    def put(self, key: str, value: DomainClassification) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._capacity:
                self._evict_oldest()
            self._entries[key] = value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def stats(self) -> dict[str, float | int]:
        return {
            "hits": self._hits,
            "misses": self._misses,
            "size": len(self._entries),
            "capacity": self._capacity,
            "evictions": self._evictions,
            "hit_rate": round(self.hit_rate, 4),
        }

    def _evict_oldest(self) -> None:
        # Caller holds the lock
        count = max(1, math.floor(self._capacity * EVICTION_FRACTION))
        for key in list(self._entries)[:count]:
            del self._entries[key]
        self._evictions += count
        logger.debug("Classification cache full; evicted %d oldest entries", count)
