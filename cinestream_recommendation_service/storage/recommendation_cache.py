"""Process-local adaptive TTL cache for computed recommendations."""

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from cinestream_recommendation_service.ranking.types import ActivityLevel

logger = logging.getLogger(__name__)

HIGH_ACTIVITY_BUCKET_SECONDS = 60
DEFAULT_BUCKET_SECONDS = 300
KEY_PREFIX = "recommendations:"
KEY_SEPARATOR = "|"
# Counters kept for keys without an entry, as a multiple of capacity
HIT_COUNTER_FACTOR = 2


@dataclass
class CacheEntry:
    data: Any
    created_at: float
    expires_at: float


class RecommendationCache:
    """
    Thread-safe in-memory cache with popularity-sensitive TTLs.

    Features:
    - Time-bucketed keys, finer buckets for high-activity users
    - Hit counting on every read; keys read `hit_threshold` times or more
      get double TTL on their next write
    - Lazy expiry on read
    - Hit counters for keys without an entry are pruned once they outnumber
      twice the capacity
    - Capacity-bounded eviction: expired entries first, then the oldest 20%

    State is not shared between processes and is lost on restart.
    """

    def __init__(
            self,
            capacity: int = 1000,
            default_ttl: float = 300,
            hit_threshold: int = 3,
            evict_fraction: float = 0.2,
            clock: Callable[[], float] = time.time
    ):
        """
        Initialize the cache.

        Args:
            capacity: Maximum number of entries kept after a write
            default_ttl: TTL in seconds when `set` is called without one
            hit_threshold: Hits after which the TTL is doubled
            evict_fraction: Share of oldest entries dropped when over capacity
            clock: Time source returning epoch seconds
        """
        self.capacity = capacity
        self.default_ttl = default_ttl
        self.hit_threshold = hit_threshold
        self.evict_fraction = evict_fraction
        self._clock = clock

        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}
        self._hits: dict[str, int] = {}

    def build_key(
            self,
            subject_id: str,
            mode: str,
            activity_level: ActivityLevel = ActivityLevel.NORMAL,
            now: float | None = None
    ) -> str:
        """
        Derive a cache key that rotates with time.

        Args:
            subject_id: User or movie ID
            mode: Recommendation mode (e.g. 'user:20', 'similar:10'); the part before
                ':' is the subject kind
            activity_level: Finer time buckets for high-activity subjects
            now: Epoch seconds (default: cache clock)

        Returns:
            Cache key string, `recommendations:{subject}|{mode}|{level}|{bucket}`
        """
        now = self._clock() if now is None else now
        width = HIGH_ACTIVITY_BUCKET_SECONDS if activity_level == ActivityLevel.HIGH else DEFAULT_BUCKET_SECONDS
        bucket = int(now // width)
        level = ActivityLevel(activity_level).value
        return f"{KEY_PREFIX}{subject_id}{KEY_SEPARATOR}{mode}{KEY_SEPARATOR}{level}{KEY_SEPARATOR}{bucket}"

    def get(self, key: str) -> Any | None:
        """Return cached data, or None on a miss. Every call counts as a hit for the key."""
        with self._lock:
            self._hits[key] = self._hits.get(key, 0) + 1

            if len(self._hits) > self.capacity * HIT_COUNTER_FACTOR:
                self._prune_hits(keep=key)

            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Cache miss for key: {key}")
                return None

            if self._clock() >= entry.expires_at:
                del self._entries[key]
                self._hits.pop(key, None)
                logger.debug(f"Cache entry expired for key: {key}")
                return None

            logger.debug(f"Cache hit for key: {key}")
            return entry.data

    def set(self, key: str, data: Any, ttl: float | None = None) -> float:
        """
        Store data under a key.

        Args:
            key: Cache key
            data: Payload
            ttl: TTL in seconds (default: default_ttl)

        Returns:
            The effective TTL applied
        """
        effective_ttl = self.default_ttl if ttl is None else ttl

        with self._lock:
            if self._hits.get(key, 0) >= self.hit_threshold:
                effective_ttl *= 2

            now = self._clock()
            self._entries[key] = CacheEntry(data=data, created_at=now, expires_at=now + effective_ttl)
            logger.debug(f"Setting cache for key: {key} with TTL: {effective_ttl}s")

            if len(self._entries) > self.capacity:
                self._evict(now)

        return effective_ttl

    def _evict(self, now: float):
        """Drop expired entries, then the oldest ones until under capacity. Caller holds the lock."""
        before = len(self._entries)

        for key in [k for k, e in self._entries.items() if now >= e.expires_at]:
            del self._entries[key]
            self._hits.pop(key, None)

        overflow = len(self._entries) - self.capacity
        if overflow > 0:
            n_drop = max(math.ceil(len(self._entries) * self.evict_fraction), overflow)
            oldest = sorted(self._entries.items(), key=lambda kv: kv[1].created_at)[:n_drop]
            for key, _ in oldest:
                del self._entries[key]
                self._hits.pop(key, None)

        self._prune_hits()

        logger.info(f"Cache eviction: removed {before - len(self._entries)} entries, {len(self._entries)} remaining")

    def _prune_hits(self, keep: str | None = None):
        """Drop hit counters of keys that hold no entry. Caller holds the lock."""
        for key in [k for k in self._hits if k not in self._entries and k != keep]:
            del self._hits[key]

    @staticmethod
    def _belongs_to(key: str, subject_id: str, kind: str | None) -> bool:
        parts = key.split(KEY_SEPARATOR)
        if len(parts) < 4 or KEY_SEPARATOR.join(parts[:-3]) != f"{KEY_PREFIX}{subject_id}":
            return False
        return kind is None or parts[-3].split(":", 1)[0] == kind

    def invalidate_subject(self, subject_id: str, kind: str | None = None) -> int:
        """
        Remove every entry cached for one subject.

        Args:
            subject_id: User or movie ID, matched exactly
            kind: Only drop modes of this kind (e.g. 'user'), all kinds when None

        Returns:
            Number of entries removed
        """
        with self._lock:
            matched = [k for k in self._entries if self._belongs_to(k, subject_id, kind)]
            for key in matched:
                del self._entries[key]
            for key in [k for k in self._hits if self._belongs_to(k, subject_id, kind)]:
                del self._hits[key]

        logger.info(f"Invalidated {len(matched)} cache entries for {kind or 'any'} subject '{subject_id}'")
        return len(matched)

    def invalidate(self, pattern: str | None = None) -> int:
        """
        Remove every key containing `pattern` (all keys when pattern is empty).

        Returns:
            Number of entries removed
        """
        if not pattern:
            return self.clear()

        with self._lock:
            matched = [k for k in self._entries if pattern in k]
            for key in matched:
                del self._entries[key]
            for key in [k for k in self._hits if pattern in k]:
                del self._hits[key]

        logger.info(f"Invalidated {len(matched)} cache entries matching '{pattern}'")
        return len(matched)

    def clear(self) -> int:
        """Drop everything. Returns number of entries removed."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            self._hits.clear()

        logger.info(f"Cleared recommendation cache ({removed} entries)")
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            return {
                "size": len(self._entries),
                "capacity": self.capacity,
                "default_ttl": self.default_ttl,
                "hit_threshold": self.hit_threshold,
                "hit_counts": dict(self._hits),
            }
