# backend/portfolio_dashboard/services/cache.py
"""
Thread-safe bounded LRU cache with TTL.

Used for built equity series (keyed by a content hash of the transactions)
and for spot snapshots (keyed by ticker). Stored values must be immutable:
callers receive the cached object itself, not a copy.

Usage:
    cache = TTLCache(ttl_seconds=3600, max_size=128)

    with cache.build_lock(key):
        result = cache.get(key)
        if result is None:
            result = build()
            cache.set(key, result)
"""

import logging
import threading
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Callable, Generic, TypeVar

from portfolio_dashboard.services.constants import (
    SERIES_CACHE_MAX_SIZE,
    SERIES_CACHE_TTL_SECONDS,
)

logger = logging.getLogger(__name__)

V = TypeVar("V")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TTLCache(Generic[V]):
    """
    Thread-safe bounded LRU cache with TTL.

    Memory Safety:
        Holds at most max_size entries; the least recently used entry is
        evicted to make room for a new one.

    Build Locks:
        build_lock(key) returns a lock dedicated to one key so that
        concurrent identical requests build once and the rest read the
        cached result.

    Thread Safety:
        Uses threading.Lock. For multiple workers, each process has its own cache.
    """

    def __init__(
            self,
            ttl_seconds: int = SERIES_CACHE_TTL_SECONDS,
            max_size: int = SERIES_CACHE_MAX_SIZE,
            clock: Callable[[], datetime] = _utcnow,
            name: str = "cache",
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._cache: OrderedDict[str, tuple[datetime, V]] = OrderedDict()
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_size = max_size
        self._clock = clock
        self._name = name
        self._lock = threading.Lock()
        self._build_locks: dict[str, threading.Lock] = {}

    def get(self, key: str) -> V | None:
        """
        Return the cached value if present and not expired.

        Implements LRU by moving accessed entries to the end.
        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            stored_at, value = entry
            if self._clock() - stored_at < self._ttl:
                self._cache.move_to_end(key)
                logger.debug(f"{self._name}: hit for {key[:16]}")
                return value

            del self._cache[key]
            logger.debug(f"{self._name}: expired {key[:16]}")
            return None

    def set(self, key: str, value: V) -> None:
        """Store a value, evicting the least recently used entry when full."""
        with self._lock:
            if key in self._cache:
                del self._cache[key]
            while len(self._cache) >= self._max_size:
                oldest_key = next(iter(self._cache))
                del self._cache[oldest_key]
                logger.debug(f"{self._name}: evicted {oldest_key[:16]} (LRU)")
            self._cache[key] = (self._clock(), value)

    def clear(self) -> int:
        """Clear all entries. Returns the number removed."""
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            self._build_locks = {
                k: lock for k, lock in self._build_locks.items() if lock.locked()
            }
        logger.debug(f"{self._name}: cleared {count} entries")
        return count

    def size(self) -> int:
        with self._lock:
            return len(self._cache)

    def build_lock(self, key: str) -> threading.Lock:
        """Return the lock serializing builds for one key."""
        with self._lock:
            lock = self._build_locks.get(key)
            if lock is None:
                if len(self._build_locks) >= self._max_size * 2:
                    self._prune_build_locks()
                lock = threading.Lock()
                self._build_locks[key] = lock
            return lock

    def _prune_build_locks(self) -> None:
        # Caller holds self._lock
        self._build_locks = {
            k: lock for k, lock in self._build_locks.items()
            if lock.locked() or k in self._cache
        }
