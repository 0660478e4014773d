"""
Thread-safe in-memory TTL cache shared by the metadata and key-set caches.

Background for newcomers:
    A single verifier serves many concurrent requests. Without a cache every
    token would cost two HTTP round trips (discovery document, then JWKS).
    Entries here live for a fixed TTL; the first read after expiry recomputes
    the value, so stale data is never returned.

    When many requests miss the same key at once, only one of them runs the
    fetch ("singleflight"). The others wait on that key's lock and then read
    the freshly stored entry. The map-wide lock is only held for lookups and
    swaps, never while a fetch is running.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    expires_at: float


class TTLCache(Generic[K, V]):
    """
    Mapping of key to value where each entry expires ``ttl_seconds`` after it
    was stored.

    Failures are never cached: if ``compute`` raises, the exception propagates
    and the next call tries again.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] | None = None) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: dict[K, CacheEntry[V]] = {}
        self._key_locks: dict[K, threading.Lock] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _live_entry(self, key: K) -> CacheEntry[V] | None:
        with self._lock:
            entry = self._entries.get(key)
        if entry is not None and self._clock() < entry.expires_at:
            return entry
        return None

    def _key_lock(self, key: K) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def _store(self, key: K, value: V) -> V:
        entry = CacheEntry(value=value, expires_at=self._clock() + self._ttl)
        with self._lock:
            self._entries[key] = entry
        return value

    def get_or_compute(self, key: K, compute: Callable[[], V]) -> V:
        """Return the live entry for ``key``, computing and storing it on a miss."""
        entry = self._live_entry(key)
        if entry is not None:
            return entry.value

        with self._key_lock(key):
            # Another thread may have filled the entry while we waited.
            entry = self._live_entry(key)
            if entry is not None:
                return entry.value
            logger.debug("Cache miss key=%s", key)
            return self._store(key, compute())

    def refresh(self, key: K, compute: Callable[[], V], stale: V | None = None) -> V:
        """
        Recompute ``key`` regardless of expiry and replace the stored entry.

        ``stale`` is the value the caller found wanting. If another thread has
        already replaced it while we waited for the key lock, that newer live
        value is returned instead of fetching again.
        """
        with self._key_lock(key):
            if stale is not None:
                entry = self._live_entry(key)
                if entry is not None and entry.value is not stale:
                    return entry.value
            logger.debug("Cache refresh key=%s", key)
            return self._store(key, compute())

    def _drop_key_lock(self, key: K) -> None:
        # Caller holds self._lock. A held lock means a computation is in flight.
        lock = self._key_locks.get(key)
        if lock is not None and not lock.locked():
            del self._key_locks[key]

    def invalidate(self, key: K) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._drop_key_lock(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            for key in list(self._key_locks):
                self._drop_key_lock(key)

    def sweep(self) -> int:
        """Evict expired entries. Returns the number of entries removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for k in expired:
                del self._entries[k]
                self._drop_key_lock(k)
        if expired:
            logger.debug("Cache sweep evicted=%d", len(expired))
        return len(expired)

    def __contains__(self, key: object) -> bool:
        return self._live_entry(key) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def lock_count(self) -> int:
        with self._lock:
            return len(self._key_locks)


class CacheSweeper:
    """
    Daemon thread that periodically sweeps expired entries out of caches.

    Only the sweep itself takes each cache's lock; fetches are never run here.
    """

    def __init__(self, caches: Iterable[Any], interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._caches = list(caches)
        self._interval = interval_seconds
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name="oidc-cache-sweeper", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stopped.set()
        if self._thread.is_alive():
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def sweep_once(self) -> int:
        return sum(cache.sweep() for cache in self._caches)

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            self.sweep_once()
