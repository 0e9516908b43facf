"""In-process caches with explicit TTLs and invalidation.

These are performance aids only. Each process holds its own copy, so values
may lag the database by up to the configured TTL.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")
T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    expires_at: float


class TTLCache(Generic[K, V]):
    """Keyed cache; stored values may be ``None`` to remember negative lookups."""

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[K, CacheEntry[V]] = {}
        self._lock = threading.Lock()

    def lookup(self, key: K) -> CacheEntry[V] | None:
        """Return the live entry for ``key``, or None when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                return None
            return entry

    def lookup_stale(self, key: K) -> CacheEntry[V] | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: K, value: V) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)

    def invalidate(self, key: K) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class SnapshotCache(Generic[K, T]):
    """Whole-collection snapshot refreshed when empty or older than the TTL."""

    def __init__(
        self,
        ttl_seconds: float,
        *,
        key: Callable[[T], K],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._key = key
        self._clock = clock
        self._items: list[T] = []
        self._loaded_at: float | None = None
        self._lock = threading.Lock()

    def get(self, loader: Callable[[], list[T]]) -> list[T]:
        with self._lock:
            now = self._clock()
            stale = self._loaded_at is None or now - self._loaded_at > self.ttl_seconds
            if not self._items or stale:
                self._items = list(loader())
                self._loaded_at = now
            return list(self._items)

    def peek(self) -> list[T]:
        """Current snapshot without triggering a refresh."""
        with self._lock:
            return list(self._items)

    def find(self, predicate: Callable[[T], bool]) -> T | None:
        with self._lock:
            for item in self._items:
                if predicate(item):
                    return item
            return None

    def upsert(self, item: T) -> None:
        """Replace the item with the same key in place, or append it."""
        item_key = self._key(item)
        with self._lock:
            for index, existing in enumerate(self._items):
                if self._key(existing) == item_key:
                    self._items[index] = item
                    return
            self._items.append(item)

    def invalidate(self) -> None:
        with self._lock:
            self._items = []
            self._loaded_at = None


__all__ = ["CacheEntry", "SnapshotCache", "TTLCache"]
