"""Process-local request rate limiting.

Counters live in this process only; several server processes each enforce
their own quota. A shared counter store would be needed for a global quota.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from math import ceil

from domain.errors import RateLimitedError


@dataclass(frozen=True)
class RateLimitRule:
    window_ms: int = 60_000
    max_calls: int = 30


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_ms: int | None = None


class RateLimiter:
    """Per-key counter over a trailing window of ``window_ms``.

    Each admitted call records a timestamp; a call is rejected once ``max_calls``
    timestamps fall inside the window, with a retry-after measured from the
    oldest of them.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        cleanup_interval_seconds: float = 60.0,
    ) -> None:
        self._clock = clock
        self._cleanup_interval_seconds = cleanup_interval_seconds
        self._buckets: dict[str, tuple[int, deque[float]]] = {}
        self._last_cleanup = clock()
        self._lock = threading.Lock()

    def check_and_record(
        self,
        key: str,
        window_ms: int = 60_000,
        max_calls: int = 30,
    ) -> RateLimitResult:
        if window_ms <= 0:
            raise ValueError("window_ms must be > 0")
        if max_calls <= 0:
            raise ValueError("max_calls must be > 0")

        with self._lock:
            now = self._clock()
            self._maybe_cleanup(now)

            window_seconds = window_ms / 1000.0
            window_start = now - window_seconds
            _, timestamps = self._buckets.get(key, (window_ms, deque()))
            while timestamps and timestamps[0] <= window_start:
                timestamps.popleft()

            if len(timestamps) >= max_calls:
                self._buckets[key] = (window_ms, timestamps)
                retry_after_ms = ceil((timestamps[0] + window_seconds - now) * 1000.0)
                return RateLimitResult(allowed=False, retry_after_ms=max(1, retry_after_ms))

            timestamps.append(now)
            self._buckets[key] = (window_ms, timestamps)
            return RateLimitResult(allowed=True)

    def check(self, key: str, rule: RateLimitRule) -> RateLimitResult:
        return self.check_and_record(key, rule.window_ms, rule.max_calls)

    def enforce(self, key: str, rule: RateLimitRule) -> None:
        """Record one call for ``key`` or raise RateLimitedError."""
        result = self.check(key, rule)
        if not result.allowed:
            raise RateLimitedError(result.retry_after_ms or 0)

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._buckets.clear()
            else:
                self._buckets.pop(key, None)

    def tracked_key_count(self) -> int:
        with self._lock:
            return len(self._buckets)

    def _maybe_cleanup(self, now: float) -> None:
        if now - self._last_cleanup < self._cleanup_interval_seconds:
            return
        self._last_cleanup = now
        stale_keys = [
            key
            for key, (window_ms, timestamps) in self._buckets.items()
            if not timestamps or timestamps[-1] <= now - window_ms / 1000.0
        ]
        for key in stale_keys:
            del self._buckets[key]


__all__ = ["RateLimitResult", "RateLimitRule", "RateLimiter"]
