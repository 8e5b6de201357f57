"""In-memory counter store (single-instance fallback).

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards the whole table; nothing awaits while holding it.
- Expiry is lazy: stale keys are dropped when touched or listed, and a sweep
  of the whole table runs at most once per half expiry period.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from admission_gate.adapters.counter_store.base import AbstractCounterStore


@dataclass
class _Counter:
    count: int
    expires_at: float | None


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store backed by a process-local dict.

    Important:
        Only a correct source of truth when a single server process handles
        all traffic. Use the Redis store when instances share load.
    """

    backend = "memory"

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._counters: dict[str, _Counter] = {}
        self._next_sweep_at = 0.0

    def _is_expired(self, counter: _Counter, now: float) -> bool:
        return counter.expires_at is not None and counter.expires_at <= now

    def _purge_expired(self, now: float) -> None:
        # Caller holds the lock.
        expired = [k for k, c in self._counters.items() if self._is_expired(c, now)]
        for key in expired:
            del self._counters[key]

    def size(self) -> int:
        """Number of entries held, expired or not."""
        with self._lock:
            return len(self._counters)

    async def incr_and_get(self, key: str, *, expire_seconds: int) -> int:
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()
        with self._lock:
            # Old windows' keys are never touched again, so sweep them here.
            if now >= self._next_sweep_at:
                self._purge_expired(now)
                self._next_sweep_at = now + expire_seconds / 2

            counter = self._counters.get(key)
            if counter is None or self._is_expired(counter, now):
                counter = _Counter(count=0, expires_at=None)
                self._counters[key] = counter

            counter.count += 1
            if counter.count == 1:
                counter.expires_at = now + expire_seconds
            return counter.count

    async def ping(self) -> bool:
        return True

    async def snapshot(self, prefix: str = "") -> dict[str, int]:
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            return {
                key: counter.count
                for key, counter in self._counters.items()
                if key.startswith(prefix)
            }

    def ttl(self, key: str) -> float | None:
        """Seconds until ``key`` expires, or None if absent."""
        with self._lock:
            counter = self._counters.get(key)
            if counter is None or counter.expires_at is None:
                return None
            return counter.expires_at - self._clock()
