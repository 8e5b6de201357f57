"""Counter store interface.

The decision engine depends on this abstraction only, so the shared Redis
store and the single-instance in-memory fallback are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractCounterStore(ABC):
    """Interface for atomic increment-with-expiry counter stores."""

    backend: str = "abstract"

    @abstractmethod
    async def incr_and_get(self, key: str, *, expire_seconds: int) -> int:
        """Atomically increment ``key`` and return the new count.

        A missing key is created at 1. When the returned count is 1 the store
        sets an expiry of ``expire_seconds`` on the key.

        Args:
            key: Counter key encoding (credential, window).
            expire_seconds: Lifetime applied on first increment.

        Returns:
            The post-increment count, unique per caller for this key.

        Raises:
            StoreUnavailableError: If the store is unreachable or errors.
        """
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Liveness probe. Returns False instead of raising when down."""
        raise NotImplementedError

    @abstractmethod
    async def snapshot(self, prefix: str = "") -> dict[str, int]:
        """Return live counter keys under ``prefix`` with their raw counts.

        Read-only; used for operational introspection.

        Raises:
            StoreUnavailableError: If the store is unreachable or errors.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release any connections held by the store."""
        return None
