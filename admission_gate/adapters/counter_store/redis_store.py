"""Redis-backed counter store shared by every gate instance.

Counting relies on Redis ``INCR``: it is atomic across all clients, so the
returned value is the caller's unique position in the window. ``INCR`` and
``EXPIRE ... NX`` travel in one MULTI/EXEC transaction, so a counter never
exists without a TTL, even when the caller is cancelled mid-request.

Connection handling:
- Only connection establishment is retried, with capped exponential backoff.
  Commands are never re-sent: a retried ``INCR`` would count one request twice.
- The reconnect budget is trimmed to fit inside the caller's deadline.
- Every Redis/socket failure is reported as StoreUnavailableError; callers
  never see redis-py exception types.
"""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import RedisError

from admission_gate.adapters.counter_store.base import AbstractCounterStore
from admission_gate.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

# Backoff between reconnect attempts: 100ms growing, capped at 3s.
_BACKOFF_BASE_S = 0.1
_BACKOFF_CAP_S = 3.0


def reconnect_budget(max_retries: int, deadline_seconds: float | None) -> int:
    """Number of reconnect attempts whose total backoff fits in the deadline.

    >>> reconnect_budget(10, 0.25)
    1
    >>> reconnect_budget(10, 1.0)
    2
    >>> reconnect_budget(3, None)
    3
    """
    if deadline_seconds is None:
        return max_retries
    backoff = ExponentialBackoff(cap=_BACKOFF_CAP_S, base=_BACKOFF_BASE_S)
    spent = 0.0
    for attempt in range(1, max_retries + 1):
        spent += backoff.compute(attempt)
        if spent > deadline_seconds:
            return attempt - 1
    return max_retries


class RedisCounterStore(AbstractCounterStore):
    """Counter store using a shared Redis server."""

    backend = "redis"

    def __init__(self, client: Redis) -> None:
        """Wrap an existing asyncio Redis client.

        Args:
            client: ``redis.asyncio.Redis`` (or compatible) instance.
        """
        self._client = client

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        socket_timeout: float,
        connect_timeout: float,
        max_retries: int,
        deadline_seconds: float | None = None,
    ) -> "RedisCounterStore":
        """Build a store with its own connection pool.

        Args:
            url: Redis connection URL.
            socket_timeout: Per-command socket timeout in seconds.
            connect_timeout: Socket connect timeout in seconds.
            max_retries: Upper bound on reconnect attempts.
            deadline_seconds: Caller's deadline for one counter round-trip;
                reconnect attempts that could not finish before it are dropped.
        """
        retry = Retry(
            ExponentialBackoff(cap=_BACKOFF_CAP_S, base=_BACKOFF_BASE_S),
            reconnect_budget(max_retries, deadline_seconds),
        )
        # Empty retry_on_error: commands fail on the first error, the Retry
        # above only wraps connection establishment.
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=connect_timeout,
            retry=retry,
            retry_on_error=[],
            retry_on_timeout=False,
        )
        return cls(client)

    def _unavailable(self, operation: str, exc: BaseException) -> StoreUnavailableError:
        logger.warning(
            "counter_store.error",
            extra={
                "backend": self.backend,
                "operation": operation,
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
            },
        )
        return StoreUnavailableError(
            code="store_unavailable",
            message=f"Counter store failed during {operation}",
            details={"backend": self.backend, "operation": operation},
        )

    async def incr_and_get(self, key: str, *, expire_seconds: int) -> int:
        # NX leaves the TTL of a live counter alone and repairs one that lost it.
        pipe = self._client.pipeline(transaction=True)
        pipe.incr(key)
        pipe.expire(key, expire_seconds, nx=True)
        try:
            count, _ = await pipe.execute()
        except (RedisError, OSError) as exc:
            raise self._unavailable("incr", exc) from exc
        return int(count)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError) as exc:
            logger.warning(
                "counter_store.ping_failed",
                extra={"backend": self.backend, "error_type": type(exc).__name__},
            )
            return False

    async def snapshot(self, prefix: str = "") -> dict[str, int]:
        try:
            keys = [key async for key in self._client.scan_iter(match=f"{prefix}*")]
            if not keys:
                return {}
            values = await self._client.mget(keys)
        except (RedisError, OSError) as exc:
            raise self._unavailable("snapshot", exc) from exc

        counters: dict[str, int] = {}
        for key, value in zip(keys, values):
            # Expired between SCAN and MGET
            if value is None:
                continue
            if isinstance(key, bytes):
                key = key.decode()
            counters[key] = int(value)
        return counters

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("counter_store.closed", extra={"backend": self.backend})
