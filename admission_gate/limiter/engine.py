"""Fixed-window limit decision engine.

The engine is stateless per call: every decision performs exactly one
round-trip to the counter store and nothing is cached in-process, so all
instances sharing a store agree on counts.

Failure policy:
    When the store is unavailable or misses its deadline the engine fails
    open. The request is allowed with the full quota reported as remaining
    and the decision is flagged ``degraded`` for the boundary to surface.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass

from admission_gate.adapters.counter_store.base import AbstractCounterStore
from admission_gate.core.errors import StoreUnavailableError
from admission_gate.limiter.tiers import Tier, TierResolver
from admission_gate.limiter.window import WindowClock

logger = logging.getLogger(__name__)

# Counters outlive their window by one full window so a late request from
# window N still finds its counter after another instance moved to N+1.
EXPIRY_WINDOWS = 2


@dataclass(frozen=True)
class Decision:
    """Outcome of one admission check.

    Attributes:
        allowed: Whether the request may proceed.
        observed_count: Count returned by the store (0 when degraded).
        quota: Requests allowed per window for the caller's tier.
        tier: Resolved tier.
        remaining: Requests left in this window, never negative.
        degraded: True when the store was unavailable and the engine failed open.
        window_id: Window the request was counted in.
        window_seconds: Window length in seconds.
    """

    allowed: bool
    observed_count: int
    quota: int
    tier: Tier
    remaining: int
    degraded: bool
    window_id: int
    window_seconds: int


def encode_counter_key(credential: str, window_id: int, prefix: str = "rl:") -> str:
    """Build the store key for a (credential, window) pair."""
    return f"{prefix}{credential}:{window_id}"


def hash_credential(credential: str) -> str:
    """Hash a credential for logging without exposing it."""
    return hashlib.sha256(credential.encode()).hexdigest()[:16]


class LimitDecisionEngine:
    """Combine window, tier and counter into allow/deny decisions."""

    def __init__(
        self,
        *,
        clock: WindowClock,
        resolver: TierResolver,
        store: AbstractCounterStore,
        key_prefix: str = "rl:",
        store_timeout_seconds: float = 0.25,
    ) -> None:
        """Initialize the engine.

        Args:
            clock: Window clock.
            resolver: Tier resolver built from the startup tier table.
            store: Shared counter store.
            key_prefix: Namespace for counter keys.
            store_timeout_seconds: Deadline for the store round-trip.
        """
        self._clock = clock
        self._resolver = resolver
        self._store = store
        self._key_prefix = key_prefix
        self._store_timeout = store_timeout_seconds

    @property
    def window_seconds(self) -> int:
        return self._clock.window_seconds

    @property
    def key_prefix(self) -> str:
        return self._key_prefix

    @property
    def store(self) -> AbstractCounterStore:
        return self._store

    def current_window(self) -> int:
        return self._clock.current_window()

    def reset_at(self, decision: Decision) -> int:
        return self._clock.reset_at(decision.window_id)

    async def _increment(self, key: str) -> int:
        try:
            return await asyncio.wait_for(
                self._store.incr_and_get(
                    key, expire_seconds=EXPIRY_WINDOWS * self._clock.window_seconds
                ),
                timeout=self._store_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise StoreUnavailableError(
                code="store_timeout",
                message="Counter store did not answer before the deadline",
                details={"backend": self._store.backend, "timeout_s": self._store_timeout},
            ) from exc

    async def decide(self, credential: str) -> Decision:
        """Count one request for ``credential`` and decide whether to admit it.

        Args:
            credential: Non-empty caller credential.

        Returns:
            Decision for this request. Never raises for store failures.
        """
        window_id = self._clock.current_window()
        tier = self._resolver.resolve_tier(credential)
        quota = self._resolver.quota_for(tier)
        key = encode_counter_key(credential, window_id, self._key_prefix)

        try:
            count = await self._increment(key)
        except StoreUnavailableError as exc:
            return self._fail_open(credential, tier=tier, quota=quota, window_id=window_id, error=exc)

        return Decision(
            allowed=count <= quota,
            observed_count=count,
            quota=quota,
            tier=tier,
            remaining=max(0, quota - count),
            degraded=False,
            window_id=window_id,
            window_seconds=self._clock.window_seconds,
        )

    def _fail_open(
        self,
        credential: str,
        *,
        tier: Tier,
        quota: int,
        window_id: int,
        error: StoreUnavailableError,
    ) -> Decision:
        logger.warning(
            "rate_limit.degraded",
            extra={
                "credential_hash": hash_credential(credential),
                "tier": tier.value,
                "window_id": window_id,
                "error_code": error.code,
                "backend": self._store.backend,
            },
        )
        return Decision(
            allowed=True,
            observed_count=0,
            quota=quota,
            tier=tier,
            remaining=quota,
            degraded=True,
            window_id=window_id,
            window_seconds=self._clock.window_seconds,
        )
