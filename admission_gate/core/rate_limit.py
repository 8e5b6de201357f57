"""Rate limiting wiring for FastAPI routes.

This module builds the decision engine from settings and exposes the
dependency that turns a Decision into an HTTP outcome.

Rate limiting strategy:
- Fixed-window limit per credential, quota chosen by the credential's tier.
- Counters live in the shared counter store; each instance is stateless.
- Store failures fail open; the response is flagged X-RateLimit-Degraded.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Request, Response

from admission_gate.adapters.counter_store.base import AbstractCounterStore
from admission_gate.adapters.counter_store.factory import create_counter_store
from admission_gate.core.auth import require_credential
from admission_gate.core.config import Settings
from admission_gate.core.errors import RateLimitedError
from admission_gate.limiter.engine import Decision, LimitDecisionEngine, hash_credential
from admission_gate.limiter.tiers import TierResolver, build_tier_table
from admission_gate.limiter.window import WindowClock

logger = logging.getLogger(__name__)


def build_decision_engine(
    cfg: Settings,
    *,
    store: AbstractCounterStore | None = None,
) -> LimitDecisionEngine:
    """Validate configuration and assemble the decision engine.

    Args:
        cfg: Resolved settings.
        store: Optional pre-built counter store (tests, embedding).

    Returns:
        LimitDecisionEngine ready to serve requests.

    Raises:
        ConfigurationError: On invalid window length, tier table or backend.
    """
    clock = WindowClock(cfg.app.window_seconds)
    resolver = TierResolver(build_tier_table(cfg.app.tier_quotas, cfg.app.tier_credentials))
    counter_store = store if store is not None else create_counter_store(cfg.store)

    return LimitDecisionEngine(
        clock=clock,
        resolver=resolver,
        store=counter_store,
        key_prefix=cfg.store.key_prefix,
        store_timeout_seconds=cfg.store.timeout_seconds,
    )


def get_decision_engine(request: Request) -> LimitDecisionEngine:
    """Return the engine built for this application at startup."""
    return request.app.state.decision_engine


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def rate_limit_headers(decision: Decision, *, reset_at: int) -> dict[str, str]:
    """Render decision metadata as response headers."""
    headers = {
        "X-RateLimit-Limit": str(decision.quota),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Window": str(decision.window_seconds),
        "X-RateLimit-Tier": decision.tier.value,
        "X-RateLimit-Reset": str(reset_at),
    }
    if decision.degraded:
        headers["X-RateLimit-Degraded"] = "true"
    return headers


async def enforce_rate_limit(
    response: Response,
    credential: Annotated[str, Depends(require_credential)],
    engine: Annotated[LimitDecisionEngine, Depends(get_decision_engine)],
    cfg: Annotated[Settings, Depends(get_settings)],
) -> Decision | None:
    """FastAPI dependency enforcing the per-credential limit.

    Counts one request for the caller. Allowed (or degraded) requests proceed
    with rate limit headers attached; denied requests raise RateLimitedError,
    rendered as 429 with a Retry-After equal to the window length.

    Returns:
        The Decision, or None when rate limiting is disabled.

    Raises:
        RateLimitedError: When the caller exceeded the tier quota.
    """

    if not cfg.app.rate_limit_enabled:
        return None

    decision = await engine.decide(credential)

    headers: dict[str, str] = {}
    if cfg.app.rate_limit_include_headers:
        headers = rate_limit_headers(decision, reset_at=engine.reset_at(decision))

    log_extra = {
        "credential_hash": hash_credential(credential),
        "tier": decision.tier.value,
        "limit": decision.quota,
        "observed_count": decision.observed_count,
        "remaining": decision.remaining,
        "window_s": decision.window_seconds,
        "degraded": decision.degraded,
    }

    if decision.allowed:
        logger.info("rate_limit.allowed", extra=log_extra)
        response.headers.update(headers)
        return decision

    logger.warning("rate_limit.exceeded", extra={**log_extra, "retry_after_s": decision.window_seconds})

    headers["Retry-After"] = str(decision.window_seconds)
    raise RateLimitedError(
        code="rate_limited",
        message=(
            f"Too many requests. Rate limit: {decision.quota} requests "
            f"per {decision.window_seconds} seconds"
        ),
        details={
            "limit": decision.quota,
            "remaining": decision.remaining,
            "tier": decision.tier.value,
            "window_seconds": decision.window_seconds,
            "retry_after": decision.window_seconds,
        },
        headers=headers,
    )
