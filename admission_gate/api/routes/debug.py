"""Read-only counter introspection.

Lists live counters through the counter store adapter. Disabled unless
APP_DEBUG_ENDPOINTS=true, in which case it answers 404 like an unknown route.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from admission_gate.core.config import Settings
from admission_gate.core.rate_limit import get_decision_engine, get_settings
from admission_gate.limiter.engine import LimitDecisionEngine, hash_credential
from admission_gate.schemas.gate import CounterEntry, CounterSnapshotResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Debug"])


def parse_counter_key(key: str, prefix: str) -> tuple[str, int] | None:
    """Split a counter key back into (credential, window_id).

    Returns None for keys under the prefix that are not counter keys.

    Examples:
        >>> parse_counter_key("rl:alice:28000000", "rl:")
        ('alice', 28000000)
        >>> parse_counter_key("rl:weird", "rl:") is None
        True
    """
    if not key.startswith(prefix):
        return None
    credential, sep, window = key[len(prefix):].rpartition(":")
    if not sep or not credential:
        return None
    try:
        return credential, int(window)
    except ValueError:
        return None


@router.get("/debug/counters", response_model=CounterSnapshotResponse)
async def list_counters(
    engine: LimitDecisionEngine = Depends(get_decision_engine),
    cfg: Settings = Depends(get_settings),
) -> CounterSnapshotResponse:
    """List live counters and their raw counts.

    Raises:
        HTTPException: 404 when debug endpoints are disabled.
        StoreUnavailableError: When the store cannot be read (rendered as 503).
    """
    if not cfg.app.debug_endpoints:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    raw = await engine.store.snapshot(engine.key_prefix)

    entries: list[CounterEntry] = []
    for key, count in sorted(raw.items()):
        parsed = parse_counter_key(key, engine.key_prefix)
        if parsed is None:
            continue
        credential, window_id = parsed
        entries.append(
            CounterEntry(
                credential_hash=hash_credential(credential),
                window_id=window_id,
                count=count,
            )
        )

    logger.info(
        "debug.counters_listed",
        extra={"backend": engine.store.backend, "entries": len(entries)},
    )

    return CounterSnapshotResponse(
        backend=engine.store.backend,
        window_seconds=engine.window_seconds,
        current_window=engine.current_window(),
        counters=entries,
    )
