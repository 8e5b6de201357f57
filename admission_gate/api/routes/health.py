from __future__ import annotations

from fastapi import APIRouter, Depends

from admission_gate.core.rate_limit import get_decision_engine
from admission_gate.limiter.engine import LimitDecisionEngine
from admission_gate.schemas.gate import HealthResponse, ReadinessResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Liveness check used by load balancers and process supervisors.

    Returns:
        HealthResponse: Always ``{"status": "ok"}`` while the process serves.
    """

    return HealthResponse()


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(
    engine: LimitDecisionEngine = Depends(get_decision_engine),
) -> ReadinessResponse:
    """Readiness check probing the counting store."""

    store_up = await engine.store.ping()
    return ReadinessResponse(
        status="ok" if store_up else "degraded",
        store="up" if store_up else "down",
        backend=engine.store.backend,
    )
