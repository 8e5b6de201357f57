from __future__ import annotations

from fastapi import APIRouter, Depends

from admission_gate.core.rate_limit import enforce_rate_limit
from admission_gate.schemas.gate import ResourceResponse

router = APIRouter(tags=["Resource"])


@router.get(
    "/api/resource",
    response_model=ResourceResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def get_resource() -> ResourceResponse:
    """Protected resource guarded by the per-credential rate limit.

    Requires a credential (X-API-Key header or api_key query parameter).
    Responds 429 with Retry-After once the caller's tier quota for the
    current window is used up.

    Returns:
        ResourceResponse: Static payload for admitted requests.
    """
    return ResourceResponse(message="Success!", data="Here is your data")
