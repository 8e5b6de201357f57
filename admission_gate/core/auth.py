"""Caller credential extraction.

The gate does not validate credentials against a registry: any non-empty
value is a credential, and credentials unknown to the tier table are limited
at the most restrictive tier. Only a completely missing credential is an
authentication failure.

Lookup order:
1. ``X-API-Key`` header
2. ``api_key`` query parameter
3. ``user`` query parameter
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Header, Query

from admission_gate.core.errors import MissingCredentialError

logger = logging.getLogger(__name__)


def pick_credential(*candidates: str | None) -> str | None:
    """Return the first non-blank candidate, stripped.

    Examples:
        >>> pick_credential(None, "  ", " key-1 ")
        'key-1'
        >>> pick_credential(None, "") is None
        True
    """
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return None


async def require_credential(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
    api_key: Annotated[str | None, Query()] = None,
    user: Annotated[str | None, Query()] = None,
) -> str:
    """FastAPI dependency returning the caller credential.

    Usage:
        @router.get("/protected")
        async def endpoint(credential: str = Depends(require_credential)):
            ...

    Raises:
        MissingCredentialError: When no credential is supplied (rendered as 401).
    """
    credential = pick_credential(x_api_key, api_key, user)
    if credential is None:
        logger.warning(
            "auth.missing_credential",
            extra={"api_key_present": False},
        )
        raise MissingCredentialError(
            code="missing_credential",
            message="Missing credential. Provide the X-API-Key header or api_key query parameter.",
            details={"hint": "Send X-API-Key: <your key>"},
        )
    return credential
