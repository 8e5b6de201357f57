"""Application-level exception types.

This module defines the gate's error taxonomy so adapters, the decision
engine and the HTTP layer agree on what can go wrong and who handles it:

- ConfigurationError: invalid startup configuration, fatal.
- MissingCredentialError: no caller credential, rejected at the boundary.
- StoreUnavailableError: counting store down/erroring/slow, absorbed by the
  decision engine (fail-open).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    field: str
    actual_value: Any
    backend: str
    operation: str
    timeout_s: float
    limit: int
    remaining: int
    tier: str
    window_seconds: int
    retry_after: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ConfigurationError(AppError):
    """Raised when window length, tier tables or backends are misconfigured."""


class AuthenticationAppError(AppError):
    """Raised when the caller cannot be identified."""


class MissingCredentialError(AuthenticationAppError):
    """Raised when a request carries no credential at all."""


class StoreUnavailableError(AppError):
    """Raised when the counting store is unreachable, erroring or timing out."""


@dataclass
class RateLimitedError(AppError):
    """Raised by the HTTP boundary when a decision denies the request.

    Attributes:
        headers: Rate limit metadata headers to send with the 429 response.
    """

    headers: dict[str, str] = field(default_factory=dict)
