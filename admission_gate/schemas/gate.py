"""Pydantic schemas for gate HTTP responses."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field


class ResourceResponse(BaseModel):
    """Payload returned by the protected resource once admitted."""

    message: str = Field(..., description="Outcome message.")
    data: str = Field(..., description="Resource content.")


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"


class ReadinessResponse(BaseModel):
    """Readiness including counting store reachability.

    A down store does not make the service unready: decisions fail open, so
    the service keeps serving and reports itself as degraded.
    """

    status: Literal["ok", "degraded"] = Field(
        ..., description="'degraded' when the counting store is unreachable."
    )
    store: Literal["up", "down"] = Field(..., description="Counting store liveness.")
    backend: str = Field(..., description="Configured counter store backend.")


class CounterEntry(BaseModel):
    """One live counter. The credential is exposed only as a hash prefix."""

    credential_hash: str = Field(..., description="First 16 hex chars of SHA-256(credential).")
    window_id: int = Field(..., description="Fixed window identifier.")
    count: int = Field(..., description="Raw count observed by the store.")


class CounterSnapshotResponse(BaseModel):
    """Read-only listing of live counters."""

    backend: str
    window_seconds: int
    current_window: int
    counters: List[CounterEntry] = Field(default_factory=list)
