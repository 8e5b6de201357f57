"""Pytest configuration and fixtures shared across all test modules.

Environment variables are seeded before any import that builds settings, so
the process-wide app (``admission_gate.main``) uses the in-memory store and
never tries to reach a real Redis.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("APP_TIER_QUOTAS", '{"free": 5, "premium": 50, "enterprise": 500}')
os.environ.setdefault("APP_TIER_CREDENTIALS", '{"premium-key-1": "premium", "enterprise-key-1": "enterprise"}')

import pytest

from admission_gate.adapters.counter_store.base import AbstractCounterStore
from admission_gate.core.config import AppSettings, Settings, StoreSettings
from admission_gate.core.errors import StoreUnavailableError


class FakeTime:
    """Deterministic clock for window arithmetic."""

    def __init__(self, start: float = 1_000_020.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FailingCounterStore(AbstractCounterStore):
    """Counter store simulating an unreachable backend."""

    backend = "failing"

    def __init__(self) -> None:
        self.calls = 0

    async def incr_and_get(self, key: str, *, expire_seconds: int) -> int:
        self.calls += 1
        raise StoreUnavailableError(code="store_unavailable", message="connection refused")

    async def ping(self) -> bool:
        return False

    async def snapshot(self, prefix: str = "") -> dict[str, int]:
        raise StoreUnavailableError(code="store_unavailable", message="connection refused")


def make_settings(
    *,
    window_seconds: int = 60,
    quotas: dict[str, int] | None = None,
    credentials: dict[str, str] | None = None,
    **app_overrides,
) -> Settings:
    """Build isolated settings for one test app."""
    return Settings(
        app=AppSettings(
            window_seconds=window_seconds,
            tier_quotas=quotas or {"free": 5, "premium": 50, "enterprise": 500},
            tier_credentials=credentials or {"premium-key-1": "premium"},
            **app_overrides,
        ),
        store=StoreSettings(backend="memory"),
    )


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def failing_store() -> FailingCounterStore:
    return FailingCounterStore()
