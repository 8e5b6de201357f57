"""Factory pattern for creating counter store instances."""

from admission_gate.adapters.counter_store.base import AbstractCounterStore
from admission_gate.adapters.counter_store.in_memory import InMemoryCounterStore
from admission_gate.adapters.counter_store.redis_store import RedisCounterStore
from admission_gate.core.config import StoreSettings
from admission_gate.core.errors import ConfigurationError


def create_counter_store(store_settings: StoreSettings) -> AbstractCounterStore:
    """Instantiate the configured counter store backend.

    Args:
        store_settings: Resolved ``STORE_*`` settings.

    Returns:
        AbstractCounterStore: Redis-backed store (shared) or in-memory store.

    Raises:
        ConfigurationError: If the backend is unknown or incompletely configured.
    """
    backend = store_settings.backend.lower()

    if backend == "redis":
        if not store_settings.redis_url:
            raise ConfigurationError(
                code="store_missing_url",
                message="Redis backend requires STORE_REDIS_URL",
                details={"backend": backend},
            )
        return RedisCounterStore.from_url(
            store_settings.redis_url,
            socket_timeout=store_settings.timeout_seconds,
            connect_timeout=store_settings.connect_timeout_seconds,
            max_retries=store_settings.max_retries,
            deadline_seconds=store_settings.timeout_seconds,
        )

    if backend == "memory":
        return InMemoryCounterStore()

    raise ConfigurationError(
        code="store_unknown_backend",
        message=f"Unknown counter store backend: '{backend}'. Supported backends: redis, memory",
        details={"backend": backend},
    )
