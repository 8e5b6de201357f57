"""Counter store adapters.

The decision engine talks to an abstract atomic increment-with-expiry store.
Redis is the shared source of truth across instances; the in-memory store is
a single-instance fallback behind the same interface.
"""

from admission_gate.adapters.counter_store.base import AbstractCounterStore
from admission_gate.adapters.counter_store.factory import create_counter_store
from admission_gate.adapters.counter_store.in_memory import InMemoryCounterStore
from admission_gate.adapters.counter_store.redis_store import RedisCounterStore

__all__ = [
    "AbstractCounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
    "create_counter_store",
]
