"""Fixed-window rate decision core."""

from admission_gate.limiter.engine import Decision, LimitDecisionEngine, encode_counter_key
from admission_gate.limiter.tiers import Tier, TierResolver, TierTable, build_tier_table
from admission_gate.limiter.window import WindowClock

__all__ = [
    "Decision",
    "LimitDecisionEngine",
    "Tier",
    "TierResolver",
    "TierTable",
    "WindowClock",
    "build_tier_table",
    "encode_counter_key",
]
