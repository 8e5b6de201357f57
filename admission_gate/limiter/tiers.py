"""Subscription tiers and credential-to-tier resolution.

The tier table is built once at startup from configuration, validated, and
frozen. The resolver only ever receives a non-empty credential: a missing
credential is rejected earlier by the HTTP boundary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from admission_gate.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    """Closed set of quota classes, lowest privilege first."""

    FREE = "free"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


@dataclass(frozen=True)
class TierTable:
    """Immutable credential->tier and tier->quota lookup.

    Attributes:
        quotas: Requests allowed per window for every tier.
        credentials: Explicit tier assignment per credential.
        default_tier: Tier used for credentials absent from ``credentials``.
    """

    quotas: Mapping[Tier, int]
    credentials: Mapping[str, Tier]
    default_tier: Tier


def _parse_tier(name: str, *, field: str) -> Tier:
    try:
        return Tier(str(name).strip().lower())
    except ValueError as exc:
        raise ConfigurationError(
            code="unknown_tier",
            message=f"Unknown tier '{name}'. Supported tiers: "
            + ", ".join(t.value for t in Tier),
            details={"field": field, "actual_value": name},
        ) from exc


def build_tier_table(
    quotas: Mapping[str, int],
    credentials: Mapping[str, str] | None = None,
) -> TierTable:
    """Validate raw configuration and build a frozen TierTable.

    The default tier is the lowest-privilege one: the tier with the smallest
    quota, ties broken by declaration order of ``Tier``.

    Args:
        quotas: Tier name to positive integer quota. Every tier must be present.
        credentials: Credential to tier name.

    Returns:
        TierTable ready to inject into a TierResolver.

    Raises:
        ConfigurationError: On unknown tiers, missing or non-positive quotas,
            or empty credentials.
    """
    parsed_quotas: dict[Tier, int] = {}
    for name, quota in quotas.items():
        tier = _parse_tier(name, field="tier_quotas")
        if isinstance(quota, bool) or not isinstance(quota, int) or quota < 1:
            raise ConfigurationError(
                code="invalid_quota",
                message=f"Quota for tier '{tier.value}' must be a positive integer",
                details={"field": "tier_quotas", "actual_value": quota},
            )
        parsed_quotas[tier] = quota

    missing = [t.value for t in Tier if t not in parsed_quotas]
    if missing:
        raise ConfigurationError(
            code="missing_quota",
            message="Every tier needs a quota; missing: " + ", ".join(missing),
            details={"field": "tier_quotas"},
        )

    parsed_credentials: dict[str, Tier] = {}
    for credential, tier_name in (credentials or {}).items():
        if not credential:
            raise ConfigurationError(
                code="invalid_credential",
                message="Tier table contains an empty credential",
                details={"field": "tier_credentials"},
            )
        parsed_credentials[credential] = _parse_tier(tier_name, field="tier_credentials")

    order = list(Tier)
    default_tier = min(Tier, key=lambda t: (parsed_quotas[t], order.index(t)))

    logger.info(
        "tier_table.built",
        extra={
            "quotas": {t.value: q for t, q in parsed_quotas.items()},
            "assigned_credentials": len(parsed_credentials),
            "default_tier": default_tier.value,
        },
    )

    return TierTable(
        quotas=MappingProxyType(parsed_quotas),
        credentials=MappingProxyType(parsed_credentials),
        default_tier=default_tier,
    )


class TierResolver:
    """Map credentials to tiers and tiers to quotas."""

    def __init__(self, table: TierTable) -> None:
        self._table = table

    @property
    def default_tier(self) -> Tier:
        return self._table.default_tier

    def resolve_tier(self, credential: str) -> Tier:
        """Return the credential's tier, or the default tier if unknown."""
        return self._table.credentials.get(credential, self._table.default_tier)

    def quota_for(self, tier: Tier) -> int:
        return self._table.quotas[tier]
