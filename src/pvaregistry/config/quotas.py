"""Trust-tier submission quota defaults."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_int_env

DEFAULT_SINGLE_LIMITS: dict[str, int | None] = {"new": 3, "trusted": 10, "verified": None}
DEFAULT_BULK_LIMITS: dict[str, int | None] = {"new": 3, "trusted": 10, "verified": 20}

TRUSTED_AFTER_APPROVED = 3
VERIFIED_AFTER_APPROVED = 10


@dataclass(frozen=True, slots=True)
class QuotaConfig:
    """Maximum pending submissions per trust tier; ``None`` means unlimited."""

    single_limits: dict[str, int | None]
    bulk_limits: dict[str, int | None]
    trusted_after_approved: int = TRUSTED_AFTER_APPROVED
    verified_after_approved: int = VERIFIED_AFTER_APPROVED

    def limit_for(self, tier: str, *, bulk: bool) -> int | None:
        limits = self.bulk_limits if bulk else self.single_limits
        if tier not in limits:
            raise KeyError(f"No quota configured for trust tier {tier!r}")
        return limits[tier]


def default_quota_config() -> QuotaConfig:
    return QuotaConfig(
        single_limits=dict(DEFAULT_SINGLE_LIMITS),
        bulk_limits=dict(DEFAULT_BULK_LIMITS),
    )


def get_quota_config() -> QuotaConfig:
    """Read overrides such as ``PVAREGISTRY_QUOTA_NEW`` or ``PVAREGISTRY_BULK_QUOTA_VERIFIED``."""

    single = {
        tier: optional_int_env(f"PVAREGISTRY_QUOTA_{tier.upper()}", default)
        for tier, default in DEFAULT_SINGLE_LIMITS.items()
    }
    bulk = {
        tier: optional_int_env(f"PVAREGISTRY_BULK_QUOTA_{tier.upper()}", default)
        for tier, default in DEFAULT_BULK_LIMITS.items()
    }
    return QuotaConfig(single_limits=single, bulk_limits=bulk)
