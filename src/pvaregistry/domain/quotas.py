"""Trust-tiered submission quotas.

A contributor's quota is the number of submissions they may still have waiting
for moderation. It is derived on every check from the pending count, never
stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from pvaregistry.domain.model import TrustTier

if TYPE_CHECKING:
    from pvaregistry.domain.ports import SubmissionCounter

log = getLogger(__name__)


class QuotaLimits(Protocol):
    """Tier caps and promotion thresholds; ``None`` caps are unbounded."""

    @property
    def trusted_after_approved(self) -> int: ...

    @property
    def verified_after_approved(self) -> int: ...

    def limit_for(self, tier: str, *, bulk: bool) -> int | None: ...


@dataclass(frozen=True, slots=True)
class SubmissionQuota:
    trust_tier: TrustTier
    max_allowed: int | None
    remaining_allowed: int | None
    allowed: bool
    pending_count: int = 0

    @property
    def unbounded(self) -> bool:
        return self.remaining_allowed is None

    def describe(self) -> str:
        if self.remaining_allowed is None:
            return f"{self.trust_tier.value}: unlimited submissions"
        return (
            f"{self.trust_tier.value}: {self.remaining_allowed} of {self.max_allowed} "
            f"submissions remaining ({self.pending_count} pending)"
        )


def tier_for_approved_count(approved_count: int, limits: QuotaLimits) -> TrustTier:
    if approved_count >= limits.verified_after_approved:
        return TrustTier.VERIFIED
    if approved_count >= limits.trusted_after_approved:
        return TrustTier.TRUSTED
    return TrustTier.NEW


def compute_quota(
    tier: TrustTier,
    pending_count: int,
    *,
    max_allowed: int | None,
    requested: int = 1,
) -> SubmissionQuota:
    """Pure quota arithmetic: ``remaining = max(0, max - pending)``."""

    if tier is TrustTier.ADMIN or max_allowed is None:
        return SubmissionQuota(
            trust_tier=tier,
            max_allowed=None,
            remaining_allowed=None,
            allowed=True,
            pending_count=pending_count,
        )
    remaining = max(0, max_allowed - pending_count)
    return SubmissionQuota(
        trust_tier=tier,
        max_allowed=max_allowed,
        remaining_allowed=remaining,
        allowed=remaining >= requested,
        pending_count=pending_count,
    )


class SubmissionLimiter:
    def __init__(self, counter: SubmissionCounter, limits: QuotaLimits) -> None:
        self.counter = counter
        self.limits = limits

    async def trust_tier(self, user_id: str | None, *, is_admin: bool = False) -> TrustTier:
        if is_admin:
            return TrustTier.ADMIN
        if user_id is None:
            return TrustTier.NEW
        approved = await self.counter.count_submissions(user_id, approved=True)
        return tier_for_approved_count(approved, self.limits)

    async def check(
        self,
        user_id: str | None,
        *,
        is_admin: bool = False,
        is_bulk: bool = False,
        requested: int = 1,
    ) -> SubmissionQuota:
        if is_admin:
            return compute_quota(TrustTier.ADMIN, 0, max_allowed=None, requested=requested)
        tier = await self.trust_tier(user_id)
        pending = await self.counter.count_submissions(user_id, approved=False)
        quota = compute_quota(
            tier,
            pending,
            max_allowed=self.limits.limit_for(tier.value, bulk=is_bulk),
            requested=requested,
        )
        log.debug(
            "Quota for %s: tier=%s pending=%s remaining=%s",
            user_id or "anonymous",
            tier,
            pending,
            quota.remaining_allowed,
        )
        return quota
