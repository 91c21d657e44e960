"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ProductStatus(StrEnum):
    CONTAINS = "contains"
    VERIFIED_FREE = "verified-free"
    NEEDS_VERIFICATION = "needs-verification"
    INCONCLUSIVE = "inconclusive"

    @classmethod
    def parse(cls, value: str) -> ProductStatus:
        """Parse a status string, tolerating case, spaces and underscores."""

        normalized = value.strip().lower().replace("_", "-").replace(" ", "-")
        try:
            return cls(normalized)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown status {value!r}; expected one of: {allowed}") from None


class TrustTier(StrEnum):
    """Contributor classification used only to compute submission quotas."""

    NEW = "new"
    TRUSTED = "trusted"
    VERIFIED = "verified"
    ADMIN = "admin"


class Confidence(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
