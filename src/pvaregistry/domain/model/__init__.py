"""Domain model for the product registry."""

from __future__ import annotations

from .enums import Confidence, ProductStatus, TrustTier
from .product import (
    EDITABLE_FIELDS,
    CandidateRecord,
    NaturalKey,
    ProductChanges,
    ProductRecord,
    ensure_consistent,
    natural_key,
    new_record_id,
    percentage_problem,
    utcnow,
)

__all__ = [
    "EDITABLE_FIELDS",
    "CandidateRecord",
    "Confidence",
    "NaturalKey",
    "ProductChanges",
    "ProductRecord",
    "ProductStatus",
    "TrustTier",
    "ensure_consistent",
    "natural_key",
    "new_record_id",
    "percentage_problem",
    "utcnow",
]
