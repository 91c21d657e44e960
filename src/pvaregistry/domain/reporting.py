"""Brand statistics for charts and summaries."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pvaregistry.domain.model import ProductRecord

OTHERS_LABEL = "Others"


@dataclass(frozen=True, slots=True)
class BrandCount:
    brand: str
    count: int


def group_by_brand(records: Iterable[ProductRecord]) -> dict[str, list[ProductRecord]]:
    """Group records by brand; brands differing only in case share the first spelling seen."""

    groups: dict[str, list[ProductRecord]] = {}
    labels: dict[str, str] = {}
    for record in records:
        folded = record.brand.strip().casefold()
        label = labels.setdefault(folded, record.brand.strip())
        groups.setdefault(label, []).append(record)
    return groups


def top_brands(records: Iterable[ProductRecord], limit: int = 5) -> list[BrandCount]:
    groups = group_by_brand(records)
    counts = Counter({brand: len(items) for brand, items in groups.items()})
    # Counter.most_common keeps insertion order for ties
    return [BrandCount(brand=brand, count=count) for brand, count in counts.most_common(limit)]


def brand_categories(records: Iterable[ProductRecord], limit: int = 5) -> list[BrandCount]:
    """Top ``limit`` brands plus one ``Others`` bucket holding the rest."""

    groups = group_by_brand(records)
    ranked = Counter({brand: len(items) for brand, items in groups.items()}).most_common()
    categories = [BrandCount(brand=brand, count=count) for brand, count in ranked[:limit]]
    rest = sum(count for _, count in ranked[limit:])
    if rest:
        categories.append(BrandCount(brand=OTHERS_LABEL, count=rest))
    return categories
