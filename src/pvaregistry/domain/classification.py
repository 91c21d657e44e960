"""Status classification from keyword evidence and brand verification history."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from pvaregistry.domain.errors import TextExtractionError
from pvaregistry.domain.matching import FREE_PHRASES, KeywordMatcher, extract_percentage
from pvaregistry.domain.model import Confidence, ProductStatus

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable

    from pvaregistry.domain.model import ProductRecord
    from pvaregistry.domain.ports import TextExtractor

log = getLogger(__name__)


def _fold(brand: str) -> str:
    return brand.strip().casefold()


def classify_status(
    terms: Collection[str],
    verified_brands: Collection[str],
    brand: str,
    *,
    extraction_failed: bool = False,
) -> ProductStatus:
    """Map keyword evidence to a status; the first matching rule wins.

    ``inconclusive`` is reserved for inputs whose text could not be extracted at
    all, so no keyword evidence exists either way.
    """

    if extraction_failed:
        return ProductStatus.INCONCLUSIVE
    if terms:
        return ProductStatus.CONTAINS
    folded = _fold(brand)
    if folded and any(_fold(verified) == folded for verified in verified_brands):
        return ProductStatus.VERIFIED_FREE
    return ProductStatus.NEEDS_VERIFICATION


def collect_verified_brands(records: Iterable[ProductRecord]) -> frozenset[str]:
    """Brands with approved ownership or an approved verified-free record."""

    brands: set[str] = set()
    for record in records:
        if record.brand_verified or (
            record.approved and record.status is ProductStatus.VERIFIED_FREE
        ):
            brands.add(_fold(record.brand))
    brands.discard("")
    return frozenset(brands)


@dataclass(frozen=True, slots=True)
class ScanResult:
    status: ProductStatus
    terms: tuple[str, ...] = ()
    percentage: float | None = None
    confidence: Confidence = Confidence.LOW
    explicitly_free: bool = False
    error: str | None = None


def _confidence(status: ProductStatus, term_count: int, *, explicitly_free: bool) -> Confidence:
    if status is ProductStatus.CONTAINS:
        return Confidence.HIGH if term_count > 1 else Confidence.MEDIUM
    if status is ProductStatus.VERIFIED_FREE:
        return Confidence.HIGH if explicitly_free else Confidence.MEDIUM
    return Confidence.LOW


def scan_text(
    text: str,
    *,
    brand: str = "",
    verified_brands: Collection[str] = (),
    matcher: KeywordMatcher | None = None,
) -> ScanResult:
    active = matcher or KeywordMatcher(exclusions=FREE_PHRASES)
    result = active.match(text)
    status = classify_status(result.terms, verified_brands, brand)
    percentage = extract_percentage(text, result) if status is ProductStatus.CONTAINS else None
    return ScanResult(
        status=status,
        terms=result.terms,
        percentage=percentage,
        confidence=_confidence(
            status, len(result.terms), explicitly_free=result.explicitly_free
        ),
        explicitly_free=result.explicitly_free,
    )


def inconclusive_scan(reason: str) -> ScanResult:
    return ScanResult(status=ProductStatus.INCONCLUSIVE, error=reason)


async def scan_document(
    extractor: TextExtractor,
    source: object,
    *,
    brand: str = "",
    verified_brands: Collection[str] = (),
    matcher: KeywordMatcher | None = None,
) -> ScanResult:
    """Extract text from ``source`` and classify it.

    Extraction failures and blank output both yield an ``inconclusive`` result
    instead of raising.
    """

    try:
        text = await extractor(source)
    except TextExtractionError as exc:
        log.warning("Text extraction failed for %r: %s", source, exc)
        return inconclusive_scan(str(exc) or "text extraction failed")
    if not text or not text.strip():
        log.warning("Text extraction returned no text for %r", source)
        return inconclusive_scan("no text could be extracted")
    return scan_text(text, brand=brand, verified_brands=verified_brands, matcher=matcher)
