"""Single product submissions from contributors."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from pvaregistry.domain.classification import collect_verified_brands, scan_document, scan_text
from pvaregistry.domain.deduplication import is_duplicate
from pvaregistry.domain.errors import DuplicateRecordError, QuotaExceededError, RemoteStoreError
from pvaregistry.domain.events import NotificationLevel, ReloadRequested
from pvaregistry.domain.model import CandidateRecord, ProductRecord
from pvaregistry.domain.regions import normalize_countries

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pvaregistry.domain.classification import ScanResult
    from pvaregistry.domain.events import EventBus
    from pvaregistry.domain.ingest_pipeline import Submitter
    from pvaregistry.domain.ports import ProductCache, RemoteProductStore, TextExtractor
    from pvaregistry.domain.quotas import SubmissionLimiter, SubmissionQuota

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SubmissionOutcome:
    record: ProductRecord
    stored_remotely: bool
    quota: SubmissionQuota | None


def candidate_from_scan(
    scan: ScanResult,
    *,
    brand: str,
    name: str,
    type: str,  # noqa: A002
    countries: Iterable[str] = (),
    description: str = "",
    website_url: str | None = None,
) -> CandidateRecord:
    return CandidateRecord(
        brand=brand,
        name=name,
        type=type,
        status=scan.status,
        percentage=scan.percentage,
        countries=normalize_countries(countries),
        description=description,
        website_url=website_url,
    )


class SubmissionService:
    def __init__(
        self,
        *,
        remote: RemoteProductStore,
        cache: ProductCache,
        limiter: SubmissionLimiter,
        bus: EventBus,
        live_only: bool = False,
    ) -> None:
        self.remote = remote
        self.cache = cache
        self.limiter = limiter
        self.bus = bus
        self.live_only = live_only

    async def known_records(self) -> list[ProductRecord]:
        """Cache and remote records; a failing remote degrades to the cache alone."""

        records = [] if self.live_only else self.cache.list_records()
        try:
            records.extend(await self.remote.fetch_records())
        except RemoteStoreError as exc:
            log.warning("Remote records unavailable: %s", exc)
        return records

    async def verified_brands(self) -> frozenset[str]:
        return collect_verified_brands(await self.known_records())

    async def classify_text(self, text: str, *, brand: str) -> ScanResult:
        return scan_text(text, brand=brand, verified_brands=await self.verified_brands())

    async def classify_document(
        self, extractor: TextExtractor, source: object, *, brand: str
    ) -> ScanResult:
        return await scan_document(
            extractor, source, brand=brand, verified_brands=await self.verified_brands()
        )

    async def submit(
        self, candidate: CandidateRecord, *, submitter: Submitter
    ) -> SubmissionOutcome:
        quota = await self.limiter.check(submitter.user_id, is_admin=submitter.is_admin)
        if not quota.allowed:
            raise QuotaExceededError(
                f"Submission limit reached for {quota.trust_tier.value} contributors "
                f"({quota.pending_count} pending)",
                remaining=quota.remaining_allowed or 0,
            )
        candidate.validate()
        if is_duplicate(candidate.brand, candidate.name, await self.known_records()):
            raise DuplicateRecordError(candidate.brand.strip(), candidate.name.strip())

        record = ProductRecord.from_candidate(
            candidate, approved=False, owner_id=submitter.user_id
        )
        stored_remotely = True
        try:
            record = await self.remote.insert(record)
        except RemoteStoreError as exc:
            if self.live_only:
                raise
            stored_remotely = False
            log.warning("Remote insert failed, keeping %s offline: %s", record.id, exc)
            await self.bus.notify(
                NotificationLevel.WARNING,
                "Saved offline",
                "The product was stored locally and will not be visible to others yet",
            )
        if not self.live_only:
            self.cache.put(record)

        await self.bus.publish(ReloadRequested(reason="submission"))
        quota: SubmissionQuota | None
        try:
            quota = await self.limiter.check(submitter.user_id, is_admin=submitter.is_admin)
        except RemoteStoreError as exc:
            log.warning("Quota unavailable after storing %s: %s", record.id, exc)
            await self.bus.notify(
                NotificationLevel.WARNING,
                "Quota unavailable",
                "The product was saved but the remaining submission quota could not be checked",
            )
            quota = None
        return SubmissionOutcome(record=record, stored_remotely=stored_remotely, quota=quota)
