"""Bulk ingestion: quota gate, row validation, duplicate check and persistence."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from pvaregistry.domain.deduplication import DuplicateIndex
from pvaregistry.domain.errors import InvalidRecordError, QuotaExceededError, RemoteStoreError
from pvaregistry.domain.events import NotificationLevel, ReloadRequested
from pvaregistry.domain.ingest_pipeline.parsing import parse_bulk_csv
from pvaregistry.domain.model import ProductRecord
from pvaregistry.domain.regions import normalize_countries

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from pvaregistry.domain.events import EventBus
    from pvaregistry.domain.ingest_pipeline.parsing import BulkRow
    from pvaregistry.domain.ports import ProductCache, RemoteProductStore
    from pvaregistry.domain.quotas import SubmissionLimiter, SubmissionQuota

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Submitter:
    """Who is submitting; ``user_id=None`` is an anonymous contributor."""

    user_id: str | None = None
    is_admin: bool = False


@dataclass(frozen=True, slots=True)
class RejectedRow:
    row: BulkRow
    reason: str


@dataclass(slots=True)
class BulkIngestResult:
    accepted: list[ProductRecord] = field(default_factory=list)
    duplicates: list[BulkRow] = field(default_factory=list)
    rejected: list[RejectedRow] = field(default_factory=list)
    truncated: bool = False
    notice: str | None = None
    quota: SubmissionQuota | None = None

    @property
    def total(self) -> int:
        return len(self.accepted) + len(self.duplicates) + len(self.rejected)

    def summary(self) -> str:
        text = (
            f"{len(self.accepted)} accepted, {len(self.duplicates)} duplicate(s), "
            f"{len(self.rejected)} rejected"
        )
        if self.notice:
            text = f"{text}. {self.notice}"
        return text


class BulkIngestionPipeline:
    """Process a parsed batch into accepted, duplicate and rejected buckets.

    Duplicates are checked against a snapshot of persisted keys taken once per
    batch; each accepted row's key joins the snapshot after it commits, so a
    repeated row later in the same batch lands in ``duplicates``. Batches on the
    same pipeline are serialised. Writers outside the pipeline are not.
    """

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
        self._lock = asyncio.Lock()

    async def ingest_csv(
        self,
        text: str,
        *,
        submitter: Submitter,
        countries: Iterable[str] | None = None,
    ) -> BulkIngestResult:
        rows = parse_bulk_csv(text)
        return await self.ingest(rows, submitter=submitter, countries=countries)

    async def ingest(
        self,
        rows: Sequence[BulkRow],
        *,
        submitter: Submitter,
        countries: Iterable[str] | None = None,
    ) -> BulkIngestResult:
        async with self._lock:
            return await self._ingest(rows, submitter=submitter, countries=countries)

    async def _ingest(
        self,
        rows: Sequence[BulkRow],
        *,
        submitter: Submitter,
        countries: Iterable[str] | None,
    ) -> BulkIngestResult:
        result = BulkIngestResult()
        quota = await self.limiter.check(
            submitter.user_id,
            is_admin=submitter.is_admin,
            is_bulk=True,
            requested=len(rows),
        )
        batch = list(rows)
        if quota.remaining_allowed is not None and len(batch) > quota.remaining_allowed:
            if quota.remaining_allowed == 0:
                raise QuotaExceededError(
                    f"Bulk submission limit reached for {quota.trust_tier.value} contributors; "
                    "wait for pending submissions to be reviewed",
                    remaining=0,
                )
            kept = quota.remaining_allowed
            reason = f"Submission limit reached: only {kept} row(s) allowed in this batch"
            result.rejected.extend(RejectedRow(row=row, reason=reason) for row in batch[kept:])
            result.truncated = True
            result.notice = (
                f"Only the first {kept} of {len(batch)} rows were processed "
                "because of your submission limit"
            )
            batch = batch[:kept]
            log.info("Truncated bulk batch from %d to %d rows", len(rows), kept)

        override = normalize_countries(countries) if countries is not None else None
        known = await self._snapshot()

        for row in batch:
            try:
                candidate = row.to_candidate(countries=override)
            except InvalidRecordError as exc:
                result.rejected.append(RejectedRow(row=row, reason=str(exc)))
                continue
            if known.contains(candidate.brand, candidate.name):
                result.duplicates.append(row)
                continue
            record = ProductRecord.from_candidate(
                candidate,
                approved=submitter.is_admin,
                owner_id=submitter.user_id,
            )
            try:
                stored = await self._persist(record)
            except RemoteStoreError as exc:
                log.warning("Could not store %s: %s", row.label(), exc)
                result.rejected.append(RejectedRow(row=row, reason=f"Could not be saved: {exc}"))
                continue
            known.add_record(stored)
            result.accepted.append(stored)

        log.info("Bulk ingest finished: %s", result.summary())
        if result.accepted:
            await self.bus.publish(ReloadRequested(reason="bulk import"))
        result.quota = await self._recheck_quota(submitter)
        return result

    async def _recheck_quota(self, submitter: Submitter) -> SubmissionQuota | None:
        try:
            return await self.limiter.check(
                submitter.user_id, is_admin=submitter.is_admin, is_bulk=True
            )
        except RemoteStoreError as exc:
            log.warning("Quota unavailable after bulk import: %s", exc)
            await self.bus.notify(
                NotificationLevel.WARNING,
                "Quota unavailable",
                "The import finished but the remaining submission quota could not be checked",
            )
            return None

    async def _snapshot(self) -> DuplicateIndex:
        index = DuplicateIndex()
        if not self.live_only:
            index.extend(self.cache.list_records())
        try:
            index.extend(await self.remote.fetch_records())
        except RemoteStoreError as exc:
            log.warning("Remote snapshot unavailable, checking duplicates against cache: %s", exc)
            await self.bus.notify(
                NotificationLevel.WARNING,
                "Remote store unavailable",
                "Duplicate checks use offline data only",
            )
        return index

    async def _persist(self, record: ProductRecord) -> ProductRecord:
        stored = await self.remote.insert(record)
        if not self.live_only:
            self.cache.put(stored)
        return stored
