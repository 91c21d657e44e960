"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from pvaregistry.adapters.memory import InMemoryProductCache
from pvaregistry.adapters.remote import RestProductStore
from pvaregistry.adapters.sqlalchemy import SqlAlchemyProductCache, is_started, startup
from pvaregistry.config import get_quota_config, get_reconciliation_config
from pvaregistry.domain.brand_ownership import BrandOwnershipService
from pvaregistry.domain.events import EventBus, ViewRefreshed
from pvaregistry.domain.ingest_pipeline import BulkIngestionPipeline, Submitter, template_csv
from pvaregistry.domain.quotas import SubmissionLimiter
from pvaregistry.domain.reconciliation import DataReconciler, RecordUpdater, ViewerContext
from pvaregistry.domain.reporting import brand_categories
from pvaregistry.domain.submission import SubmissionService

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from pvaregistry.config import QuotaConfig, ReconciliationConfig
    from pvaregistry.domain.classification import ScanResult
    from pvaregistry.domain.ingest_pipeline import BulkIngestResult
    from pvaregistry.domain.model import CandidateRecord, ProductChanges, ProductRecord
    from pvaregistry.domain.ports import ConnectionStatus, ProductCache, RemoteProductStore
    from pvaregistry.domain.quotas import SubmissionQuota
    from pvaregistry.domain.reconciliation import ReconciledView, UpdateOutcome
    from pvaregistry.domain.reporting import BrandCount
    from pvaregistry.domain.submission import SubmissionOutcome

log = getLogger(__name__)


@dataclass(slots=True)
class Registry:
    """Wired services sharing one event bus, cache and remote store."""

    remote: RemoteProductStore
    cache: ProductCache
    bus: EventBus
    limiter: SubmissionLimiter
    pipeline: BulkIngestionPipeline
    reconciler: DataReconciler
    updater: RecordUpdater
    submissions: SubmissionService
    brands: BrandOwnershipService
    settings: ReconciliationConfig


def _default_cache(settings: ReconciliationConfig) -> ProductCache:
    if settings.live_only:
        return InMemoryProductCache()
    if not is_started():
        startup()
    return SqlAlchemyProductCache()


def build_registry(
    *,
    remote: RemoteProductStore | None = None,
    cache: ProductCache | None = None,
    bus: EventBus | None = None,
    quotas: QuotaConfig | None = None,
    settings: ReconciliationConfig | None = None,
) -> Registry:
    effective_settings = settings or get_reconciliation_config()
    effective_remote = remote or RestProductStore()
    effective_cache = cache or _default_cache(effective_settings)
    effective_bus = bus or EventBus()
    live_only = effective_settings.live_only

    limiter = SubmissionLimiter(effective_remote, quotas or get_quota_config())
    reconciler = DataReconciler(
        remote=effective_remote,
        cache=effective_cache,
        bus=effective_bus,
        live_only=live_only,
        dedupe_across_sources=effective_settings.dedupe_across_sources,
    ).attach()
    return Registry(
        remote=effective_remote,
        cache=effective_cache,
        bus=effective_bus,
        limiter=limiter,
        pipeline=BulkIngestionPipeline(
            remote=effective_remote,
            cache=effective_cache,
            limiter=limiter,
            bus=effective_bus,
            live_only=live_only,
        ),
        reconciler=reconciler,
        updater=RecordUpdater(
            remote=effective_remote, cache=effective_cache, bus=effective_bus, live_only=live_only
        ),
        submissions=SubmissionService(
            remote=effective_remote,
            cache=effective_cache,
            limiter=limiter,
            bus=effective_bus,
            live_only=live_only,
        ),
        brands=BrandOwnershipService(cache=effective_cache, bus=effective_bus),
        settings=effective_settings,
    )


def download_template() -> str:
    return template_csv()


def import_bulk_csv(
    text: str,
    *,
    submitter: Submitter | None = None,
    countries: Iterable[str] | None = None,
    registry: Registry | None = None,
) -> BulkIngestResult:
    """Parse and ingest a bulk CSV upload."""

    active = registry or build_registry()
    effective_submitter = submitter or Submitter()
    log.info(
        "Starting bulk import: user=%s admin=%s",
        effective_submitter.user_id or "anonymous",
        effective_submitter.is_admin,
    )
    result = asyncio.run(
        active.pipeline.ingest_csv(text, submitter=effective_submitter, countries=countries)
    )
    log.info("Finished bulk import: %s", result.summary())
    return result


def scan_text(text: str, *, brand: str = "", registry: Registry | None = None) -> ScanResult:
    active = registry or build_registry()
    return asyncio.run(active.submissions.classify_text(text, brand=brand))


def list_products(
    context: ViewerContext | None = None,
    *,
    registry: Registry | None = None,
) -> ReconciledView:
    active = registry or build_registry()
    return asyncio.run(active.reconciler.set_context(context or ViewerContext()))


def check_quota(
    user_id: str | None,
    *,
    is_admin: bool = False,
    is_bulk: bool = False,
    registry: Registry | None = None,
) -> SubmissionQuota:
    active = registry or build_registry()
    return asyncio.run(active.limiter.check(user_id, is_admin=is_admin, is_bulk=is_bulk))


def brand_statistics(
    *,
    limit: int = 5,
    context: ViewerContext | None = None,
    registry: Registry | None = None,
) -> list[BrandCount]:
    view = list_products(context, registry=registry)
    return brand_categories(view.records, limit=limit)


def approve_product(
    record_id: str, *, approved: bool = True, registry: Registry | None = None
) -> UpdateOutcome:
    active = registry or build_registry()
    return asyncio.run(active.updater.approve(record_id, approved=approved))


def update_product(
    record_id: str, changes: ProductChanges, *, registry: Registry | None = None
) -> UpdateOutcome:
    active = registry or build_registry()
    return asyncio.run(active.updater.update(record_id, changes))


def delete_product(record_id: str, *, registry: Registry | None = None) -> UpdateOutcome:
    active = registry or build_registry()
    return asyncio.run(active.updater.delete(record_id))


def check_remote_connection(*, registry: Registry | None = None) -> ConnectionStatus:
    active = registry or build_registry()
    return asyncio.run(active.remote.check_connection())


def submit_product(
    candidate: CandidateRecord,
    *,
    submitter: Submitter | None = None,
    registry: Registry | None = None,
) -> SubmissionOutcome:
    """Store one contributor submission; it stays pending until approved."""

    active = registry or build_registry()
    return asyncio.run(active.submissions.submit(candidate, submitter=submitter or Submitter()))


def request_brand_ownership(
    record_id: str, contact_email: str, *, registry: Registry | None = None
) -> ProductRecord:
    active = registry or build_registry()
    return asyncio.run(active.brands.request(record_id, contact_email))


def review_brand_ownership(
    record_id: str, *, approve: bool, registry: Registry | None = None
) -> ProductRecord:
    active = registry or build_registry()
    if approve:
        return asyncio.run(active.brands.approve(record_id))
    return asyncio.run(active.brands.reject(record_id))


def pending_brand_requests(*, registry: Registry | None = None) -> list[ProductRecord]:
    active = registry or build_registry()
    return active.brands.pending_requests()


def watch_products(
    on_view: Callable[[ReconciledView], None],
    context: ViewerContext | None = None,
    *,
    interval: float | None = None,
    stop: asyncio.Event | None = None,
    registry: Registry | None = None,
) -> int:
    """Refresh the reconciled view periodically until ``stop`` is set.

    Without ``stop`` this runs until the process is interrupted.
    """

    active = registry or build_registry()
    active.reconciler.context = context or ViewerContext()
    unsubscribe = active.bus.subscribe(ViewRefreshed, lambda event: on_view(event.view))
    effective_interval = interval or active.settings.refresh_interval_seconds

    async def _watch() -> int:
        return await active.reconciler.run_periodic(
            stop or asyncio.Event(), interval=effective_interval
        )

    try:
        return asyncio.run(_watch())
    finally:
        unsubscribe()
