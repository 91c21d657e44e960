"""Reconcile the offline cache and the remote store into one view."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from pvaregistry.domain.errors import RemoteStoreError
from pvaregistry.domain.events import (
    CacheInvalidated,
    NotificationLevel,
    ReloadRequested,
    ViewRefreshed,
)
from pvaregistry.domain.reconciliation.view import ReconciledView, ViewerContext
from pvaregistry.domain.reconciliation.visibility import (
    approved_only,
    drop_shadowed,
    filter_by_region,
    merge_sources,
    pending_only,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from pvaregistry.domain.events import EventBus
    from pvaregistry.domain.model import ProductRecord
    from pvaregistry.domain.ports import ProductCache, RemoteProductStore

log = getLogger(__name__)

DEFAULT_REFRESH_INTERVAL_SECONDS = 30.0


class DataReconciler:
    """Build the display list for a viewer from both record sources.

    Each refresh re-fetches the remote store. The last successful remote result
    is kept as a fallback for failed reads until a ``CacheInvalidated`` event
    drops it.
    """

    def __init__(
        self,
        *,
        remote: RemoteProductStore,
        cache: ProductCache,
        bus: EventBus,
        context: ViewerContext | None = None,
        live_only: bool = False,
        dedupe_across_sources: bool = True,
    ) -> None:
        self.remote = remote
        self.cache = cache
        self.bus = bus
        self.context = context or ViewerContext()
        self.live_only = live_only
        self.dedupe_across_sources = dedupe_across_sources
        self.view: ReconciledView | None = None
        self._snapshots: dict[tuple[bool, str | None], list[ProductRecord]] = {}
        self._unsubscribers: list[Callable[[], None]] = []

    def attach(self) -> DataReconciler:
        """Subscribe to reload and invalidation events."""

        if not self._unsubscribers:
            self._unsubscribers = [
                self.bus.subscribe(ReloadRequested, self._on_reload),
                self.bus.subscribe(CacheInvalidated, self._on_invalidate),
            ]
        return self

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def invalidate(self) -> None:
        self._snapshots.clear()

    async def set_context(self, context: ViewerContext) -> ReconciledView:
        self.context = context
        return await self.refresh()

    async def refresh(self) -> ReconciledView:
        context = self.context
        errors: list[str] = []

        remote_records = await self._fetch_remote(
            approved_only=not context.admin_view, owner_id=None, errors=errors
        )
        remote_ok = not errors
        if remote_records is None:
            remote_records = []
        cache_records = [] if self.live_only else self.cache.list_records()
        # Shadow against the unfiltered remote result; region filtering comes after.
        unshadowed_cache = (
            drop_shadowed(remote_records, cache_records)
            if self.dedupe_across_sources
            else cache_records
        )

        if context.admin_view:
            visible_remote, visible_cache = remote_records, unshadowed_cache
        else:
            visible_remote = approved_only(remote_records)
            visible_cache = approved_only(unshadowed_cache)

        records = merge_sources(
            filter_by_region(visible_remote, context.selected_country),
            filter_by_region(visible_cache, context.selected_country),
            remote_precedence=self.dedupe_across_sources,
        )

        pending: list[ProductRecord] = []
        if context.admin_view:
            pending = pending_only(
                merge_sources(
                    remote_records, cache_records, remote_precedence=self.dedupe_across_sources
                )
            )

        own_pending: list[ProductRecord] = []
        if context.user_id is not None and not context.admin_view:
            own_pending = await self._own_pending(context.user_id, cache_records, errors)

        view = ReconciledView(
            records=tuple(records),
            context=context,
            pending=tuple(pending),
            own_pending=tuple(own_pending),
            remote_ok=remote_ok,
            errors=tuple(errors),
        )
        self.view = view
        log.debug(
            "Reconciled %d record(s), %d pending, remote_ok=%s",
            len(view.records),
            len(view.pending),
            remote_ok,
        )
        if errors:
            await self.bus.notify(
                NotificationLevel.WARNING,
                "Remote store unavailable",
                "; ".join(errors) or "Showing offline data",
            )
        await self.bus.publish(ViewRefreshed(view=view))
        return view

    async def run_periodic(
        self,
        stop: asyncio.Event,
        *,
        interval: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
    ) -> int:
        """Refresh until ``stop`` is set; returns the number of refreshes."""

        runs = 0
        while not stop.is_set():
            await self.refresh()
            runs += 1
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except TimeoutError:
                continue
        return runs

    async def _fetch_remote(
        self,
        *,
        approved_only: bool,
        owner_id: str | None,
        errors: list[str],
    ) -> list[ProductRecord] | None:
        key = (approved_only, owner_id)
        try:
            records = await self.remote.fetch_records(
                approved_only=approved_only, owner_id=owner_id
            )
        except RemoteStoreError as exc:
            log.warning("Remote fetch failed: %s", exc)
            errors.append(str(exc))
            return self._snapshots.get(key)
        self._snapshots[key] = records
        return records

    async def _own_pending(
        self,
        user_id: str,
        cache_records: list[ProductRecord],
        errors: list[str],
    ) -> list[ProductRecord]:
        remote_own = await self._fetch_remote(approved_only=False, owner_id=user_id, errors=errors)
        cache_own = [record for record in cache_records if record.owner_id == user_id]
        return pending_only(
            merge_sources(remote_own or [], cache_own, remote_precedence=self.dedupe_across_sources)
        )

    async def _on_reload(self, event: ReloadRequested) -> None:
        log.debug("Reload requested: %s", event.reason or "unspecified")
        await self.refresh()

    async def _on_invalidate(self, event: CacheInvalidated) -> None:
        log.debug("Cache invalidated: %s", event.reason or "unspecified")
        self.invalidate()
        await self.refresh()
