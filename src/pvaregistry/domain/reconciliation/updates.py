"""Administrator mutations: remote first, cache as degraded fallback."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from pvaregistry.domain.errors import RemoteStoreError
from pvaregistry.domain.events import NotificationLevel, ReloadRequested
from pvaregistry.domain.model import ProductChanges

if TYPE_CHECKING:
    from pvaregistry.domain.events import EventBus
    from pvaregistry.domain.model import ProductRecord
    from pvaregistry.domain.ports import ProductCache, RemoteProductStore

log = getLogger(__name__)


@dataclass(slots=True)
class UpdateOutcome:
    record_id: str
    remote_ok: bool = False
    cache_ok: bool = False
    record: ProductRecord | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.remote_ok or self.cache_ok


class RecordUpdater:
    def __init__(
        self,
        *,
        remote: RemoteProductStore,
        cache: ProductCache,
        bus: EventBus,
        live_only: bool = False,
    ) -> None:
        self.remote = remote
        self.cache = cache
        self.bus = bus
        self.live_only = live_only

    async def update(self, record_id: str, changes: ProductChanges) -> UpdateOutcome:
        """Apply ``changes`` to the remote record, then to the cached copy.

        The cache is mutated even when the remote update fails. Brand ownership
        fields only live in the cache and survive the remote round trip.
        """

        changes.check()
        outcome = UpdateOutcome(record_id=record_id)
        try:
            outcome.record = await self.remote.update(record_id, changes)
            outcome.remote_ok = True
        except RemoteStoreError as exc:
            log.warning("Remote update of %s failed: %s", record_id, exc)
            outcome.errors.append(str(exc))
            await self.bus.notify(
                NotificationLevel.ERROR,
                "Update failed",
                f"Could not update the remote store: {exc}",
            )

        if not self.live_only:
            self._update_cache(record_id, changes, outcome)

        if outcome.succeeded:
            await self.bus.publish(ReloadRequested(reason=f"updated {record_id}"))
        return outcome

    async def approve(self, record_id: str, *, approved: bool = True) -> UpdateOutcome:
        return await self.update(record_id, ProductChanges.of(approved=approved))

    async def delete(self, record_id: str) -> UpdateOutcome:
        """Delete remotely, then drop the cached copy regardless of the remote result."""

        outcome = UpdateOutcome(record_id=record_id)
        try:
            await self.remote.delete(record_id)
            outcome.remote_ok = True
        except RemoteStoreError as exc:
            log.warning("Remote delete of %s failed: %s", record_id, exc)
            outcome.errors.append(str(exc))
        outcome.cache_ok = self.cache.remove(record_id)

        if outcome.succeeded:
            await self.bus.publish(ReloadRequested(reason=f"deleted {record_id}"))
        else:
            await self.bus.notify(
                NotificationLevel.ERROR,
                "Delete failed",
                "; ".join(outcome.errors) or f"Product {record_id} was not found",
            )
        return outcome

    def _update_cache(
        self, record_id: str, changes: ProductChanges, outcome: UpdateOutcome
    ) -> None:
        cached = self.cache.get(record_id)
        if outcome.record is not None:
            updated = outcome.record
            if cached is not None:
                updated = updated.with_cache_state_from(cached)
        elif cached is not None:
            updated = changes.apply_to(cached)
        else:
            log.info("No cached copy of %s to update", record_id)
            return
        self.cache.put(updated)
        outcome.record = updated
        outcome.cache_ok = True
