"""Brand ownership requests kept in the offline cache."""

from __future__ import annotations

from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from pvaregistry.domain.errors import InvalidRecordError, RecordNotFoundError
from pvaregistry.domain.events import ReloadRequested
from pvaregistry.domain.model import utcnow

if TYPE_CHECKING:
    from pvaregistry.domain.events import EventBus
    from pvaregistry.domain.model import ProductRecord
    from pvaregistry.domain.ports import ProductCache

log = getLogger(__name__)


class BrandOwnershipService:
    """Request, approve and reject ownership of a product's brand.

    An approved request marks the record's brand as verified, which feeds the
    verified-brands set used during classification.
    """

    def __init__(self, *, cache: ProductCache, bus: EventBus) -> None:
        self.cache = cache
        self.bus = bus

    def pending_requests(self) -> list[ProductRecord]:
        return [record for record in self.cache.list_records() if record.brand_ownership_requested]

    async def request(self, record_id: str, contact_email: str) -> ProductRecord:
        email = contact_email.strip()
        local, _, domain = email.partition("@")
        if not local or "." not in domain:
            raise InvalidRecordError(f"Invalid contact email {contact_email!r}")
        record = self._require(record_id)
        if record.brand_verified:
            raise InvalidRecordError(f"Brand {record.brand!r} is already verified")
        updated = replace(
            record,
            brand_ownership_requested=True,
            brand_contact_email=email,
            updated_at=utcnow(),
        )
        return await self._store(updated, "ownership requested")

    async def approve(self, record_id: str) -> ProductRecord:
        record = self._require(record_id)
        updated = replace(
            record,
            brand_verified=True,
            brand_ownership_requested=False,
            updated_at=utcnow(),
        )
        log.info("Brand %r verified via %s", record.brand, record_id)
        return await self._store(updated, "ownership approved")

    async def reject(self, record_id: str) -> ProductRecord:
        record = self._require(record_id)
        updated = replace(
            record,
            brand_verified=False,
            brand_ownership_requested=False,
            updated_at=utcnow(),
        )
        return await self._store(updated, "ownership rejected")

    def _require(self, record_id: str) -> ProductRecord:
        record = self.cache.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    async def _store(self, record: ProductRecord, reason: str) -> ProductRecord:
        self.cache.put(record)
        await self.bus.publish(ReloadRequested(reason=reason))
        return record
