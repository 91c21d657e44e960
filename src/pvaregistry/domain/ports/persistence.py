"""Ports for the two product sources: the offline cache and the remote store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pvaregistry.domain.model import ProductChanges, ProductRecord


@runtime_checkable
class ProductCache(Protocol):
    """Process-wide keyed record store; last write wins, no locking."""

    def get(self, record_id: str) -> ProductRecord | None: ...

    def list_records(self) -> list[ProductRecord]: ...

    def put(self, record: ProductRecord) -> None: ...

    def put_many(self, records: Iterable[ProductRecord]) -> None: ...

    def remove(self, record_id: str) -> bool: ...

    def clear(self) -> None: ...


@dataclass(frozen=True, slots=True)
class ConnectionStatus:
    connected: bool
    message: str


@runtime_checkable
class SubmissionCounter(Protocol):
    """Counts a contributor's submissions; ``owner_id=None`` is the anonymous bucket."""

    async def count_submissions(self, owner_id: str | None, *, approved: bool) -> int: ...


@runtime_checkable
class RemoteProductStore(SubmissionCounter, Protocol):
    """Authoritative tabular store reached over the network."""

    async def fetch_records(
        self,
        *,
        approved_only: bool = False,
        owner_id: str | None = None,
    ) -> list[ProductRecord]: ...

    async def insert(self, record: ProductRecord) -> ProductRecord: ...

    async def update(self, record_id: str, changes: ProductChanges) -> ProductRecord: ...

    async def delete(self, record_id: str) -> None: ...

    async def check_connection(self) -> ConnectionStatus: ...


__all__ = ["ConnectionStatus", "ProductCache", "RemoteProductStore", "SubmissionCounter"]
