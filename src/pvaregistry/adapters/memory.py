"""In-process product cache used for live sessions and tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pvaregistry.domain.model import ProductRecord


class InMemoryProductCache:
    """Dictionary-backed cache keyed by record id; last write wins."""

    def __init__(self, records: Iterable[ProductRecord] = ()) -> None:
        self._records: dict[str, ProductRecord] = {}
        self.put_many(records)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> ProductRecord | None:
        return self._records.get(record_id)

    def list_records(self) -> list[ProductRecord]:
        return list(self._records.values())

    def put(self, record: ProductRecord) -> None:
        self._records[record.id] = record

    def put_many(self, records: Iterable[ProductRecord]) -> None:
        for record in records:
            self.put(record)

    def remove(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    def clear(self) -> None:
        self._records.clear()
