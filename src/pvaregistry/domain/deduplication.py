"""Natural-key duplicate detection for products."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pvaregistry.domain.model import natural_key

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from pvaregistry.domain.model import NaturalKey, ProductRecord


def is_duplicate(brand: str, name: str, records: Iterable[ProductRecord]) -> bool:
    """True when a record shares the case-folded ``(brand, name)`` pair."""

    key = natural_key(brand, name)
    return any(record.natural_key == key for record in records)


class DuplicateIndex:
    """Set of known natural keys for repeated duplicate checks."""

    def __init__(self, records: Iterable[ProductRecord] = ()) -> None:
        self._keys: set[NaturalKey] = {record.natural_key for record in records}

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[NaturalKey]:
        return iter(self._keys)

    def contains(self, brand: str, name: str) -> bool:
        return natural_key(brand, name) in self._keys

    def add(self, brand: str, name: str) -> None:
        self._keys.add(natural_key(brand, name))

    def add_record(self, record: ProductRecord) -> None:
        self._keys.add(record.natural_key)

    def extend(self, records: Iterable[ProductRecord]) -> None:
        self._keys.update(record.natural_key for record in records)
