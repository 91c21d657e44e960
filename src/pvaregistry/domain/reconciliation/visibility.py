"""Pure filtering and merging steps of reconciliation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pvaregistry.domain.regions import matches_region

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pvaregistry.domain.model import ProductRecord


def approved_only(records: Iterable[ProductRecord]) -> list[ProductRecord]:
    return [record for record in records if record.approved is True]


def pending_only(records: Iterable[ProductRecord]) -> list[ProductRecord]:
    return [record for record in records if record.is_pending]


def filter_by_region(
    records: Iterable[ProductRecord], selection: str | None
) -> list[ProductRecord]:
    return [record for record in records if matches_region(record.countries, selection)]


def drop_shadowed(
    remote: Iterable[ProductRecord], cache: Iterable[ProductRecord]
) -> list[ProductRecord]:
    """Cache records whose id or natural key is absent from the remote result."""

    remote_list = list(remote)
    ids = {record.id for record in remote_list}
    keys = {record.natural_key for record in remote_list}
    return [
        record for record in cache if record.id not in ids and record.natural_key not in keys
    ]


def merge_sources(
    remote: Iterable[ProductRecord],
    cache: Iterable[ProductRecord],
    *,
    remote_precedence: bool = True,
) -> list[ProductRecord]:
    """Union remote and cache records, remote first.

    With ``remote_precedence`` a cache record is dropped when the remote result
    already holds its id or its natural key. Without it the lists are simply
    concatenated.
    """

    merged = list(remote)
    if not remote_precedence:
        merged.extend(cache)
        return merged
    ids = {record.id for record in merged}
    keys = {record.natural_key for record in merged}
    for record in cache:
        if record.id in ids or record.natural_key in keys:
            continue
        ids.add(record.id)
        keys.add(record.natural_key)
        merged.append(record)
    return merged
