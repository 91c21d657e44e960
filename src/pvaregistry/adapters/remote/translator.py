"""Translate between remote rows and domain records."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pvaregistry.domain.model import ProductRecord, ProductStatus, percentage_problem, utcnow
from pvaregistry.domain.regions import join_countries, split_countries

from .schema import RemoteProductRow

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from pvaregistry.domain.model import ProductChanges

log = getLogger(__name__)

_COLUMN_BY_FIELD: dict[str, str] = {
    "brand": "brand",
    "name": "name",
    "type": "type",
    "status": "pvastatus",
    "percentage": "pvapercentage",
    "approved": "approved",
    "countries": "country",
    "description": "description",
    "image_url": "imageurl",
    "video_url": "videourl",
    "website_url": "websiteurl",
}


def _parse_status(row: RemoteProductRow) -> ProductStatus:
    if row.pvastatus is None:
        return ProductStatus.NEEDS_VERIFICATION
    try:
        return ProductStatus.parse(row.pvastatus)
    except ValueError:
        log.warning(
            "Unknown status %r on remote product %s; using needs-verification",
            row.pvastatus,
            row.id,
        )
        return ProductStatus.NEEDS_VERIFICATION


def row_to_record(payload: RemoteProductRow | Mapping[str, object]) -> ProductRecord:
    row = payload
    if not isinstance(row, RemoteProductRow):
        row = RemoteProductRow.model_validate(row)
    status = _parse_status(row)
    percentage = row.pvapercentage
    problem = percentage_problem(status, percentage)
    if problem is not None:
        log.warning("Dropping percentage of remote product %s: %s", row.id, problem)
        percentage = None
    return ProductRecord(
        id=row.id,
        brand=row.brand,
        name=row.name,
        type=row.type,
        status=status,
        percentage=percentage,
        approved=row.approved is True,
        countries=split_countries(row.country),
        description=row.description or "",
        image_url=row.imageurl,
        video_url=row.videourl,
        website_url=row.websiteurl,
        owner_id=row.owner_id,
        submitted_at=row.createdat or utcnow(),
        updated_at=row.updatedat,
    )


def _encode(field_name: str, value: object) -> object:
    if field_name == "countries":
        return join_countries(value)  # pyright: ignore[reportArgumentType]
    if isinstance(value, ProductStatus):
        return value.value
    return value


def record_to_row(record: ProductRecord) -> dict[str, object]:
    """Insert payload; local brand ownership fields never leave the cache."""

    row: dict[str, object] = {
        column: _encode(field_name, getattr(record, field_name))
        for field_name, column in _COLUMN_BY_FIELD.items()
    }
    row["id"] = record.id
    row["owner_id"] = record.owner_id
    row["createdat"] = record.submitted_at.isoformat()
    row["updatedat"] = record.updated_at.isoformat() if record.updated_at else None
    return row


def changes_to_row(changes: ProductChanges, *, now: datetime | None = None) -> dict[str, object]:
    row: dict[str, object] = {
        _COLUMN_BY_FIELD[field_name]: _encode(field_name, value)
        for field_name, value in changes.values.items()
    }
    row["updatedat"] = (now or utcnow()).isoformat()
    return row
