"""SQLAlchemy mapping metadata for the offline product cache."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)

from pvaregistry.domain.model import ProductRecord, ProductStatus

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class CountryListType(TypeDecorator[tuple[str, ...]]):
    """JSON array of country names; an empty array is the ``Global`` wildcard."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: tuple[str, ...] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps(list(value or ()))

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[str, ...]:
        _ = dialect
        if not value:
            return ()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return ()
        items = cast(list[Any], loaded)
        return tuple(item for item in items if isinstance(item, str))


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

product_cache_table = Table(
    "product_cache",
    mapper_registry.metadata,
    Column("id", String(64), primary_key=True),
    Column("brand", String, nullable=False),
    Column("name", String, nullable=False),
    Column("type", String, nullable=False),
    Column(
        "status",
        Enum(
            ProductStatus,
            name="product_status",
            native_enum=False,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    ),
    Column("percentage", Float, nullable=True),
    Column("approved", Boolean, nullable=False, default=False),
    Column("countries", CountryListType, nullable=False, default=()),
    Column("description", Text, nullable=False, default=""),
    Column("image_url", String, nullable=True),
    Column("video_url", String, nullable=True),
    Column("website_url", String, nullable=True),
    Column("owner_id", String, nullable=True),
    Column("brand_verified", Boolean, nullable=False, default=False),
    Column("brand_ownership_requested", Boolean, nullable=False, default=False),
    Column("brand_contact_email", String, nullable=True),
    Column("submitted_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=True),
    Index("ix_product_cache_owner_id", "owner_id"),
    Index("ix_product_cache_approved", "approved"),
)


@cache
def start_mappers() -> orm.registry:
    """Map ``ProductRecord`` onto the cache table (idempotent)."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(ProductRecord, product_cache_table)
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
