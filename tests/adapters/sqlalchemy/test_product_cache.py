from __future__ import annotations

from dataclasses import replace

import pytest
from sqlalchemy import inspect, text

from pvaregistry.adapters.sqlalchemy import SqlAlchemyProductCache, StartupError, startup
from pvaregistry.adapters.sqlalchemy.cache import configured_engine, is_started, shutdown
from pvaregistry.domain.model import ProductStatus
from pvaregistry.domain.ports import ProductCache
from tests.support.records import make_record


def test_startup_creates_cache_table(sqlite_cache: SqlAlchemyProductCache) -> None:
    engine = configured_engine()
    assert engine is not None
    assert "product_cache" in inspect(engine).get_table_names()
    assert isinstance(sqlite_cache, ProductCache)


def test_round_trip_preserves_fields(sqlite_cache: SqlAlchemyProductCache) -> None:
    record = make_record(
        "Pods",
        status=ProductStatus.VERIFIED_FREE,
        percentage=0,
        countries=("Canada", "Mexico"),
        owner_id="user-1",
        record_id="r1",
        approved=False,
    )
    record.brand_ownership_requested = True
    record.brand_contact_email = "owner@ecowash.example"
    submitted_at = record.submitted_at

    sqlite_cache.put(record)
    loaded = sqlite_cache.get("r1")

    assert loaded is not None
    assert loaded.status is ProductStatus.VERIFIED_FREE
    assert loaded.percentage == 0
    assert loaded.countries == ("Canada", "Mexico")
    assert loaded.approved is False
    assert loaded.brand_ownership_requested
    assert loaded.brand_contact_email == "owner@ecowash.example"
    assert loaded.submitted_at == submitted_at
    assert loaded.submitted_at.tzinfo is not None


def test_status_is_stored_by_value(sqlite_cache: SqlAlchemyProductCache) -> None:
    sqlite_cache.put(make_record("Pods", status=ProductStatus.NEEDS_VERIFICATION, record_id="r1"))
    engine = configured_engine()
    assert engine is not None

    with engine.connect() as connection:
        stored = connection.execute(text("SELECT status FROM product_cache")).scalar_one()

    assert stored == "needs-verification"


def test_put_overwrites_existing_record(sqlite_cache: SqlAlchemyProductCache) -> None:
    record = make_record("Pods", record_id="r1")
    sqlite_cache.put(record)

    sqlite_cache.put(replace(record, name="Pods v2", brand_verified=True))

    records = sqlite_cache.list_records()
    assert [item.name for item in records] == ["Pods v2"]
    assert records[0].brand_verified


def test_list_orders_by_submission_time(sqlite_cache: SqlAlchemyProductCache) -> None:
    first = make_record("First")
    second = make_record("Second")
    sqlite_cache.put_many([second, first])

    assert [record.name for record in sqlite_cache.list_records()] == ["First", "Second"]


def test_remove_and_clear(sqlite_cache: SqlAlchemyProductCache) -> None:
    sqlite_cache.put_many([make_record("A", record_id="a"), make_record("B", record_id="b")])

    assert sqlite_cache.remove("a")
    assert not sqlite_cache.remove("a")
    assert sqlite_cache.get("a") is None

    sqlite_cache.clear()
    assert sqlite_cache.list_records() == []


def test_startup_twice_requires_force(sqlite_cache: SqlAlchemyProductCache) -> None:
    assert is_started()

    with pytest.raises(StartupError, match="already initialised"):
        startup(database_uri="sqlite+pysqlite:///:memory:")


def test_cache_requires_startup() -> None:
    shutdown()

    with pytest.raises(StartupError, match="not initialised"):
        SqlAlchemyProductCache()
