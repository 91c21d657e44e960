from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from pvaregistry.adapters.memory import InMemoryProductCache
from pvaregistry.adapters.sqlalchemy import SqlAlchemyProductCache, shutdown, startup
from pvaregistry.config import QuotaConfig, default_quota_config
from pvaregistry.domain.events import EventBus
from pvaregistry.domain.quotas import SubmissionLimiter
from tests.support.remote import FakeRemoteStore

os.environ.setdefault("CACHE_DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def cache() -> InMemoryProductCache:
    return InMemoryProductCache()


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def quota_config() -> QuotaConfig:
    return default_quota_config()


@pytest.fixture
def limiter(remote: FakeRemoteStore, quota_config: QuotaConfig) -> SubmissionLimiter:
    return SubmissionLimiter(remote, quota_config)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_cache(sqlite_engine: Engine) -> Iterator[SqlAlchemyProductCache]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyProductCache()
    finally:
        shutdown()
