"""SQLAlchemy-backed offline product cache."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import Session, sessionmaker

from pvaregistry.adapters.sqlalchemy.mappings import (
    create_all_tables,
    product_cache_table,
    start_mappers,
)
from pvaregistry.config import get_cache_database_config
from pvaregistry.domain.model import ProductRecord

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy cache is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy cache not initialised. Call pvaregistry.adapters.sqlalchemy."
                "cache.startup() before creating a cache."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the engine, mappers, tables and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError("SQLAlchemy cache already initialised. Pass force=True to reconfigure.")

    if engine is not None:
        resolved_engine = engine
    elif database_uri is not None:
        resolved_engine = create_engine(database_uri)
    else:
        database = get_cache_database_config()
        resolved_engine = create_engine(database.uri, echo=database.echo)
    start_mappers()
    create_all_tables(resolved_engine)
    if _STATE.engine is not None and _STATE.engine is not resolved_engine:
        _STATE.engine.dispose()
    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class SqlAlchemyProductCache:
    """Offline cache persisted in a local database; last write wins."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self.session_factory = session_factory or _STATE.session_factory

    def get(self, record_id: str) -> ProductRecord | None:
        with self.session_factory() as session:
            return session.get(ProductRecord, record_id)

    def list_records(self) -> list[ProductRecord]:
        stmt = select(ProductRecord).order_by(
            product_cache_table.c.submitted_at, product_cache_table.c.id
        )
        with self.session_factory() as session:
            return list(session.scalars(stmt))

    def put(self, record: ProductRecord) -> None:
        self.put_many((record,))

    def put_many(self, records: Iterable[ProductRecord]) -> None:
        with self.session_factory() as session, session.begin():
            for record in records:
                session.merge(record)

    def remove(self, record_id: str) -> bool:
        with self.session_factory() as session, session.begin():
            record = session.get(ProductRecord, record_id)
            if record is None:
                return False
            session.delete(record)
        log.debug("Removed %s from the offline cache", record_id)
        return True

    def clear(self) -> None:
        with self.session_factory() as session, session.begin():
            session.execute(delete(product_cache_table))
