"""SQLAlchemy adapter package for the offline cache."""

from __future__ import annotations

from .cache import SqlAlchemyProductCache, StartupError, is_started, shutdown, startup
from .mappings import create_all_tables, mapper_registry, product_cache_table, start_mappers

__all__ = [
    "SqlAlchemyProductCache",
    "StartupError",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "product_cache_table",
    "shutdown",
    "start_mappers",
    "startup",
]
