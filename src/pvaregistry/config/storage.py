"""Where the offline product cache lives."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_bool_env

APP_DIR_NAME: Final[str] = "pvaregistry"
CACHE_FILENAME: Final[str] = "offline_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def cache_uri(self) -> str:
        """SQLite URI of the cache file; creates the data directory on first use."""

        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{data_dir / CACHE_FILENAME}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False


def _platform_data_home() -> Path:
    if os.name == "nt":
        local = os.getenv("LOCALAPPDATA")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    xdg = os.getenv("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    override = os.getenv("PVAREGISTRY_DATA_DIR")
    data_dir = Path(override) if override else _platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir)


def get_cache_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``CACHE_DATABASE_URI`` wins over the data directory (tests use in-memory SQLite)."""

    echo = optional_bool_env("CACHE_DATABASE_ECHO", default=False)
    uri = os.getenv("CACHE_DATABASE_URI") or (storage or get_storage_config()).cache_uri()
    return DatabaseConfig(uri=uri, echo=echo)
