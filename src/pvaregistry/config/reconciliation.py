"""Reconciliation defaults for the display view."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import optional_bool_env
from .errors import ConfigurationError

DEFAULT_REFRESH_INTERVAL_SECONDS = 30.0


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    refresh_interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS
    live_only: bool = False
    dedupe_across_sources: bool = True


def get_reconciliation_config() -> ReconciliationConfig:
    raw_interval = os.getenv("PVAREGISTRY_REFRESH_SECONDS")
    interval = DEFAULT_REFRESH_INTERVAL_SECONDS
    if raw_interval:
        try:
            interval = float(raw_interval)
        except ValueError as exc:
            raise ConfigurationError(
                f"PVAREGISTRY_REFRESH_SECONDS must be a number, got {raw_interval!r}"
            ) from exc
        if interval <= 0:
            raise ConfigurationError("PVAREGISTRY_REFRESH_SECONDS must be positive")
    return ReconciliationConfig(
        refresh_interval_seconds=interval,
        live_only=optional_bool_env("PVAREGISTRY_LIVE_ONLY", default=False),
        dedupe_across_sources=optional_bool_env("PVAREGISTRY_DEDUPE_SOURCES", default=True),
    )
