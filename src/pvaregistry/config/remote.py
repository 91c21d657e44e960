"""Remote record store configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_PRODUCT_TABLE = "product_submissions"
REMOTE_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True, slots=True)
class RemoteStoreConfig:
    """Connection settings for the PostgREST-style remote store."""

    base_url: str
    api_key: str
    table: str
    resilience: ResilienceConfig


def _rest_base_url(url: str) -> str:
    trimmed = url.strip().rstrip("/")
    if trimmed.endswith("/rest/v1"):
        return trimmed + "/"
    return trimmed + "/rest/v1/"


def build_remote_store_config(
    *,
    url: str,
    api_key: str,
    table: str = DEFAULT_PRODUCT_TABLE,
    retry: RetryPolicy | None = None,
) -> RemoteStoreConfig:
    base_url = _rest_base_url(url)
    resilience = ResilienceConfig(
        name="remote-store",
        base_url=base_url,
        timeout_seconds=REMOTE_TIMEOUT_SECONDS,
        retry=retry or RetryPolicy(),
        ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        default_headers={
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
    )
    return RemoteStoreConfig(base_url=base_url, api_key=api_key, table=table, resilience=resilience)


def get_remote_store_config() -> RemoteStoreConfig:
    values = require_env_vars(("REMOTE_STORE_URL", "REMOTE_STORE_API_KEY"))
    table = os.getenv("REMOTE_STORE_TABLE") or DEFAULT_PRODUCT_TABLE
    return build_remote_store_config(
        url=values["REMOTE_STORE_URL"],
        api_key=values["REMOTE_STORE_API_KEY"],
        table=table,
    )
