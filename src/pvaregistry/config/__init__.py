"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_bool_env, optional_int_env, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .quotas import QuotaConfig, default_quota_config, get_quota_config
from .reconciliation import ReconciliationConfig, get_reconciliation_config
from .remote import RemoteStoreConfig, build_remote_store_config, get_remote_store_config
from .storage import DatabaseConfig, StorageConfig, get_cache_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "QuotaConfig",
    "RateLimit",
    "ReconciliationConfig",
    "RemoteStoreConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "build_remote_store_config",
    "configure_logging",
    "default_quota_config",
    "get_cache_database_config",
    "get_quota_config",
    "get_reconciliation_config",
    "get_remote_store_config",
    "get_storage_config",
    "optional_bool_env",
    "optional_int_env",
    "require_env_var",
    "require_env_vars",
]
