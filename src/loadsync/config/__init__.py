"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env, optional_env_int, require_env_vars
from .errors import ConfigurationError, InvalidConfigurationError, MissingConfigurationError
from .feed import DEFAULT_TENANT_ID, FeedConfig, get_feed_config
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .sync import SyncConfig, get_sync_config

__all__ = [
    "DEFAULT_TENANT_ID",
    "ConfigurationError",
    "DatabaseConfig",
    "FeedConfig",
    "InvalidConfigurationError",
    "MissingConfigurationError",
    "StorageConfig",
    "SyncConfig",
    "configure_logging",
    "get_database_config",
    "get_feed_config",
    "get_storage_config",
    "get_sync_config",
    "optional_env",
    "optional_env_int",
    "require_env_vars",
]
