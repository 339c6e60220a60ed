"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float, env_int, optional_env_str
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging, timed
from .marketplace import (
    AuctionConfig,
    ExpiryConfig,
    MarketplaceConfig,
    ReconciliationConfig,
    SearchConfig,
    get_marketplace_config,
)
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)
from .webhook import WebhookConfig, get_webhook_config

__all__ = [
    "AuctionConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "ExpiryConfig",
    "MarketplaceConfig",
    "RateLimit",
    "ReconciliationConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "SearchConfig",
    "StorageConfig",
    "WebhookConfig",
    "configure_logging",
    "env_float",
    "env_int",
    "get_database_config",
    "get_database_uri",
    "get_marketplace_config",
    "get_storage_config",
    "get_webhook_config",
    "optional_env_str",
    "timed",
]
