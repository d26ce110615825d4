"""Configuration management for imgcache."""

from imgcache.core.config.loader import (
    configure_logging,
    load_app_config,
    load_config,
)
from imgcache.core.config.models import AppConfig, CacheConfig, LoggingConfig

__all__ = [
    # Loaders
    "load_config",
    "load_app_config",
    "configure_logging",
    # Models
    "AppConfig",
    "CacheConfig",
    "LoggingConfig",
]
