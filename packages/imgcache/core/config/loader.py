"""Configuration loading utilities with JSON and YAML support."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from imgcache.core.config.models import AppConfig
from imgcache.core.utils.logging import configure_logging as _configure_logging

logger = logging.getLogger(__name__)

# Default app config path (can be overridden)
_DEFAULT_APP_CONFIG_PATH = Path("imgcache.yaml")

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def detect_format(file_path: Path | str) -> str:
    """Detect config file format from extension.

    Args:
        file_path: Path to config file

    Returns:
        Format string: "json" or "yaml"

    Raises:
        ValueError: If format cannot be determined

    Example:
        >>> detect_format("imgcache.json")
        'json'
        >>> detect_format("imgcache.yml")
        'yaml'
    """
    suffix = Path(file_path).suffix.lower()

    if suffix == ".json":
        return "json"
    elif suffix in [".yaml", ".yml"]:
        return "yaml"
    else:
        raise ValueError(f"Unsupported config format: {suffix}")


def load_config(path: str | Path) -> dict[str, Any]:
    """Load and return raw configuration dictionary.

    Supports both JSON and YAML formats. Format is auto-detected
    from file extension.

    Args:
        path: Path to config file (.json, .yaml, or .yml)

    Returns:
        Raw configuration dictionary

    Raises:
        FileNotFoundError: If config file does not exist
        ValueError: If format is not supported or file content is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    fmt = detect_format(path)

    if fmt == "json":
        try:
            with path.open("r", encoding="utf-8") as f:
                content = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        try:
            with path.open("r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        # safe_load returns None for empty files
        if content is None:
            content = {}

    if not isinstance(content, dict):
        raise ValueError(f"Config root must be a mapping in {path}")
    return content


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration.

    Missing file means all defaults. Environment variables
    ``IMGCACHE_CACHE_DIR``, ``IMGCACHE_CACHE_RETENTION`` and
    ``IMGCACHE_CACHE_ENABLED`` override the file.

    Args:
        path: Path to app config file (.json, .yaml, or .yml)
              Defaults to imgcache.yaml

    Returns:
        Validated AppConfig instance

    Raises:
        ValidationError: If config is invalid
    """
    if path is None:
        path = _DEFAULT_APP_CONFIG_PATH

    if Path(path).exists():
        config = AppConfig.model_validate(load_config(path))
    else:
        logger.debug(f"No config at {path}, using defaults")
        config = AppConfig()

    return _apply_env_overrides(config)


def configure_logging(config: AppConfig | None = None) -> None:
    """Configure Python logging from app config.

    Args:
        config: AppConfig instance (loads default if None)
    """
    if config is None:
        config = load_app_config()

    _configure_logging(
        level=config.logging.level,
        format_string=config.logging.format,
        filename=config.logging.filename,
        structured=config.logging.structured,
    )


def _apply_env_overrides(config: AppConfig) -> AppConfig:
    """Return a copy of config with cache settings taken from the environment."""
    updates: dict[str, Any] = {}

    cache_dir = os.getenv("IMGCACHE_CACHE_DIR")
    if cache_dir:
        logger.debug("Loaded IMGCACHE_CACHE_DIR from environment")
        updates["dir"] = cache_dir

    retention = os.getenv("IMGCACHE_CACHE_RETENTION")
    if retention:
        try:
            updates["retention_seconds"] = int(retention)
        except ValueError:
            logger.warning(f"Ignoring non-integer IMGCACHE_CACHE_RETENTION={retention!r}")

    enabled = os.getenv("IMGCACHE_CACHE_ENABLED")
    if enabled:
        if enabled.lower() in _TRUTHY:
            updates["enabled"] = True
        elif enabled.lower() in _FALSY:
            updates["enabled"] = False
        else:
            logger.warning(f"Ignoring unrecognised IMGCACHE_CACHE_ENABLED={enabled!r}")

    if not updates:
        return config

    cache = config.cache.model_validate({**config.cache.model_dump(), **updates})
    return config.model_copy(update={"cache": cache})
