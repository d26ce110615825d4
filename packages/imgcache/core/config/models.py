"""Configuration models for imgcache."""

from __future__ import annotations

import hashlib

from pydantic import BaseModel, Field, field_validator


class CacheConfig(BaseModel):
    """Artifact cache configuration."""

    enabled: bool = Field(default=True, description="Enable the persistent artifact cache")

    dir: str = Field(
        default=".cache/imgcache",
        description="Cache root directory (relative paths resolve against the project root)",
    )

    retention_seconds: int = Field(
        default=86400,
        ge=0,
        description="Evict slots unused for longer than this after a build (0 disables)",
    )

    checksum_algorithm: str = Field(
        default="sha1", description="hashlib algorithm used for source checksums"
    )

    @field_validator("checksum_algorithm")
    @classmethod
    def _known_algorithm(cls, value: str) -> str:
        name = value.lower()
        if name not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported checksum algorithm: {value}")
        # shake_* digests need an explicit length
        if hashlib.new(name).digest_size == 0:
            raise ValueError(f"Checksum algorithm must have a fixed digest size: {value}")
        return name


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level",
    )

    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string (ignored when structured)",
    )

    structured: bool = Field(default=False, description="Emit structured JSON log lines")

    filename: str | None = Field(default=None, description="Log file (stdout when unset)")


class AppConfig(BaseModel):
    """Application-level configuration."""

    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
