"""Shared pytest fixtures for imgcache tests."""

from __future__ import annotations

from typing import Any

import pytest

from imgcache.core.caching import TransformResult, canonical_config
from imgcache.core.io import AbsolutePath, FakeFileSystem

# ============================================================================
# Clock / Filesystem Fixtures
# ============================================================================


class FakeClock:
    """Settable time source shared by the fake filesystem and the store."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fixed clock."""
    return FakeClock()


@pytest.fixture
def fs(clock: FakeClock) -> FakeFileSystem:
    """Provide fresh FakeFileSystem instance driven by the fake clock."""
    return FakeFileSystem(clock=clock)


# ============================================================================
# Transform Engine Fixtures
# ============================================================================


class FakeEngine:
    """Deterministic stand-in for the image transform engine.

    Output bytes are derived from the source path and the canonical config,
    so identical inputs always produce identical bytes.
    """

    def __init__(self) -> None:
        self.loads: list[AbsolutePath] = []
        self.transforms: list[dict[str, Any]] = []

    async def load(self, source_file: AbsolutePath) -> AbsolutePath:
        self.loads.append(source_file)
        return source_file

    async def transform(self, source: Any, config: dict[str, Any]) -> TransformResult:
        self.transforms.append(dict(config))
        width = int(config.get("w", 100))
        height = int(config.get("h", width))
        fmt = str(config.get("format", "png"))
        data = f"{source}|{canonical_config(config)}".encode()
        return TransformResult(
            data=data,
            metadata={"format": fmt, "width": width, "height": height, "src": "/ignored"},
        )


@pytest.fixture
def engine() -> FakeEngine:
    """Provide a fresh FakeEngine."""
    return FakeEngine()
