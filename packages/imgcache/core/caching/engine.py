"""Protocol for the external image transform engine.

The cache treats the engine as a black box: it loads a source once and
turns (source, config) into encoded bytes plus scalar metadata.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from imgcache.core.caching.models import TransformConfig
from imgcache.core.io import AbsolutePath


@dataclass(frozen=True)
class TransformResult:
    """Output of one transform: encoded bytes and engine-reported metadata.

    ``metadata`` must contain ``format``; ``width``, ``height`` and any
    other scalar fields are optional and persisted as-is.
    """

    data: bytes
    metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class TransformEngine(Protocol):
    """Protocol for image transform engines."""

    async def load(self, source_file: AbsolutePath) -> Any:
        """Open a source image and return an engine-specific handle."""
        ...

    async def transform(self, source: Any, config: TransformConfig) -> TransformResult:
        """Apply one transform config to a loaded source."""
        ...
