"""Build-time artifact cache for transformed images.

Decides whether previously generated outputs of a source can be reused,
persists new outputs, and evicts unused slots after a build.

Key features:
- Deterministic slot keys and output ids (SHA1)
- Checksum-based invalidation of a whole slot
- Atomic commit pattern (artifacts, then index.json)
- Per-key async locking so concurrent configs accumulate in one slot
- Sliding-window garbage collection
- Graceful error handling (corrupt slot → cache miss)
"""

from imgcache.core.caching.checksum import checksum_file
from imgcache.core.caching.engine import TransformEngine, TransformResult
from imgcache.core.caching.errors import (
    CacheError,
    ChecksumError,
    ImageNotFoundError,
    SourceNotFoundError,
)
from imgcache.core.caching.gc import SweepReport, sweep
from imgcache.core.caching.hashing import cache_key, canonical_config, local_source, output_id
from imgcache.core.caching.lazy import AsyncLazy
from imgcache.core.caching.locks import KeyedLock
from imgcache.core.caching.models import (
    GeneratedOutput,
    LocalSource,
    ManifestRecord,
    OutputMetadata,
    RemoteSource,
    SourceIdentity,
    TransformConfig,
)
from imgcache.core.caching.orchestrator import ImageCache, ProcessResult
from imgcache.core.caching.serving import (
    CachedImage,
    GeneratedImage,
    ServableImage,
    ServeContext,
    create_base_path,
    served_reference,
)
from imgcache.core.caching.store import MANIFEST_NAME, ArtifactStore

__all__ = [
    # Identity
    "cache_key",
    "output_id",
    "canonical_config",
    "local_source",
    "checksum_file",
    # Models
    "SourceIdentity",
    "LocalSource",
    "RemoteSource",
    "TransformConfig",
    "OutputMetadata",
    "ManifestRecord",
    "GeneratedOutput",
    # Store / GC
    "ArtifactStore",
    "MANIFEST_NAME",
    "KeyedLock",
    "sweep",
    "SweepReport",
    # Orchestration
    "ImageCache",
    "ProcessResult",
    "TransformEngine",
    "TransformResult",
    "AsyncLazy",
    # Serving
    "ServableImage",
    "GeneratedImage",
    "CachedImage",
    "ServeContext",
    "create_base_path",
    "served_reference",
    # Errors
    "CacheError",
    "SourceNotFoundError",
    "ChecksumError",
    "ImageNotFoundError",
]
