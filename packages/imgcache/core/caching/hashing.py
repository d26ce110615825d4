"""Identity hashing for cache slots and generated outputs.

All digests are SHA1 hex strings (40 chars). They are used as directory
and file names, never as a security boundary.
"""

import hashlib
import json
from pathlib import Path

from imgcache.core.caching.errors import SourceNotFoundError
from imgcache.core.caching.models import LocalSource, RemoteSource, TransformConfig
from imgcache.core.io import AbsolutePath, FileSystem, posix_relative


def canonical_config(config: TransformConfig) -> str:
    """
    Serialize a transform config canonically.

    Uses canonical JSON encoding (sorted keys, compact separators) so that
    the order in which directives were added never changes the result.

    Example:
        >>> canonical_config({"w": 300, "format": "webp"})
        '{"format":"webp","w":300}'
        >>> canonical_config({"format": "webp", "w": 300})
        '{"format":"webp","w":300}'
    """
    return json.dumps(
        dict(config),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def _digest(*parts: str | bytes) -> str:
    hasher = hashlib.sha1()
    for part in parts:
        hasher.update(part.encode("utf-8") if isinstance(part, str) else part)
    return hasher.hexdigest()


def cache_key(relative_source_id: str) -> str:
    """
    Derive the cache slot name for a source.

    Depends only on the relative identifier, so every config ever requested
    for the same source lands in the same slot.

    Example:
        >>> cache_key("src/assets/hero.png") == cache_key("src/assets/hero.png")
        True
    """
    return _digest(relative_source_id)


def output_id(
    source: LocalSource | RemoteSource,
    config: TransformConfig,
    payload: bytes | None = None,
) -> str:
    """
    Derive the identifier of one generated variant.

    Remote sources hash (canonical URL, config, output bytes), which makes
    the id content-addressed. Local sources hash (relative path, config,
    mtime in ms) instead, so the id is known before the transform runs; a
    content change that preserves the mtime is not detected here.

    Args:
        source: Source identity
        config: Transform config for this variant
        payload: Output bytes (required for remote sources, ignored otherwise)

    Raises:
        ValueError: If payload is missing for a remote source
    """
    serialized = canonical_config(config)
    if isinstance(source, RemoteSource):
        if payload is None:
            raise ValueError("Remote sources require the output payload to derive an output id")
        return _digest(source.canonical, serialized, payload)
    return _digest(source.canonical, serialized, str(source.mtime_ms))


async def local_source(
    fs: FileSystem, project_root: str | Path, source_path: AbsolutePath
) -> LocalSource:
    """
    Build a LocalSource by stat'ing the file.

    Raises:
        SourceNotFoundError: If the source file does not exist
    """
    try:
        stat = await fs.stat(source_path)
    except FileNotFoundError as e:
        raise SourceNotFoundError(f"Source file not found: {source_path}") from e
    if stat.is_dir:
        raise SourceNotFoundError(f"Source path is a directory: {source_path}")
    return LocalSource(
        path=posix_relative(source_path, project_root),
        mtime_ms=stat.mtime_ms,
    )
