"""Cache-aware image processing for one build or dev-server run.

``ImageCache.process`` is called once per imported asset. It resolves the
source identity, then, holding the per-key lock, decides hit or miss,
runs the transform engine for whatever is missing and persists the
result. ``ImageCache.finish_build`` runs garbage collection once a build
has completed successfully.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
import logging
from pathlib import Path
import time
from typing import Any, Literal
from urllib.parse import urlsplit

from imgcache.core.caching.checksum import checksum_file
from imgcache.core.caching.engine import TransformEngine
from imgcache.core.caching.errors import SourceNotFoundError
from imgcache.core.caching.gc import SweepReport, sweep
from imgcache.core.caching.hashing import cache_key, canonical_config, local_source, output_id
from imgcache.core.caching.lazy import AsyncLazy
from imgcache.core.caching.locks import KeyedLock
from imgcache.core.caching.models import (
    GeneratedOutput,
    LocalSource,
    OutputMetadata,
    RemoteSource,
    TransformConfig,
)
from imgcache.core.caching.serving import CachedImage, GeneratedImage, ServableImage, ServeContext
from imgcache.core.caching.store import ArtifactStore
from imgcache.core.config.models import CacheConfig
from imgcache.core.io import AbsolutePath, FileSystem, absolute_path
from imgcache.core.utils.logging import get_logger

logger = logging.getLogger(__name__)

Mode = Literal["build", "serve"]


@dataclass
class ProcessResult:
    """Images for one asset load, in the order the configs were given."""

    cache_key: str | None
    images: list[ServableImage] = field(default_factory=list)
    hit: bool = False


def _is_remote(source: str) -> bool:
    return urlsplit(source).scheme in ("http", "https")


class ImageCache:
    """
    Orchestrates the artifact cache around an external transform engine.

    Args:
        fs: Async filesystem implementation
        config: Cache configuration
        project_root: Root that relative source ids and the cache dir resolve against
        engine: Transform engine (black box)
        mode: "build" (GC at the end) or "serve" (images registered for serving, no GC)
        serve_context: Registry for servable images (created on demand in serve mode)
        clock: Time source for manifest creation timestamps
    """

    def __init__(
        self,
        fs: FileSystem,
        config: CacheConfig,
        project_root: str | Path,
        engine: TransformEngine,
        mode: Mode = "build",
        serve_context: ServeContext | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.fs = fs
        self.config = config
        self.project_root = absolute_path(project_root)
        self.engine = engine
        self.mode = mode
        self.serve_context = serve_context
        if self.serve_context is None and mode == "serve":
            self.serve_context = ServeContext(fs)
        self.store = ArtifactStore(fs, absolute_path(Path(self.project_root) / config.dir), clock)
        self._clock = clock
        self.locks = KeyedLock()
        self._swept = False

    def resolve_source_file(self, source: str) -> AbsolutePath:
        """Absolute path of a local source, relative ones taken from the project root."""
        return absolute_path(Path(self.project_root) / source)

    async def process(
        self,
        source: str,
        configs: Sequence[TransformConfig],
        source_file: str | Path | None = None,
    ) -> ProcessResult:
        """
        Produce one image per config, reusing cached outputs where valid.

        Args:
            source: Local path (absolute or project-relative) or http(s) URL
            configs: Transform configs, one output each
            source_file: Local copy of the source bytes; required for URLs

        Returns:
            ProcessResult with one servable image per config

        Raises:
            SourceNotFoundError: If the source file does not exist (fatal)
            ChecksumError: If the source exists but cannot be read
        """
        identity, path = await self._resolve(source, source_file)
        if not configs:
            return ProcessResult(cache_key=None, hit=True)

        lazy_source: AsyncLazy[Any] = AsyncLazy(lambda: self.engine.load(path))

        if not self.config.enabled:
            images: list[ServableImage] = []
            for config in configs:
                generated = await self._generate(identity, config, lazy_source)
                images.append(GeneratedImage(generated.metadata, generated.data))
            self._register(images)
            return ProcessResult(cache_key=None, images=images, hit=False)

        key = cache_key(identity.relative_id)
        log = get_logger(__name__, cache_key=key)

        async with self.locks.hold(key):
            checksum = await checksum_file(self.fs, self.config.checksum_algorithm, path)

            retained: list[OutputMetadata] = []
            record = await self.store.lookup(key)
            if record is not None and self.store.validate(record, checksum):
                await self.store.touch(key)
                retained = list(record.outputs)
            elif record is not None:
                log.debug(f"Source changed, invalidating cache slot for {identity.relative_id}")

            by_config = {canonical_config(m.directives): m for m in retained}
            fresh: dict[str, GeneratedOutput] = {}
            for config in configs:
                serialized = canonical_config(config)
                if serialized in by_config or serialized in fresh:
                    continue
                fresh[serialized] = await self._generate(identity, config, lazy_source)

            if fresh:
                log.debug(f"Cache miss for {identity.relative_id} ({len(fresh)} outputs)")
                written = await self.store.write(key, checksum, list(fresh.values()), retained)
                if written is None:
                    # The failed write removed the slot, retained artifacts included
                    for config in configs:
                        serialized = canonical_config(config)
                        if serialized not in fresh:
                            fresh[serialized] = await self._generate(
                                identity, config, lazy_source
                            )
                else:
                    paths = {m.output_id: m.path for m in written.outputs}
                    fresh = {
                        serialized: GeneratedOutput(
                            output.metadata.model_copy(
                                update={"path": paths.get(output.metadata.output_id)}
                            ),
                            output.data,
                        )
                        for serialized, output in fresh.items()
                    }
            else:
                log.debug(f"Cache hit for {identity.relative_id}")

        images = []
        for config in configs:
            serialized = canonical_config(config)
            if serialized in fresh:
                output = fresh[serialized]
                images.append(GeneratedImage(output.metadata, output.data))
            else:
                cached = by_config[serialized]
                images.append(CachedImage(cached, cached.path or ""))

        self._register(images)
        return ProcessResult(cache_key=key, images=images, hit=not fresh)

    async def finish_build(self, error: BaseException | None = None) -> SweepReport | None:
        """
        Run garbage collection after a completed build.

        Skipped when the build failed, the cache is disabled, retention is 0,
        the cache serves a dev server, or a sweep already ran for this build.
        """
        if (
            error is not None
            or not self.config.enabled
            or not self.config.retention_seconds
            or self.mode == "serve"
            or self._swept
        ):
            return None
        self._swept = True
        logger.debug(f"Sweeping cache root {self.store.root}")
        return await sweep(
            self.fs, self.store.root, self.config.retention_seconds, now=self._clock()
        )

    async def _resolve(
        self, source: str, source_file: str | Path | None
    ) -> tuple[LocalSource | RemoteSource, AbsolutePath]:
        if _is_remote(source):
            if source_file is None:
                raise ValueError(f"Remote source {source} needs a local source_file")
            path = absolute_path(source_file)
            if not await self.fs.is_file(path):
                raise SourceNotFoundError(f"Source file not found: {path}")
            return RemoteSource(url=source), path

        path = absolute_path(source_file) if source_file else self.resolve_source_file(source)
        return await local_source(self.fs, self.project_root, path), path

    async def _generate(
        self,
        identity: LocalSource | RemoteSource,
        config: TransformConfig,
        lazy_source: AsyncLazy[Any],
    ) -> GeneratedOutput:
        handle = await lazy_source.get()
        result = await self.engine.transform(handle, config)
        metadata = OutputMetadata.model_validate(
            {
                **result.metadata,
                "outputId": output_id(identity, config, result.data),
                "directives": dict(config),
            }
        )
        return GeneratedOutput(metadata, result.data)

    def _register(self, images: Sequence[ServableImage]) -> None:
        if self.mode != "serve" or self.serve_context is None:
            return
        for image in images:
            self.serve_context.register(image)
