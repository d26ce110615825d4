"""Filesystem-backed artifact store.

On-disk layout::

    <root>/<cache_key>/index.json          manifest (commit marker)
    <root>/<cache_key>/<output_id>.<ext>   one file per generated output

Artifacts are written before the manifest, so the presence of a parseable
``index.json`` whose artifacts all exist is the only completeness signal.
"""

import asyncio
from collections.abc import Callable, Sequence
import logging
from pathlib import Path
import time

from pydantic import ValidationError

from imgcache.core.caching.models import GeneratedOutput, ManifestRecord, OutputMetadata
from imgcache.core.io import AbsolutePath, FileSystem

logger = logging.getLogger(__name__)

MANIFEST_NAME = "index.json"


class ArtifactStore:
    """
    Async store for cache slots under a root directory.

    Reads never raise: a missing, unparsable or incomplete slot is a miss.
    Writes never leave a partially populated slot behind: on failure the
    slot directory is removed and ``write`` returns None.

    Callers must serialize operations on the same key (see KeyedLock).
    """

    def __init__(
        self,
        fs: FileSystem,
        root: AbsolutePath,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the store.

        Args:
            fs: Async filesystem implementation
            root: Absolute path to the cache root directory
            clock: Time source for manifest creation timestamps
        """
        self.fs = fs
        self.root = root
        self._clock = clock
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Ensure the root exists. Safe to call multiple times."""
        async with self._init_lock:
            if not self._initialized:
                await self.fs.mkdirs(self.root, exist_ok=True)
                self._initialized = True

    def slot_dir(self, key: str) -> AbsolutePath:
        return self.fs.join(self.root, key)

    def manifest_path(self, key: str) -> AbsolutePath:
        return self.fs.join(self.root, key, MANIFEST_NAME)

    def artifact_path(self, key: str, output_id: str, fmt: str) -> AbsolutePath:
        return self.fs.join(self.root, key, f"{output_id}.{fmt}")

    async def keys(self) -> list[str]:
        """Names of the slot directories currently under the root."""
        if not await self.fs.is_dir(self.root):
            return []
        names = []
        for name in await self.fs.listdir(self.root):
            if await self.fs.is_dir(self.fs.join(self.root, name)):
                names.append(name)
        return names

    async def read_manifest(self, key: str) -> ManifestRecord | None:
        """
        Parse a slot's manifest without side effects.

        Artifact paths are re-derived from the slot location so a moved
        cache directory keeps working.

        Returns:
            The record, or None if missing or unparsable
        """
        try:
            raw = await self.fs.read_text(self.manifest_path(key))
            record = ManifestRecord.model_validate_json(raw)
            # join() rejects ids or formats that would escape the cache root
            outputs = [
                m.model_copy(update={"path": str(self.artifact_path(key, m.output_id, m.format))})
                for m in record.outputs
            ]
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, ValidationError, ValueError) as e:
            logger.debug(f"Unreadable manifest for {key}: {e}")
            return None

        return record.model_copy(update={"outputs": outputs})

    async def lookup(self, key: str) -> ManifestRecord | None:
        """
        Read a slot's manifest (async).

        A slot whose manifest is missing, unparsable or references missing
        artifact files is removed on the spot and reported as a miss.

        Returns:
            Manifest record, or None on miss
        """
        record = await self.read_manifest(key)
        if record is not None:
            for metadata in record.outputs:
                if not await self.fs.is_file(Path(metadata.path or "")):
                    logger.debug(f"Slot {key} is missing artifact {metadata.output_id}")
                    record = None
                    break
            else:
                return record

        slot = self.slot_dir(key)
        if await self.fs.exists(slot):
            logger.debug(f"Discarding incomplete cache slot {key}")
            await self._discard(slot)
        return None

    def validate(self, record: ManifestRecord, checksum: str) -> bool:
        """A record is valid only while its checksum matches the source."""
        return record.checksum == checksum

    async def touch(self, key: str) -> None:
        """Refresh the manifest's mtime, the slot's recency marker."""
        try:
            await self.fs.set_mtime(self.manifest_path(key))
        except OSError as e:
            logger.warning(f"Failed to refresh cache slot {key}: {e}")

    async def write(
        self,
        key: str,
        checksum: str,
        outputs: Sequence[GeneratedOutput],
        retained: Sequence[OutputMetadata] = (),
    ) -> ManifestRecord | None:
        """
        Persist outputs and commit a new manifest for the slot.

        Every artifact is fully written before the manifest. Artifact files
        no longer referenced by the new manifest are pruned afterwards.

        Args:
            key: Cache key (slot name)
            checksum: Current checksum of the source
            outputs: Freshly generated outputs to persist
            retained: Outputs already persisted in this (still valid) slot
                that the new manifest keeps

        Returns:
            The committed record, or None if the write failed (slot removed)
        """
        await self.initialize()  # Lazy initialization
        slot = self.slot_dir(key)

        try:
            fresh: dict[str, tuple[AbsolutePath, GeneratedOutput]] = {}
            for output in outputs:
                meta = output.metadata
                path = self.artifact_path(key, meta.output_id, meta.format)
                fresh[meta.output_id] = (path, output)

            metadatas: list[OutputMetadata] = []
            seen: set[str] = set()
            for meta in retained:
                if meta.output_id in fresh or meta.output_id in seen:
                    continue
                seen.add(meta.output_id)
                path = self.artifact_path(key, meta.output_id, meta.format)
                metadatas.append(meta.model_copy(update={"path": str(path)}))
            for path, output in fresh.values():
                metadatas.append(output.metadata.model_copy(update={"path": str(path)}))

            await self.fs.mkdirs(slot, exist_ok=True)

            # Artifacts first; let every write settle before judging the batch
            results = await asyncio.gather(
                *(self.fs.write_bytes(path, output.data) for path, output in fresh.values()),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result

            record = ManifestRecord(
                checksum=checksum,
                created_at=int(self._clock() * 1000),
                outputs=metadatas,
            )

            # Manifest last (commit marker)
            await self.fs.write_text(self.manifest_path(key), record.to_json())
        except Exception as e:
            logger.warning(f"Failed to create cache for {key}: {e}")
            await self._discard(slot)
            return None

        await self._prune(key, record)
        return record

    async def invalidate(self, key: str) -> None:
        """Remove a slot entirely (no-op if absent)."""
        slot = self.slot_dir(key)
        if await self.fs.exists(slot):
            await self.fs.rmdir(slot, recursive=True)

    async def _discard(self, slot: AbsolutePath) -> None:
        try:
            if await self.fs.exists(slot):
                await self.fs.rmdir(slot, recursive=True)
        except OSError as e:
            logger.warning(f"Failed to remove cache slot {slot}: {e}")

    async def _prune(self, key: str, record: ManifestRecord) -> None:
        keep = {MANIFEST_NAME} | {Path(m.path or "").name for m in record.outputs}
        try:
            names = await self.fs.listdir(self.slot_dir(key))
        except OSError as e:
            logger.debug(f"Cannot list slot {key} for pruning: {e}")
            return
        for name in names:
            # Dot-files are in-flight temp files of atomic writes
            if name in keep or name.startswith("."):
                continue
            try:
                await self.fs.remove(self.fs.join(self.slot_dir(key), name))
                logger.debug(f"Pruned orphaned artifact {key}/{name}")
            except (OSError, ValueError) as e:
                logger.debug(f"Failed to prune {key}/{name}: {e}")
