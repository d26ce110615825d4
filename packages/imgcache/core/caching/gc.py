"""Time-based garbage collection of cache slots.

Run once at the end of a successful build, never during a dev-server
session, so entries are not evicted while they are being reused.
"""

from __future__ import annotations

import logging
import time

from pydantic import BaseModel, Field

from imgcache.core.caching.store import MANIFEST_NAME
from imgcache.core.io import AbsolutePath, FileSystem

logger = logging.getLogger(__name__)


class SweepReport(BaseModel):
    """Outcome of one sweep over the cache root."""

    removed_stale: list[str] = Field(default_factory=list)
    removed_invalid: list[str] = Field(default_factory=list)
    kept: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)

    @property
    def removed(self) -> int:
        return len(self.removed_stale) + len(self.removed_invalid)


async def sweep(
    fs: FileSystem,
    root: AbsolutePath,
    retention_seconds: float,
    now: float | None = None,
) -> SweepReport:
    """
    Evict slots whose recency marker is older than the retention window.

    Each immediate subdirectory of ``root`` is a slot. Its manifest's mtime
    is the recency marker (refreshed on every cache hit). A slot is removed
    when the manifest can't be stat'ed (missing/invalid) or when
    ``now - mtime > retention_seconds``. Deletion failures are logged and
    skipped.

    Args:
        fs: Async filesystem implementation
        root: Cache root directory
        retention_seconds: Retention window; 0 disables collection
        now: Current time in Unix seconds (defaults to time.time())

    Returns:
        SweepReport listing what was removed, kept and failed
    """
    report = SweepReport()
    if retention_seconds == 0:
        return report
    if not await fs.is_dir(root):
        logger.debug(f"Cache root {root} does not exist, nothing to sweep")
        return report

    current = time.time() if now is None else now

    for name in await fs.listdir(root):
        try:
            slot = fs.join(root, name)
        except ValueError as e:
            # Entry resolves outside the root (symlink); never follow it
            logger.warning(f"Skipping cache entry {name}: {e}")
            report.failed.append(name)
            continue
        if not await fs.is_dir(slot):
            continue

        try:
            stat = await fs.stat(fs.join(slot, MANIFEST_NAME))
        except (OSError, ValueError):
            logger.debug(f"deleting invalid cache dir {name}")
            bucket = report.removed_invalid
        else:
            if current - stat.mtime <= retention_seconds:
                report.kept.append(name)
                continue
            logger.debug(f"deleting stale cache dir {name}")
            bucket = report.removed_stale

        try:
            await fs.rmdir(slot, recursive=True)
        except OSError as e:
            logger.warning(f"Failed to delete cache dir {name}: {e}")
            report.failed.append(name)
        else:
            bucket.append(name)

    if report.removed or report.failed:
        logger.info(
            f"Cache sweep: {len(report.removed_stale)} stale, "
            f"{len(report.removed_invalid)} invalid, {len(report.failed)} failed, "
            f"{len(report.kept)} kept"
        )
    return report
