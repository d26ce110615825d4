"""The FileSystem seam.

Everything that touches disk in the cache (slot store, checksums, sweeps,
the serve registry) goes through this protocol, so tests can swap in the
in-memory implementation.
"""

from collections.abc import AsyncIterator
from typing import Protocol

from .models import AbsolutePath, FileStat, WriteResult


class FileSystem(Protocol):
    """
    Async filesystem used by the artifact cache.

    Writes replace the target in one step: a reader sees the previous
    content or the new content, never a truncated file. This is what lets
    a manifest act as the commit marker of its slot.
    """

    def join(self, base: AbsolutePath, *parts: str) -> AbsolutePath:
        """
        Build a path below ``base``. No I/O.

        Raises:
            ValueError: If the result would land outside ``base``
        """
        ...

    async def exists(self, path: AbsolutePath) -> bool: ...

    async def is_file(self, path: AbsolutePath) -> bool: ...

    async def is_dir(self, path: AbsolutePath) -> bool: ...

    async def stat(self, path: AbsolutePath) -> FileStat:
        """Size, mtime and directory flag. FileNotFoundError when absent."""
        ...

    async def read_text(self, path: AbsolutePath, encoding: str = "utf-8") -> str: ...

    async def read_bytes(self, path: AbsolutePath) -> bytes:
        """Whole file. FileNotFoundError when absent, OSError on read failure."""
        ...

    def iter_bytes(self, path: AbsolutePath, chunk_size: int = 65536) -> AsyncIterator[bytes]:
        """
        Yield a source file in chunks, for checksumming large images.

        Errors surface on the first iteration, not on the call.
        """
        ...

    async def write_text(
        self,
        path: AbsolutePath,
        content: str,
        encoding: str = "utf-8",
    ) -> WriteResult:
        """Replace ``path`` with ``content``, creating parent directories."""
        ...

    async def write_bytes(self, path: AbsolutePath, content: bytes) -> WriteResult:
        """Replace ``path`` with ``content``, durable once this returns."""
        ...

    async def set_mtime(self, path: AbsolutePath, mtime: float | None = None) -> None:
        """Stamp ``path`` with ``mtime`` (Unix seconds), or with the current time."""
        ...

    async def mkdirs(self, path: AbsolutePath, exist_ok: bool = True) -> None: ...

    async def listdir(self, path: AbsolutePath) -> list[str]:
        """Entry names of a directory. FileNotFoundError when absent."""
        ...

    async def remove(self, path: AbsolutePath) -> None:
        """Delete one file. FileNotFoundError when absent."""
        ...

    async def rmdir(self, path: AbsolutePath, recursive: bool = False) -> None:
        """Delete a directory, and everything in it when ``recursive``."""
        ...
