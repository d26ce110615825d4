"""Real filesystem implementation using aiofiles for async I/O.

Provides atomic writes via temp file + os.replace().
"""

import asyncio
from collections.abc import AsyncIterator
import os
from pathlib import Path
import shutil
from stat import S_ISDIR
from tempfile import NamedTemporaryFile
import time

import aiofiles  # type: ignore[import-untyped]
import aiofiles.os  # type: ignore[import-untyped]

from .models import AbsolutePath, FileStat, WriteResult


class RealFileSystem:
    """
    Real filesystem implementation using aiofiles for async I/O.

    Writes go to a temp file in the target directory which is flushed,
    fsynced and then moved into place with os.replace(), so readers
    observe either the old file or the complete new one.
    """

    def join(self, base: AbsolutePath, *parts: str) -> AbsolutePath:
        """Join paths (sync - no I/O)."""
        result = Path(base).joinpath(*parts).resolve()

        # Security: Ensure result is still under base
        base_resolved = Path(base).resolve()
        try:
            result.relative_to(base_resolved)
        except ValueError as e:
            raise ValueError(f"Path traversal detected: {result} escapes {base}") from e

        return AbsolutePath(result)

    async def exists(self, path: AbsolutePath) -> bool:
        """Check existence asynchronously."""
        return bool(await aiofiles.os.path.exists(path))

    async def is_file(self, path: AbsolutePath) -> bool:
        """Check if file asynchronously."""
        return bool(await aiofiles.os.path.isfile(path))

    async def is_dir(self, path: AbsolutePath) -> bool:
        """Check if directory asynchronously."""
        return bool(await aiofiles.os.path.isdir(path))

    async def stat(self, path: AbsolutePath) -> FileStat:
        """Stat path asynchronously."""
        st = await aiofiles.os.stat(path)
        return FileStat(
            size=st.st_size,
            mtime=st.st_mtime,
            is_dir=S_ISDIR(st.st_mode),
        )

    async def read_text(self, path: AbsolutePath, encoding: str = "utf-8") -> str:
        """Read text file asynchronously."""
        async with aiofiles.open(path, encoding=encoding) as f:
            content: str = await f.read()
            return content

    async def read_bytes(self, path: AbsolutePath) -> bytes:
        """Read binary file asynchronously."""
        async with aiofiles.open(path, mode="rb") as f:
            content: bytes = await f.read()
            return content

    async def iter_bytes(self, path: AbsolutePath, chunk_size: int = 65536) -> AsyncIterator[bytes]:
        """Stream file contents in chunks."""
        async with aiofiles.open(path, mode="rb") as f:
            while True:
                chunk: bytes = await f.read(chunk_size)
                if not chunk:
                    break
                yield chunk

    async def write_text(
        self,
        path: AbsolutePath,
        content: str,
        encoding: str = "utf-8",
    ) -> WriteResult:
        """Atomically write text file asynchronously."""
        return await self._atomic_write(path, content.encode(encoding))

    async def write_bytes(self, path: AbsolutePath, content: bytes) -> WriteResult:
        """Atomically write binary file asynchronously."""
        return await self._atomic_write(path, content)

    async def _atomic_write(self, path: AbsolutePath, data: bytes) -> WriteResult:
        start = time.perf_counter()
        path_obj = Path(path)

        # Ensure parent directory exists
        await aiofiles.os.makedirs(path_obj.parent, exist_ok=True)

        # Atomic write: temp file → replace
        # Create temp file in same directory for atomic replace
        loop = asyncio.get_event_loop()

        def create_temp_file() -> str:
            tmp = NamedTemporaryFile(
                mode="wb",
                dir=path_obj.parent,
                prefix=f".{path_obj.name}.",
                suffix=".tmp",
                delete=False,
            )
            tmp_path = tmp.name
            tmp.close()
            return tmp_path

        tmp_path = await loop.run_in_executor(None, create_temp_file)

        try:
            async with aiofiles.open(tmp_path, mode="wb") as f:
                await f.write(data)
                await f.flush()
                await loop.run_in_executor(None, os.fsync, f.fileno())

            # Atomic replace (os.replace is fast, run in executor)
            await loop.run_in_executor(None, os.replace, tmp_path, str(path))
        except BaseException:
            # Clean up temp on failure
            try:
                await aiofiles.os.unlink(tmp_path)
            except OSError:
                pass
            raise

        duration = (time.perf_counter() - start) * 1000

        return WriteResult(
            path=str(path),
            bytes_written=len(data),
            duration_ms=duration,
        )

    async def set_mtime(self, path: AbsolutePath, mtime: float | None = None) -> None:
        """Set access/modification time asynchronously."""
        stamp = time.time() if mtime is None else mtime
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, os.utime, str(path), (stamp, stamp))

    async def mkdirs(self, path: AbsolutePath, exist_ok: bool = True) -> None:
        """Create directory and parents asynchronously."""
        await aiofiles.os.makedirs(path, exist_ok=exist_ok)

    async def listdir(self, path: AbsolutePath) -> list[str]:
        """List directory contents asynchronously."""
        entries: list[str] = await aiofiles.os.listdir(path)
        return sorted(entries)

    async def remove(self, path: AbsolutePath) -> None:
        """Remove file asynchronously."""
        await aiofiles.os.unlink(path)

    async def rmdir(self, path: AbsolutePath, recursive: bool = False) -> None:
        """Remove directory asynchronously."""
        if recursive:
            # shutil.rmtree is blocking, run in executor
            loop = asyncio.get_event_loop()
            await loop.run_in_executor(None, shutil.rmtree, str(path))
        else:
            await aiofiles.os.rmdir(path)
