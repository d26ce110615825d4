"""In-memory filesystem for fast, isolated testing.

Simulates filesystem operations without disk I/O.
Async operations complete immediately but maintain async interface.
"""

from collections.abc import AsyncIterator, Callable
from pathlib import Path
import time

from .models import AbsolutePath, FileStat, WriteResult


class FakeFileSystem:
    """
    In-memory async filesystem for testing.

    Simulates filesystem operations without disk I/O.
    Async operations complete immediately but maintain async interface.
    Not thread-safe (use per-test instance).

    Args:
        clock: Time source for modification times (defaults to time.time)
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.time
        self._files: dict[str, bytes] = {}
        self._mtimes: dict[str, float] = {}
        self._dirs: set[str] = {"/"}  # Root always exists

    def join(self, base: AbsolutePath, *parts: str) -> AbsolutePath:
        """Join paths (sync - no I/O)."""
        result = Path(base).joinpath(*parts)

        # Normalize to absolute
        if not result.is_absolute():
            result = Path("/") / result

        return AbsolutePath(result)

    async def exists(self, path: AbsolutePath) -> bool:
        """Check existence (async, immediate)."""
        path_str = str(Path(path))
        return path_str in self._files or path_str in self._dirs

    async def is_file(self, path: AbsolutePath) -> bool:
        """Check if file (async, immediate)."""
        return str(Path(path)) in self._files

    async def is_dir(self, path: AbsolutePath) -> bool:
        """Check if directory (async, immediate)."""
        return str(Path(path)) in self._dirs

    async def stat(self, path: AbsolutePath) -> FileStat:
        """Stat path (async, immediate)."""
        path_str = str(Path(path))
        if path_str in self._files:
            return FileStat(size=len(self._files[path_str]), mtime=self._mtimes[path_str])
        if path_str in self._dirs:
            return FileStat(size=0, mtime=self._mtimes.get(path_str, 0.0), is_dir=True)
        raise FileNotFoundError(f"No such file or directory: {path}")

    async def read_text(self, path: AbsolutePath, encoding: str = "utf-8") -> str:
        """Read text (async, immediate)."""
        return (await self.read_bytes(path)).decode(encoding)

    async def read_bytes(self, path: AbsolutePath) -> bytes:
        """Read bytes (async, immediate)."""
        path_str = str(Path(path))
        if path_str not in self._files:
            raise FileNotFoundError(f"File not found: {path}")
        return self._files[path_str]

    async def iter_bytes(self, path: AbsolutePath, chunk_size: int = 65536) -> AsyncIterator[bytes]:
        """Yield file contents in chunks (async, immediate)."""
        data = await self.read_bytes(path)
        for offset in range(0, len(data), chunk_size):
            yield data[offset : offset + chunk_size]

    async def write_text(
        self,
        path: AbsolutePath,
        content: str,
        encoding: str = "utf-8",
    ) -> WriteResult:
        """Write text (async, immediate)."""
        return await self.write_bytes(path, content.encode(encoding))

    async def write_bytes(self, path: AbsolutePath, content: bytes) -> WriteResult:
        """Write bytes (async, immediate)."""
        path_obj = Path(path)
        path_str = str(path_obj)

        # Auto-create parent directories
        parent = str(path_obj.parent)
        if parent not in self._dirs:
            self._ensure_parents(path_obj.parent)

        self._files[path_str] = bytes(content)
        self._mtimes[path_str] = self._clock()

        return WriteResult(
            path=path_str,
            bytes_written=len(content),
            duration_ms=0.0,
        )

    async def set_mtime(self, path: AbsolutePath, mtime: float | None = None) -> None:
        """Set modification time (async, immediate)."""
        path_str = str(Path(path))
        if path_str not in self._files and path_str not in self._dirs:
            raise FileNotFoundError(f"No such file or directory: {path}")
        self._mtimes[path_str] = self._clock() if mtime is None else mtime

    def _ensure_parents(self, path: Path) -> None:
        """Recursively create parent directories (sync helper)."""
        parts = path.parts
        for i in range(1, len(parts) + 1):
            dir_path = str(Path(*parts[:i]))
            self._dirs.add(dir_path)

    async def mkdirs(self, path: AbsolutePath, exist_ok: bool = True) -> None:
        """Create directory (async, immediate)."""
        path_str = str(Path(path))
        if not exist_ok and path_str in self._dirs:
            raise FileExistsError(f"Directory exists: {path}")
        self._ensure_parents(Path(path))
        self._dirs.add(path_str)

    async def listdir(self, path: AbsolutePath) -> list[str]:
        """List directory (async, immediate)."""
        path_str = str(Path(path))
        if path_str not in self._dirs:
            raise FileNotFoundError(f"Directory not found: {path}")

        # Find immediate children
        children = []
        for file_path in self._files.keys():
            if Path(file_path).parent == Path(path_str):
                children.append(Path(file_path).name)
        for dir_path in self._dirs:
            if dir_path != path_str and Path(dir_path).parent == Path(path_str):
                children.append(Path(dir_path).name)

        return sorted(set(children))

    async def remove(self, path: AbsolutePath) -> None:
        """Remove file (async, immediate)."""
        path_str = str(Path(path))
        if path_str not in self._files:
            raise FileNotFoundError(f"File not found: {path}")
        del self._files[path_str]
        self._mtimes.pop(path_str, None)

    async def rmdir(self, path: AbsolutePath, recursive: bool = False) -> None:
        """Remove directory (async, immediate)."""
        path_str = str(Path(path))
        if path_str not in self._dirs:
            raise FileNotFoundError(f"Directory not found: {path}")

        prefix = path_str.rstrip("/") + "/"
        to_remove_files = [p for p in self._files.keys() if p.startswith(prefix)]
        to_remove_dirs = [p for p in self._dirs if p.startswith(prefix)]

        if not recursive and (to_remove_files or to_remove_dirs):
            raise OSError(f"Directory not empty: {path}")

        for p in to_remove_files:
            del self._files[p]
            self._mtimes.pop(p, None)
        for p in to_remove_dirs:
            self._dirs.discard(p)

        self._dirs.discard(path_str)
