"""Filesystem abstraction layer for imgcache.

Provides safe, testable, async-first filesystem operations.

Example:
    >>> from imgcache.core.io import RealFileSystem, absolute_path
    >>> fs = RealFileSystem()
    >>> path = fs.join(absolute_path("/tmp"), "cache", "index.json")
    >>> await fs.write_text(path, "{}")
    >>> content = await fs.read_text(path)
"""

from .impl_fake import FakeFileSystem
from .impl_real import RealFileSystem
from .models import (
    AbsolutePath,
    FileStat,
    RelativePath,
    WriteResult,
    absolute_path,
    posix_relative,
    relative_path,
)
from .protocols import FileSystem

__all__ = [
    # Path types and constructors
    "AbsolutePath",
    "RelativePath",
    "absolute_path",
    "relative_path",
    "posix_relative",
    # Result types
    "WriteResult",
    "FileStat",
    # Protocols
    "FileSystem",
    # Implementations
    "RealFileSystem",
    "FakeFileSystem",
]
