"""Content checksums for manifest invalidation.

Distinct from output ids: a checksum only answers "did the source change
since this slot was written".
"""

import hashlib
import logging

from imgcache.core.caching.errors import ChecksumError, SourceNotFoundError
from imgcache.core.io import AbsolutePath, FileSystem

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


async def checksum_file(
    fs: FileSystem,
    algorithm: str,
    path: AbsolutePath,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> str:
    """
    Stream a file through a digest and return the hex checksum.

    Args:
        fs: Filesystem to read from
        algorithm: hashlib algorithm name (e.g. "sha1", "sha256")
        path: File to checksum
        chunk_size: Read size per chunk

    Returns:
        Hex digest of the file contents

    Raises:
        ValueError: If the algorithm is unknown
        SourceNotFoundError: If the file does not exist
        ChecksumError: On any other read failure
    """
    hasher = hashlib.new(algorithm)
    try:
        async for chunk in fs.iter_bytes(path, chunk_size):
            hasher.update(chunk)
    except FileNotFoundError as e:
        raise SourceNotFoundError(f"Cannot checksum missing file: {path}") from e
    except OSError as e:
        logger.error(f"Checksum read failed for {path}: {e}")
        raise ChecksumError(f"Cannot read {path} for checksum: {e}") from e
    return hasher.hexdigest()
