"""Servable images and the per-server registry.

An image handed to a consumer is either freshly generated and held in
memory, or persisted in the cache and read from disk. Consumers dispatch
on the type, never on attribute probing.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from imgcache.core.caching.errors import ImageNotFoundError
from imgcache.core.caching.models import OutputMetadata
from imgcache.core.io import FileSystem, absolute_path

logger = logging.getLogger(__name__)

SERVE_PREFIX = "/@imgcache/"


@dataclass(frozen=True)
class GeneratedImage:
    """Output produced during this run, bytes held in memory."""

    metadata: OutputMetadata
    data: bytes

    @property
    def output_id(self) -> str:
        return self.metadata.output_id


@dataclass(frozen=True)
class CachedImage:
    """Output reused from the cache, bytes on disk at ``path``."""

    metadata: OutputMetadata
    path: str

    @property
    def output_id(self) -> str:
        return self.metadata.output_id


ServableImage = GeneratedImage | CachedImage


def create_base_path(base: str | None = None) -> str:
    """
    URL prefix under which a dev server exposes images.

    Example:
        >>> create_base_path("/app/")
        '/app/@imgcache/'
        >>> create_base_path()
        '/@imgcache/'
    """
    return (base or "").rstrip("/") + SERVE_PREFIX


def served_reference(base_path: str, image: ServableImage) -> str:
    """Reference a consumer can request the image by."""
    return base_path + image.output_id


class ServeContext:
    """
    Registry of servable images for one dev-server run.

    Maps output id to image. Create one per server and call ``reset()``
    when the server restarts.
    """

    def __init__(self, fs: FileSystem) -> None:
        self.fs = fs
        self._images: dict[str, ServableImage] = {}

    def register(self, image: ServableImage) -> None:
        self._images[image.output_id] = image

    def get(self, output_id: str) -> ServableImage:
        """
        Look up a registered image.

        Raises:
            ImageNotFoundError: If nothing is registered under the id
        """
        try:
            return self._images[output_id]
        except KeyError:
            raise ImageNotFoundError(
                f"cannot find image with id {output_id!r}, this is likely an internal error"
            ) from None

    async def read_bytes(self, output_id: str) -> bytes:
        """Encoded bytes of a registered image, from memory or from disk."""
        image = self.get(output_id)
        match image:
            case GeneratedImage(data=data):
                return data
            case CachedImage(path=path):
                return await self.fs.read_bytes(absolute_path(path))
        raise TypeError(f"Unsupported image type: {type(image).__name__}")

    def content_type(self, output_id: str) -> str:
        return f"image/{self.get(output_id).metadata.format}"

    def reset(self) -> None:
        """Forget every registered image (server restart)."""
        if self._images:
            logger.debug(f"Resetting serve context ({len(self._images)} images)")
        self._images.clear()

    def __contains__(self, output_id: object) -> bool:
        return output_id in self._images

    def __len__(self) -> int:
        return len(self._images)
