"""Exceptions raised by the cache subsystem."""


class CacheError(Exception):
    """Base class for imgcache errors."""


class SourceNotFoundError(CacheError, FileNotFoundError):
    """The source asset does not exist.

    Fatal for the whole operation, not just for caching.
    """


class ChecksumError(CacheError, OSError):
    """The source asset exists but could not be read for checksumming."""


class ImageNotFoundError(CacheError, KeyError):
    """No servable image registered under the requested output id."""
