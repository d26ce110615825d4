"""Test suite for imgcache.

Test Structure:
- unit/io/: FileSystem implementations (in-memory fake and aiofiles-backed)
- unit/caching/: hashing, checksum, store, sweep, locking and ImageCache
- unit/config/: JSON/YAML config loading and environment overrides
- unit/cli/: maintenance commands
- unit/utils/: logging configuration
- conftest.py: Shared fixtures (fake clock, fake filesystem, fake engine)
"""
