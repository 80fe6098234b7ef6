"""Minimal file-system backed cache.

Values are stored one file per key with an absolute expiry time and are
evicted lazily when read after they expire.

Key components:
- FileCache: Main cache interface
- CacheConfig: Configuration management
"""

from tmpcache.cache import (
    CacheError,
    ConfigurationError,
    FileCache,
    InvalidArgumentError,
    StorageError,
)
from tmpcache.config import CacheConfig
from tmpcache.storage import CacheRecord

__version__ = "0.1.0"

__all__ = [
    "FileCache",
    "CacheConfig",
    "CacheRecord",
    "CacheError",
    "ConfigurationError",
    "InvalidArgumentError",
    "StorageError",
]
