"""File-system backed cache with lazy expiry."""

import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Optional, Union

from tmpcache.config import CacheConfig
from tmpcache.storage import (
    DEFAULT_SUFFIX,
    CacheRecord,
    CorruptRecordError,
    decode_record,
    encode_record,
    key_digest,
)
from tmpcache.ttl import (
    TTLExpression,
    get_ttl_remaining,
    is_expired,
    parse_ttl,
    resolve_expiry,
)

logger = logging.getLogger(__name__)


class CacheError(Exception):
    """Base exception for cache-related errors."""

    pass


class ConfigurationError(CacheError):
    """Raised when the cache folder is missing, not a directory or not writable."""

    pass


class InvalidArgumentError(CacheError, ValueError):
    """Raised when an operation receives an unusable argument."""

    pass


class StorageError(CacheError):
    """Raised when a cache file cannot be written."""

    pass


class FileCache:
    """Stores values in one file per key under a folder.

    Each file holds the value and an absolute expiry time. Expired files are
    only removed when read() finds them; nothing sweeps the folder.
    No locking is done: concurrent writers to the same key race and the last
    write to finish wins.
    """

    def __init__(
        self,
        folder: Optional[Union[str, Path]] = None,
        default_ttl: TTLExpression = "1 hour",
        suffix: str = DEFAULT_SUFFIX,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the cache.

        Args:
            folder: Existing, writable directory for cache files. Defaults to
                the operating system's temporary directory.
            default_ttl: TTL used when save() is called without one
            suffix: Extension appended to every cache filename
            clock: Returns the current time as a Unix timestamp

        Raises:
            ConfigurationError: If the folder is unusable or default_ttl is invalid
        """
        self.folder = self._validate_folder(
            folder if folder is not None else tempfile.gettempdir()
        )

        try:
            parse_ttl(default_ttl)
        except ValueError as e:
            raise ConfigurationError(f"Invalid default TTL: {e}") from e

        self.default_ttl = default_ttl
        self.suffix = suffix
        self._clock = clock

    @classmethod
    def from_config(cls, config: CacheConfig, **kwargs) -> "FileCache":
        """Create a cache from a CacheConfig.

        Args:
            config: Cache configuration
            **kwargs: Extra constructor arguments (e.g. clock)
        """
        return cls(
            folder=config.folder,
            default_ttl=config.default_ttl,
            suffix=config.suffix,
            **kwargs,
        )

    @staticmethod
    def _validate_folder(folder: Union[str, Path]) -> Path:
        """Check that the folder exists, is a directory and can be written.

        Raises:
            ConfigurationError: If any check fails
        """
        path = Path(folder)
        if not path.exists():
            raise ConfigurationError(f"Cache folder does not exist: {path}")
        if not path.is_dir():
            raise ConfigurationError(f"Cache folder is not a directory: {path}")
        if not os.access(path, os.W_OK):
            raise ConfigurationError(f"Cache folder is not writable: {path}")
        return path

    def locate(self, key: str) -> Path:
        """Get the cache file path for a key.

        Examples:
            >>> FileCache('/tmp').locate('abc')
            PosixPath('/tmp/a9993e364706816aba3e25717850c26c9cd0d89d.tmp')
        """
        return self.folder / f"{key_digest(key)}{self.suffix}"

    def save(
        self, key: str, content: Any, ttl: Optional[TTLExpression] = None
    ) -> bool:
        """Store a value under a key, replacing any previous value.

        Empty keys are accepted here even though read() rejects them.

        Args:
            key: Cache key
            content: JSON-like value (dicts with str keys, lists, str, int,
                finite float, bool, None)
            ttl: Time until the value expires, e.g. '30 minutes'.
                Defaults to the instance's default_ttl.

        Returns:
            True once the record has been written

        Raises:
            InvalidArgumentError: If ttl cannot be parsed
            StorageError: If the content cannot be serialized or the write fails
        """
        try:
            expires = resolve_expiry(
                ttl if ttl is not None else self.default_ttl, self._clock()
            )
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e

        record: CacheRecord = {"expires": expires, "content": content}
        try:
            data = encode_record(record)
        except TypeError as e:
            logger.error(f"Cannot serialize cache content for key {key!r}: {e}")
            raise StorageError(f"Cannot serialize cache content: {e}") from e

        return self._write_cache_file(self.locate(key), data)

    def _write_cache_file(self, cache_path: Path, data: bytes) -> bool:
        """Write serialized record bytes, replacing any existing file.

        The bytes go to a temporary file in the cache folder which is then
        renamed over cache_path, so readers never see a partial record.

        Raises:
            StorageError: If nothing was written or the OS reports an error
        """
        try:
            fd, temp_name = tempfile.mkstemp(
                prefix=f"{cache_path.name}.", suffix=".part", dir=cache_path.parent
            )
            os.close(fd)
        except OSError as e:
            logger.error(f"Error creating temp file for {cache_path}: {e}")
            raise StorageError(f"Cannot write cache file {cache_path}: {e}") from e

        temp_path = Path(temp_name)
        try:
            with open(temp_path, "wb") as f:
                written = f.write(data)

            if not written:
                logger.error(f"No bytes written to cache file {cache_path}")
                self._evict(temp_path)
                raise StorageError(
                    f"Cannot write cache file {cache_path}: empty write"
                )

            # Atomic rename
            os.replace(temp_path, cache_path)
        except OSError as e:
            logger.error(f"Error writing cache file {cache_path}: {e}")
            self._evict(temp_path)
            raise StorageError(f"Cannot write cache file {cache_path}: {e}") from e

        logger.debug(f"Cached {written} bytes to {cache_path}")
        return True

    def read(self, key: str) -> Any:
        """Get the cached value for a key.

        Expired records are deleted and reported as missing. Corrupt records
        are reported as missing and left for the next save to replace.

        Args:
            key: Cache key

        Returns:
            Cached value, or None if there is no unexpired value

        Raises:
            InvalidArgumentError: If key is empty
        """
        if not key:
            raise InvalidArgumentError("FileCache.read() requires a non-empty key")

        cache_path = self.locate(key)
        if not cache_path.is_file() or not os.access(cache_path, os.R_OK):
            logger.debug(f"Cache miss for key {key!r}")
            return None

        try:
            with open(cache_path, "rb") as f:
                read_stat = os.fstat(f.fileno())
                data = f.read()
        except OSError as e:
            # Removed or made unreadable since the check above
            logger.debug(f"Cache file {cache_path} vanished before read: {e}")
            return None

        try:
            record = decode_record(data)
        except CorruptRecordError as e:
            logger.warning(f"Ignoring corrupt cache file {cache_path}: {e}")
            return None

        now = self._clock()
        if is_expired(record["expires"], now):
            logger.debug(f"Cache entry for key {key!r} expired")
            self._evict(cache_path, read_stat)
            return None

        remaining = get_ttl_remaining(record["expires"], now)
        logger.debug(f"Cache hit for key {key!r} ({remaining}s remaining)")
        return record["content"]

    def _evict(
        self, cache_path: Path, read_stat: Optional[os.stat_result] = None
    ) -> None:
        """Delete a cache file, logging instead of raising on failure.

        With read_stat, the file is only deleted if it is still the one that
        was read, so a record saved in the meantime survives.
        """
        try:
            if read_stat is not None and not os.path.samestat(
                read_stat, os.stat(cache_path)
            ):
                logger.debug(f"Cache file {cache_path} replaced, not evicting")
                return
            cache_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove cache file {cache_path}: {e}")
