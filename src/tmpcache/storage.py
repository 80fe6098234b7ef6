"""On-disk record format for cached values."""

import hashlib
import math
from typing import Any

import orjson
from typing_extensions import TypedDict

DEFAULT_SUFFIX = ".tmp"


class CacheRecord(TypedDict):
    """A cached value and the moment it goes stale."""

    expires: float  # Unix timestamp after which the record is stale
    content: Any


class CorruptRecordError(ValueError):
    """Raised when stored bytes do not decode to a CacheRecord."""

    pass


def key_digest(key: str) -> str:
    """Filesystem-safe name for a cache key.

    Args:
        key: Cache key

    Returns:
        40 character lowercase hex SHA-1 digest of the UTF-8 encoded key
    """
    return hashlib.sha1(key.encode("utf-8")).hexdigest()


def _check_content(value: Any, where: str = "content") -> None:
    """Reject values that would not read back equal to what was saved.

    Raises:
        TypeError: Naming the first offending location, e.g. content['a'][2]
    """
    if value is None or isinstance(value, (str, bool, int)):
        return
    if isinstance(value, float):
        if not math.isfinite(value):
            raise TypeError(f"{where} is not a finite float: {value!r}")
        return
    if isinstance(value, list):
        for index, item in enumerate(value):
            _check_content(item, f"{where}[{index}]")
        return
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"{where} has a non-string key: {key!r}")
            _check_content(item, f"{where}[{key!r}]")
        return
    raise TypeError(f"{where} has unsupported type {type(value).__name__}")


def encode_record(record: CacheRecord) -> bytes:
    """Serialize a record.

    Content is limited to JSON data (dicts with string keys, lists, str, int,
    finite float, bool and None) so that it decodes to an equal value.
    Tuples, sets, datetimes and other objects are refused.

    Raises:
        TypeError: If the content cannot be serialized without loss
    """
    try:
        _check_content(record["content"])
    except RecursionError as e:
        raise TypeError("Content is nested too deeply or refers to itself") from e
    try:
        return orjson.dumps(record)
    except orjson.JSONEncodeError as e:
        raise TypeError(f"Content is not serializable: {e}") from e


def decode_record(data: bytes) -> CacheRecord:
    """Deserialize a record written by encode_record.

    Raises:
        CorruptRecordError: If data is malformed or lacks the record fields
    """
    try:
        record = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise CorruptRecordError(f"Malformed cache record: {e}") from e

    if not isinstance(record, dict) or not {"expires", "content"} <= record.keys():
        raise CorruptRecordError("Cache record is missing 'expires' or 'content'")

    expires = record["expires"]
    if isinstance(expires, bool) or not isinstance(expires, (int, float)):
        raise CorruptRecordError(f"Invalid expiry in cache record: {expires!r}")

    return record
