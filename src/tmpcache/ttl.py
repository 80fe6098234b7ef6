"""Time-to-live parsing and expiry checks."""

import math
import re
from datetime import timedelta
from typing import Union

TTLExpression = Union[str, int, float, timedelta]

# Seconds per unit, keyed by every accepted spelling
_UNIT_SECONDS = {
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hour": 3600,
    "hours": 3600,
    "d": 86400,
    "day": 86400,
    "days": 86400,
    "w": 604800,
    "week": 604800,
    "weeks": 604800,
    "fortnight": 1209600,
    "fortnights": 1209600,
}

_PART_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]+)")


def parse_ttl(value: TTLExpression) -> float:
    """Convert a relative time expression to a number of seconds.

    Args:
        value: Seconds (int/float), a timedelta, or a string such as
            '1 hour', '+30 minutes' or '1 hour 30 minutes'

    Returns:
        Number of seconds the expression covers

    Raises:
        ValueError: If the expression cannot be parsed

    Examples:
        >>> parse_ttl('1 hour')
        3600.0
        >>> parse_ttl('2 days 6 hours')
        194400.0
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid TTL: {value!r}")
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, (int, float)):
        try:
            seconds = float(value)
        except OverflowError as e:
            raise ValueError(f"TTL must be a finite duration: {value!r}") from e
    elif isinstance(value, str):
        seconds = _parse_expression(value)
    else:
        raise ValueError(f"Invalid TTL type: {type(value).__name__}")

    if not math.isfinite(seconds):
        raise ValueError(f"TTL must be a finite duration: {value!r}")
    return seconds


def _parse_expression(value: str) -> float:
    """Sum the '<number> <unit>' parts of a TTL string."""
    text = value.strip().lower()
    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:].strip()

    if not text:
        raise ValueError(f"Invalid TTL: {value!r}")

    total = 0.0
    position = 0
    for match in _PART_RE.finditer(text):
        # Only whitespace may separate the parts
        if text[position : match.start()].strip():
            raise ValueError(f"Invalid TTL: {value!r}")
        amount, unit = match.groups()
        if unit not in _UNIT_SECONDS:
            raise ValueError(f"Unknown time unit '{unit}' in TTL {value!r}")
        total += float(amount) * _UNIT_SECONDS[unit]
        position = match.end()

    if position == 0 or text[position:].strip():
        raise ValueError(f"Invalid TTL: {value!r}")

    return sign * total


def resolve_expiry(ttl: TTLExpression, now: float) -> float:
    """Absolute expiry timestamp for a TTL starting at ``now``.

    Raises:
        ValueError: If the TTL is invalid or the expiry overflows
    """
    expires = now + parse_ttl(ttl)
    if not math.isfinite(expires):
        raise ValueError(f"TTL {ttl!r} is too large")
    return expires


def is_expired(expires: float, now: float) -> bool:
    """Check whether a record expiring at ``expires`` is stale.

    A record expiring exactly now is already stale.
    """
    return expires <= now


def get_ttl_remaining(expires: float, now: float) -> int:
    """Get remaining seconds until expiry (0 once expired)."""
    return max(0, int(expires - now))
