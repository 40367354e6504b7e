"""
Time string parsing for filter bounds.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

_PARTIAL_FORMATS = (
    "%Y",
    "%Y-%m",
    "%Y-%m-%d",
    "%Y-%m-%dT%H",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%dT%H:%M:%S",
)

_NUMERIC = re.compile(r"^-?\d+(\.\d+)?$")

# Integer parts longer than this are treated as milliseconds
_MAX_SECONDS_DIGITS = 10


def parse_time(value: str) -> datetime:
    """
    Parse a time bound into an aware UTC datetime.

    Accepts RFC3339 timestamps, partial dates such as ``2024`` or
    ``2024-01-15T10``, and Unix timestamps in seconds or milliseconds.

    Raises:
        ValueError: If the value is empty or not in a supported format
    """
    value = value.strip()
    if not value:
        raise ValueError("cannot parse time from empty string")

    # Partial dates win over timestamps so that "2024" is a year
    for fmt in _PARTIAL_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    if _NUMERIC.match(value):
        timestamp = float(value)
        if len(value.lstrip("-").split(".")[0]) > _MAX_SECONDS_DIGITS:
            timestamp /= 1000
        try:
            return datetime.fromtimestamp(timestamp, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError(f"cannot parse time {value!r}: timestamp out of range") from exc

    # RFC3339 with "Z" or a numeric offset
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00").replace("z", "+00:00"))
    except ValueError:
        raise ValueError(f"cannot parse time {value!r}: unsupported format") from None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_rfc3339(value: datetime) -> str:
    """Format a datetime as an RFC3339 UTC timestamp with second precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
