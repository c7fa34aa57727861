"""
Helper functions for turning loosely typed endpoint values into typed ones.
"""
from datetime import datetime
from typing import Any, Optional
import json
import re

# RFC 3339 date-time: full-date "T" full-time, with a mandatory offset
_RFC3339_PATTERN = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})T"
    r"(?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d{1,9}))?"
    r"(?P<offset>Z|[+-]\d{2}:\d{2})",
    re.ASCII
)


def format_value(value: Any) -> str:
    """
    Convert a decoded JSON value to the string stored in an environment variable.

    Args:
        value: Any value produced by json.loads

    Returns:
        Strings unchanged, "true"/"false" for booleans, "<nil>" for null and
        compact JSON for everything else
    """
    if isinstance(value, str):
        return value
    if value is None:
        return "<nil>"
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def parse_rfc3339(value: str) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp such as "2030-01-01T00:00:00Z".

    Args:
        value: Timestamp string

    Returns:
        Timezone-aware datetime, or None if the value is not valid RFC 3339
    """
    match = _RFC3339_PATTERN.fullmatch(value)
    if not match:
        return None

    # datetime only keeps microseconds
    fraction = match.group("fraction")
    fraction = f".{fraction[:6].ljust(6, '0')}" if fraction else ""
    offset = match.group("offset")
    offset = "+00:00" if offset == "Z" else offset

    try:
        return datetime.fromisoformat(f"{match.group('date')}T{match.group('time')}{fraction}{offset}")
    except ValueError:
        return None
