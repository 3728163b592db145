"""
OFX timestamp normalization.

Statement exports write timestamps as ``YYYYMMDDhhmmss[.fff][offset]`` where
the optional offset is a bracketed UTC offset qualified by a zone name, for
example ``20241120170806.513[-5:EST]``. Only the calendar date matters for
deduplication, so time of day is dropped once the timestamp is validated.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
import re

from ..utils.exceptions import BadTimestampError

_TIMESTAMP_RE = re.compile(
    r"^(?P<stamp>\d{14})"
    r"(?:\.(?P<fraction>\d{1,6}))?"
    r"(?:\[(?P<sign>[+-]?)(?P<hours>\d{1,2})(?:\.(?P<hour_fraction>\d{1,2}))?"
    r"(?::(?P<zone>[A-Za-z][A-Za-z0-9_/+-]*))?\])?$"
)


def _format_offset(sign: str, hours: str, hour_fraction: Optional[str]) -> str:
    """Turn ``-5`` into ``-0500`` and ``+5.75`` into ``+0545``."""
    minutes = 0
    if hour_fraction:
        minutes = int(Decimal(f"0.{hour_fraction}") * 60)
    return f"{sign or '+'}{int(hours):02d}{minutes:02d}"


def normalize_timestamp(raw: str) -> date:
    """
    Convert a vendor timestamp into the calendar date it reports.

    The date is taken as written in the timestamp's own offset; it is never
    shifted to UTC.

    Args:
        raw: Timestamp string such as ``20211217215753.211[-8:PST]``

    Returns:
        The posted calendar date

    Raises:
        BadTimestampError: If the string is neither an offset-aware nor a
            naive timestamp
    """
    text = raw.strip() if raw else ""
    match = _TIMESTAMP_RE.match(text)
    if not match:
        raise BadTimestampError(raw)

    value = match["stamp"]
    fmt = "%Y%m%d%H%M%S"
    if match["fraction"]:
        value += f".{match['fraction']}"
        fmt += ".%f"
    if match["hours"] is not None:
        value += _format_offset(match["sign"], match["hours"], match["hour_fraction"])
        fmt += "%z"

    try:
        return datetime.strptime(value, fmt).date()
    except ValueError as e:
        raise BadTimestampError(raw) from e
