# =============================================================================
# core/time_utils.py  -  Timestamp helpers
# =============================================================================
#
# Upstream records carry times as ISO-8601 or RFC-2822 strings, or as epoch
# milliseconds.  Archive metadata carries epoch *seconds* as a string, and
# tool arguments are ISO strings.  Everything becomes a timezone-aware UTC
# datetime here; a naive time is taken to be UTC.
#
# String parsing goes through dateutil, so "2024-05-01T12:00:00.1234Z" and
# "Wed, 01 May 2024 12:00:01 GMT" both work on every supported Python.
# =============================================================================

from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as dateutil_parser


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse a date string or epoch-milliseconds number into UTC.

    Raises:
        ValueError: if the value cannot be interpreted as a point in time.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    elif isinstance(value, (int, float)):
        try:
            dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"Invalid timestamp: {value!r}") from exc
    elif isinstance(value, str) and value.strip():
        try:
            dt = dateutil_parser.parse(value.strip())
        except (ValueError, OverflowError) as exc:
            raise ValueError(f"Invalid timestamp: {value!r}") from exc
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_optional_timestamp(value: Any) -> Optional[datetime]:
    """Like parse_timestamp, but None/empty/unparseable becomes None."""
    if value in (None, ""):
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        return None


def to_iso(dt: datetime) -> str:
    """Render as e.g. 2024-05-01T12:00:00.000Z."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def epoch_seconds_to_iso(value: str | int | float) -> str:
    """Archive timestamps are epoch seconds as a string."""
    return to_iso(datetime.fromtimestamp(int(float(value)), tz=timezone.utc))
