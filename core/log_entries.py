# =============================================================================
# core/log_entries.py  -  Log record normalization
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Turns one raw upstream log record (a dict of whatever shape the API or
#   the archive happened to produce) into a LogEntry.
#
# THE FALLBACK CHAINS (first non-empty value wins):
#   timestamp   time → timestamp → now (also when the value will not parse)
#   level       severity → level → "info"        (always lower-cased)
#   message     message → first 200 chars of the record as JSON
#   source      hostname → program → source → "unknown"
#   attributes  {id, program, hostname} + the record's "attributes" object
#
#   Live search (core/client.py) and archive download (core/archive.py)
#   both call normalize_log_entry, so the same record always produces the
#   same LogEntry no matter which path fetched it.
# =============================================================================

import json
import logging
from typing import Any, Iterable

from core.models import LogEntry
from core.time_utils import parse_timestamp, utc_now

logger = logging.getLogger(__name__)

MESSAGE_FALLBACK_CHARS = 200


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _timestamp_of(raw: dict[str, Any]):
    when = _first(raw, "time", "timestamp")
    if when is None:
        return utc_now()
    try:
        return parse_timestamp(when)
    except ValueError:
        logger.debug("Unparseable log timestamp %r, using current time", when)
        return utc_now()


def normalize_log_entry(raw: dict[str, Any]) -> LogEntry:
    """Build a LogEntry from an upstream log record.

    Raises:
        ValueError: if the record is not a JSON object.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Expected a JSON object, got {type(raw).__name__}")

    timestamp = _timestamp_of(raw)

    level = str(_first(raw, "severity", "level") or "info").lower()

    message = _first(raw, "message")
    if message is None:
        message = json.dumps(raw, separators=(",", ":"), default=str)[:MESSAGE_FALLBACK_CHARS]

    source = _first(raw, "hostname", "program", "source") or "unknown"

    attributes = {
        key: raw[key]
        for key in ("id", "program", "hostname")
        if raw.get(key) is not None
    }
    if isinstance(raw.get("attributes"), dict):
        attributes.update(raw["attributes"])

    return LogEntry(
        timestamp=timestamp,
        level=level,
        message=str(message),
        source=str(source),
        attributes=attributes,
    )


def count_levels(entries: Iterable[LogEntry]) -> dict[str, int]:
    """Count entries per level, in order of first appearance."""
    counts: dict[str, int] = {}
    for entry in entries:
        counts[entry.level] = counts.get(entry.level, 0) + 1
    return counts
