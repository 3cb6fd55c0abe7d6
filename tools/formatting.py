# =============================================================================
# tools/formatting.py  -  Turning records into text the agent can read
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Every tool answers with ONE text payload.  Simple results (entities,
#   metrics, alerts, spans) are pretty-printed JSON.  Logs get special
#   treatment because a search can match hundreds of lines:
#
#   search_logs
#     - only the first 10 matches are shown
#     - errors/exceptions among them are pulled out into a dedicated report
#     - otherwise a short digest of up to 5 lines is shown
#     - when more than 10 matched, a summary line gives the real total and
#       a per-level breakdown
#
#   list_log_archives / download_log_archive
#     - human-readable listings (sizes in MB, epoch seconds as ISO time)
#
#   The exact wording here is what agents have been prompted against, so
#   treat these strings as part of the tool contract.
# =============================================================================

import json
from dataclasses import fields, is_dataclass
from datetime import datetime
from typing import Any, Optional

from core.log_entries import count_levels
from core.models import LogArchive, LogEntry
from core.time_utils import epoch_seconds_to_iso, to_iso

NO_LOGS_MESSAGE = "No logs found matching the query."

MAX_LOGS_SHOWN = 10
MAX_DIGEST_LOGS = 5
ERROR_MESSAGE_CHARS = 500
DIGEST_MESSAGE_CHARS = 200
ARCHIVE_MESSAGE_CHARS = 300
KEY_ATTRIBUTE_CHARS = 300
MAX_KEY_ATTRIBUTES = 3
KEY_ATTRIBUTE_NAMES = ("stacktrace", "error", "exception", "trace")

BYTES_PER_MB = 1024 * 1024


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_jsonable(value: Any) -> Any:
    """Convert records to plain JSON data with the API's camelCase names.

    Optional fields that are None are left out.
    """
    if is_dataclass(value) and not isinstance(value, type):
        return {
            _camel(f.name): to_jsonable(getattr(value, f.name))
            for f in fields(value)
            if getattr(value, f.name) is not None
        }
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    return value


def to_json_text(value: Any) -> str:
    return json.dumps(to_jsonable(value), indent=2, ensure_ascii=False, default=str)


def truncate(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def level_breakdown(entries: list[LogEntry]) -> str:
    """e.g. "error(2), info(8)"."""
    return ", ".join(f"{level}({count})" for level, count in count_levels(entries).items())


def is_error_log(entry: LogEntry) -> bool:
    message = entry.message.lower()
    return "exception" in message or "error" in message or entry.level == "error"


def _key_attributes(entry: LogEntry) -> Optional[str]:
    relevant = [
        (key, value)
        for key, value in entry.attributes.items()
        if any(name in key.lower() for name in KEY_ATTRIBUTE_NAMES)
    ][:MAX_KEY_ATTRIBUTES]
    if not relevant:
        return None
    dumped = json.dumps(dict(relevant), indent=2, ensure_ascii=False, default=str)
    return dumped[:KEY_ATTRIBUTE_CHARS]


# -----------------------------------------------------------------------------
# search_logs
# -----------------------------------------------------------------------------
def format_log_search(logs: list[LogEntry]) -> str:
    shown = logs[:MAX_LOGS_SHOWN]

    summary = ""
    if len(logs) > MAX_LOGS_SHOWN:
        summary = (
            f"\n\nShowing {MAX_LOGS_SHOWN} of {len(logs)} total logs. "
            f"Log levels: {level_breakdown(logs)}"
        )

    error_logs = [entry for entry in shown if is_error_log(entry)]

    if error_logs:
        parts = [f"Found {len(error_logs)} exception/error logs:\n\n"]
        for index, entry in enumerate(error_logs, start=1):
            parts.append(f"[{index}] {to_iso(entry.timestamp)}\n")
            parts.append(f"Level: {entry.level}\n")
            parts.append(f"Source: {entry.source}\n")
            parts.append(f"Message: {truncate(entry.message, ERROR_MESSAGE_CHARS)}\n")
            key_attributes = _key_attributes(entry)
            if key_attributes:
                parts.append(f"Key attributes: {key_attributes}\n")
            parts.append("\n---\n\n")
        text = "".join(parts)
    elif shown:
        parts = [f"Found {len(logs)} logs matching query. Most recent logs:\n\n"]
        for index, entry in enumerate(shown[:MAX_DIGEST_LOGS], start=1):
            parts.append(f"[{index}] {to_iso(entry.timestamp)} - {entry.level} - {entry.source}\n")
            parts.append(f"{truncate(entry.message, DIGEST_MESSAGE_CHARS)}\n\n")
        text = "".join(parts)
    else:
        text = NO_LOGS_MESSAGE

    return text + summary


# -----------------------------------------------------------------------------
# list_log_archives
# -----------------------------------------------------------------------------
def format_size_mb(size_bytes: int) -> str:
    return f"{size_bytes / BYTES_PER_MB:.2f} MB"


def _archived_at(archive: LogArchive) -> str:
    try:
        return epoch_seconds_to_iso(archive.archived_timestamp)
    except (ValueError, OverflowError, OSError):
        return archive.archived_timestamp or "unknown"


def format_log_archives(archives: list[LogArchive]) -> str:
    header = f"Found {len(archives)} log archive(s) for the specified time range:\n\n"
    blocks = [
        f"[{index}] {archive.name}\n"
        f"  Size: {format_size_mb(archive.archive_size)}\n"
        f"  Archived: {_archived_at(archive)}\n"
        f"  Archive ID: {archive.id}\n"
        f"  Download URL: {archive.download_url}"
        for index, archive in enumerate(archives, start=1)
    ]
    return header + "\n\n".join(blocks)


# -----------------------------------------------------------------------------
# download_log_archive
# -----------------------------------------------------------------------------
def format_archive_download(logs: list[LogEntry], limit: Optional[int] = None) -> str:
    shown = logs[:MAX_LOGS_SHOWN]

    summary = f"Successfully downloaded and decompressed archive. Total entries: {len(logs)}\n"
    if limit and len(logs) >= limit:
        summary += f"(limited to first {limit} entries)\n"
    summary += f"\nShowing first {len(shown)} entries:\n\n"

    entries = "\n\n".join(
        f"[{index}] {to_iso(entry.timestamp)} - {entry.level} - {entry.source}\n"
        f"{truncate(entry.message, ARCHIVE_MESSAGE_CHARS)}"
        for index, entry in enumerate(shown, start=1)
    )

    stats = f"\n\nLog level distribution: {level_breakdown(logs)}"
    return summary + entries + stats
