# =============================================================================
# tools/mcp_server.py  -  FastMCP Tool Server (ALL tools in one place)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Defines ALL MCP tools that the agent can call.  Each tool is a thin
#   wrapper around one SolarWindsClient method: it parses arguments, calls
#   the client, formats the result as text (tools/formatting.py), and
#   returns it.
#
# HOW IT WORKS (the flow):
#   1. The agent calls a tool by name via MCP (e.g. "search_logs")
#   2. FastMCP validates the arguments against the handler's type hints
#   3. The handler calls core/client.py, which does the HTTP work
#   4. The handler formats the records and returns ONE text payload
#
# ERRORS NEVER ESCAPE:
#   Every handler catches every exception and answers "Error: <message>".
#   A failed call is just another text answer to the agent; the MCP session
#   stays up no matter how many calls fail.
#
# TOOL NAMING CONVENTIONS:
#   - get_* / list_* / search_*   → read-only
#   - create_* / update_* / delete_*  → alert mutations (the only writes)
#   - download_*                  → fetches and parses a log archive
#
# WIRING:
#   ObservabilityTools holds the handlers and the client they share.
#   create_server() registers each handler on a FastMCP instance.  Tests
#   call the handlers directly without going through MCP.
# =============================================================================

import logging
import sys
from typing import Annotated, Any, Optional

from fastmcp import FastMCP
from pydantic import Field

from core.client import SolarWindsClient
from core.models import AlertSeverity, EntityType
from core.time_utils import parse_timestamp
from tools.formatting import (
    format_archive_download,
    format_log_archives,
    format_log_search,
    to_json_text,
)

SERVER_NAME = "solarwinds-observability-mcp"

TOOL_NAMES = (
    "get_entities",
    "get_entity",
    "get_metrics",
    "get_alerts",
    "create_alert",
    "update_alert",
    "delete_alert",
    "get_traces",
    "get_trace",
    "search_logs",
    "list_log_archives",
    "download_log_archive",
)

# =============================================================================
# Logging Setup
# =============================================================================
# We log to STDERR because the MCP server talks to the agent over STDOUT
# (stdin/stdout is the MCP transport).  Anything we print to stdout would
# corrupt the JSON-RPC stream.
#
# ANSI COLOR CODES:
#     - CYAN for incoming requests (tool name + parameters)
#     - GREEN for responses
#     - YELLOW for intermediate status/progress messages
#     - RED for errors returned to the agent
# =============================================================================

_CYAN = "\033[36m"     # Requests (tool calls with params)
_GREEN = "\033[32m"    # Responses
_YELLOW = "\033[33m"   # Status/progress messages
_RED = "\033[31m"      # Errors
_RESET = "\033[0m"     # Reset to default terminal color

_RESPONSE_PREVIEW_CHARS = 300


def setup_logging(level: int = logging.INFO) -> None:
    """Send all log output to stderr.  Called once by main.py."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [MCP] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _log_request(tool_name: str, **params) -> None:
    """Log an incoming tool call with its parameters in CYAN."""
    param_str = ", ".join(f"{k}={v!r}" for k, v in params.items() if v is not None)
    logging.info(f"{_CYAN}{tool_name} called with: {param_str}{_RESET}")


def _log_status(message: str) -> None:
    """Log an intermediate status message in YELLOW."""
    logging.info(f"{_YELLOW}  → {message}{_RESET}")


def _log_response(tool_name: str, text: str) -> str:
    """Log a one-line preview of the response in GREEN, then return it."""
    preview = text[:_RESPONSE_PREVIEW_CHARS].replace("\n", " ")
    logging.info(f"{_GREEN}  ← {tool_name} response ({len(text)} chars): {preview}{_RESET}")
    return text


def _error_response(tool_name: str, exc: Exception) -> str:
    """Log a failed call in RED and turn it into the agent-facing text."""
    logging.error(f"{_RED}  ✗ {tool_name} failed: {exc}{_RESET}")
    return f"Error: {exc}"


def _parse_time(value: Optional[str], arg_name: str):
    if value is None:
        return None
    try:
        return parse_timestamp(value)
    except ValueError as exc:
        raise ValueError(f"Invalid {arg_name} {value!r}: expected an ISO-8601 timestamp") from exc


def _parse_range(start_time: Optional[str], end_time: Optional[str]):
    """Metrics and traces only filter by time when BOTH bounds are given."""
    if start_time and end_time:
        return _parse_time(start_time, "start_time"), _parse_time(end_time, "end_time")
    return None


LogLimit = Annotated[int, Field(ge=1, le=1000, description="Maximum number of logs to fetch (default 50)")]
ArchiveLimit = Annotated[int, Field(ge=1, le=10000, description="Parse only the first N lines of the archive")]


class ObservabilityTools:
    """The MCP tool handlers, bound to one SolarWindsClient."""

    def __init__(self, client: SolarWindsClient):
        self.client = client

    # =========================================================================
    # TOOL 1: get_entities
    # =========================================================================
    async def get_entities(self, type: Optional[EntityType] = None) -> str:
        """Get a list of monitored entities.

        Args:
            type: Only return entities of this kind (host, application,
                  service, database, network).  Omit to list everything.
        """
        _log_request("get_entities", type=type)
        try:
            entities = await self.client.list_entities(type)
            _log_status(f"Got {len(entities)} entities")
            return _log_response("get_entities", to_json_text(entities))
        except Exception as exc:
            return _error_response("get_entities", exc)

    # =========================================================================
    # TOOL 2: get_entity
    # =========================================================================
    async def get_entity(self, entity_id: str) -> str:
        """Get details of a specific entity by its ID."""
        _log_request("get_entity", entity_id=entity_id)
        try:
            entity = await self.client.get_entity(entity_id)
            return _log_response("get_entity", to_json_text(entity))
        except Exception as exc:
            return _error_response("get_entity", exc)

    # =========================================================================
    # TOOL 3: get_metrics
    # =========================================================================
    # The time window is applied only when BOTH bounds are given.
    # =========================================================================
    async def get_metrics(
        self,
        entity_id: Optional[str] = None,
        metric_names: Optional[list[str]] = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> str:
        """Get metrics, optionally for one entity and a set of metric names.

        Args:
            entity_id: Entity whose metrics to fetch.
            metric_names: Metric names to include (e.g. ["cpu.usage"]).
            start_time: ISO-8601 start of the window.  Used only together
                        with end_time.
            end_time: ISO-8601 end of the window.
        """
        _log_request("get_metrics", entity_id=entity_id, metric_names=metric_names,
                     start_time=start_time, end_time=end_time)
        try:
            metrics = await self.client.get_metrics(
                entity_id, metric_names, _parse_range(start_time, end_time)
            )
            _log_status(f"Got {len(metrics)} metric samples")
            return _log_response("get_metrics", to_json_text(metrics))
        except Exception as exc:
            return _error_response("get_metrics", exc)

    # =========================================================================
    # TOOL 4: get_alerts
    # =========================================================================
    # A 404 from the alerts endpoint means the account has no alerting
    # API.  That is answered with an empty list, not an error.
    # =========================================================================
    async def get_alerts(self, active: Optional[bool] = None) -> str:
        """Get alert definitions.

        Args:
            active: True for active alerts only, False for inactive only.
                    Omit for all.

        Returns an empty list if the account has no alerting API.
        """
        _log_request("get_alerts", active=active)
        try:
            alerts = await self.client.list_alerts(active)
            return _log_response("get_alerts", to_json_text(alerts))
        except Exception as exc:
            return _error_response("get_alerts", exc)

    # =========================================================================
    # TOOL 5: create_alert
    # =========================================================================
    # Writes fail loudly: a 404 here becomes "not supported", never [].
    # =========================================================================
    async def create_alert(
        self,
        name: str,
        condition: str,
        severity: AlertSeverity,
        description: Optional[str] = None,
        enabled: bool = True,
    ) -> str:
        """Create a new alert definition.

        Args:
            name: Alert name.
            condition: Condition expression the platform evaluates.
            severity: critical, warning or info.
            description: Optional free text.
            enabled: Whether the alert starts enabled (default True).
        """
        _log_request("create_alert", name=name, condition=condition, severity=severity,
                     description=description, enabled=enabled)
        definition: dict[str, Any] = {
            "name": name,
            "condition": condition,
            "severity": severity,
            "enabled": enabled,
        }
        if description is not None:
            definition["description"] = description
        try:
            alert = await self.client.create_alert(definition)
            _log_status(f"Created alert {alert.id}")
            return _log_response("create_alert", to_json_text(alert))
        except Exception as exc:
            return _error_response("create_alert", exc)

    # =========================================================================
    # TOOL 6: update_alert
    # =========================================================================
    async def update_alert(
        self,
        alert_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        condition: Optional[str] = None,
        severity: Optional[AlertSeverity] = None,
        enabled: Optional[bool] = None,
    ) -> str:
        """Update an existing alert.  Only the fields you pass are changed."""
        _log_request("update_alert", alert_id=alert_id, name=name, description=description,
                     condition=condition, severity=severity, enabled=enabled)
        updates = {
            "name": name,
            "description": description,
            "condition": condition,
            "severity": severity,
            "enabled": enabled,
        }
        try:
            alert = await self.client.update_alert(alert_id, updates)
            return _log_response("update_alert", to_json_text(alert))
        except Exception as exc:
            return _error_response("update_alert", exc)

    # =========================================================================
    # TOOL 7: delete_alert
    # =========================================================================
    async def delete_alert(self, alert_id: str) -> str:
        """Delete an alert definition."""
        _log_request("delete_alert", alert_id=alert_id)
        try:
            await self.client.delete_alert(alert_id)
            return _log_response("delete_alert", f"Alert {alert_id} deleted successfully")
        except Exception as exc:
            return _error_response("delete_alert", exc)

    # =========================================================================
    # TOOL 8: get_traces
    # =========================================================================
    async def get_traces(
        self,
        service_name: Optional[str] = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> str:
        """Get distributed trace spans, optionally for one service.

        The time window applies only when both start_time and end_time
        (ISO-8601) are given.
        """
        _log_request("get_traces", service_name=service_name,
                     start_time=start_time, end_time=end_time)
        try:
            spans = await self.client.list_traces(service_name, _parse_range(start_time, end_time))
            _log_status(f"Got {len(spans)} spans")
            return _log_response("get_traces", to_json_text(spans))
        except Exception as exc:
            return _error_response("get_traces", exc)

    # =========================================================================
    # TOOL 9: get_trace
    # =========================================================================
    async def get_trace(self, trace_id: str) -> str:
        """Get all spans of a specific trace."""
        _log_request("get_trace", trace_id=trace_id)
        try:
            spans = await self.client.get_trace(trace_id)
            return _log_response("get_trace", to_json_text(spans))
        except Exception as exc:
            return _error_response("get_trace", exc)

    # =========================================================================
    # TOOL 10: search_logs
    # =========================================================================
    # Context budget: at most 10 logs reach the agent.  Errors among
    # them get a detailed report; otherwise a 5-line digest is shown.
    # =========================================================================
    async def search_logs(
        self,
        query: Optional[str] = None,
        groups: Optional[list[str]] = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        limit: Optional[LogLimit] = None,
    ) -> str:
        """Search logs with a query, source groups, and/or a time window.

        WHEN TO CALL THIS: To look for errors or activity in live logs.
        For logs older than the search retention, use list_log_archives
        and download_log_archive instead.

        The answer shows at most 10 logs.  Errors and exceptions are
        reported first, with key attributes (stack traces etc.).  When more
        than 10 logs matched, a summary with the total and a per-level
        count is appended.

        Args:
            query: Search expression (Lucene-like), e.g. "timeout".
            groups: Log source groups; several groups are OR-ed together.
            start_time: ISO-8601 lower bound.  May be given without end_time.
            end_time: ISO-8601 upper bound.  May be given without start_time.
            limit: Maximum number of logs to fetch, 1-1000 (default 50).
        """
        _log_request("search_logs", query=query, groups=groups,
                     start_time=start_time, end_time=end_time, limit=limit)
        try:
            logs = await self.client.search_logs(
                query,
                groups,
                _parse_time(start_time, "start_time"),
                _parse_time(end_time, "end_time"),
                limit,
            )
            _log_status(f"Got {len(logs)} log entries")
            return _log_response("search_logs", format_log_search(logs))
        except Exception as exc:
            return _error_response("search_logs", exc)

    # =========================================================================
    # TOOL 11: list_log_archives
    # =========================================================================
    async def list_log_archives(self, start_time: str, end_time: str) -> str:
        """List log archive files for a time range.

        Archives are hourly gzip-compressed JSON files stored in object
        storage.  Each entry includes a pre-signed download URL to pass to
        download_log_archive.  URLs expire, so download soon after listing.

        Args:
            start_time: ISO-8601 start of the window (required).
            end_time: ISO-8601 end of the window (required).
        """
        _log_request("list_log_archives", start_time=start_time, end_time=end_time)
        try:
            archives = await self.client.list_log_archives(
                _parse_time(start_time, "start_time"),
                _parse_time(end_time, "end_time"),
            )
            _log_status(f"Got {len(archives)} archives")
            return _log_response("list_log_archives", format_log_archives(archives))
        except Exception as exc:
            return _error_response("list_log_archives", exc)

    # =========================================================================
    # TOOL 12: download_log_archive
    # =========================================================================
    # Goes through core/archive.py, NOT the authenticated client.
    # The pre-signed URL must be fetched exactly as given.
    # =========================================================================
    async def download_log_archive(
        self,
        download_url: str,
        limit: Optional[ArchiveLimit] = None,
    ) -> str:
        """Download and decompress a log archive, returning parsed log entries.

        Args:
            download_url: The pre-signed URL from list_log_archives, exactly
                          as given.
            limit: Parse only the first N entries, 1-10000.  Archives can
                   be large; a limit keeps the download quick.
        """
        _log_request("download_log_archive", download_url=download_url[:100], limit=limit)
        try:
            logs = await self.client.download_and_unzip_archive(download_url, limit)
            _log_status(f"Parsed {len(logs)} log entries")
            return _log_response("download_log_archive", format_archive_download(logs, limit))
        except Exception as exc:
            return _error_response("download_log_archive", exc)


# =============================================================================
# Server factory
# =============================================================================
def create_server(client: SolarWindsClient) -> FastMCP:
    """Create the FastMCP server with every tool registered.

    The handler docstrings double as the tool descriptions the agent sees.
    """
    mcp = FastMCP(SERVER_NAME)
    tools = ObservabilityTools(client)
    for name in TOOL_NAMES:
        mcp.tool(name=name)(getattr(tools, name))
    return mcp
