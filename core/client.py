# =============================================================================
# core/client.py  -  SolarWinds Observability REST client
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   The only code that talks to the observability API.  Each method turns a
#   domain question ("which entities exist?", "search logs for X") into one
#   REST call and reshapes the JSON answer into core/models.py records.
#
# CONNECTIONS:
#   Every call opens its own httpx.AsyncClient and closes it when done.  The
#   client object holds nothing but its frozen config, so concurrent tool
#   calls never share state.
#
# 404 HANDLING (reads degrade, writes fail loudly):
#   list_alerts, list_traces   404 → []            (feature not available)
#   create/update/delete_alert 404 → NotSupportedError
#   get_entity, get_trace      404 → NotFoundError
#   everything else            any failure → TelemetryError
#
# TESTING:
#   Pass transport=httpx.MockTransport(handler) to answer requests in-process.
#   archive_transport does the same for the pre-signed archive download.
# =============================================================================

import logging
from datetime import datetime
from typing import Any, Optional

import httpx

from core.archive import download_log_archive
from core.errors import NotFoundError, NotSupportedError, TelemetryError
from core.log_entries import normalize_log_entry
from core.models import (
    AlertDefinition,
    LogArchive,
    LogEntry,
    MetricSample,
    MonitoredEntity,
    TelemetryConfig,
    TraceSpan,
)
from core.time_utils import parse_optional_timestamp, to_iso

logger = logging.getLogger(__name__)

DEFAULT_LOG_LIMIT = 50

TimeRange = tuple[datetime, datetime]


# -----------------------------------------------------------------------------
# Response → record converters
# -----------------------------------------------------------------------------
def _metric_from_api(raw: dict[str, Any]) -> MetricSample:
    return MetricSample(
        name=raw.get("name", ""),
        value=raw.get("value") or 0,
        timestamp=parse_optional_timestamp(raw.get("lastReportedTime")),
        tags=raw.get("tags") or {},
    )


def _entity_from_api(raw: dict[str, Any]) -> MonitoredEntity:
    metrics = raw.get("metrics")
    return MonitoredEntity(
        id=raw.get("id", ""),
        type=raw.get("type", ""),
        name=raw.get("name", ""),
        status=raw.get("status") or "unknown",
        metrics=[_metric_from_api(m) for m in metrics] if isinstance(metrics, list) else None,
        metadata=raw.get("metadata"),
    )


def _alert_from_api(raw: dict[str, Any]) -> AlertDefinition:
    return AlertDefinition(
        id=raw.get("id", ""),
        name=raw.get("name", ""),
        condition=raw.get("condition", ""),
        severity=raw.get("severity", ""),
        enabled=bool(raw.get("enabled", True)),
        description=raw.get("description"),
    )


def _span_from_api(raw: dict[str, Any]) -> TraceSpan:
    return TraceSpan(
        trace_id=raw.get("traceId", ""),
        span_id=raw.get("spanId", ""),
        operation_name=raw.get("operationName", ""),
        service_name=raw.get("serviceName", ""),
        duration=raw.get("duration") or 0,
        start_time=parse_optional_timestamp(raw.get("startTime")),
        parent_span_id=raw.get("parentSpanId"),
        tags=raw.get("tags"),
    )


def _archive_from_api(raw: dict[str, Any]) -> LogArchive:
    return LogArchive(
        id=raw.get("id", ""),
        name=raw.get("name", ""),
        download_url=raw.get("downloadUrl", ""),
        archived_timestamp=str(raw.get("archivedTimestamp", "")),
        archive_size=int(raw.get("archiveSize") or 0),
    )


def build_log_filter(query: Optional[str] = None, groups: Optional[list[str]] = None) -> Optional[str]:
    """Build the log search filter expression.

    groups=["a", "b"], query="x"  →  "(group:a OR group:b) AND x"
    groups=["a"]                  →  "group:a"
    nothing                       →  None (no filter parameter at all)
    """
    parts = []
    if groups:
        if len(groups) == 1:
            parts.append(f"group:{groups[0]}")
        else:
            parts.append("(" + " OR ".join(f"group:{g}" for g in groups) + ")")
    if query:
        parts.append(query)
    return " AND ".join(parts) if parts else None


def _items(data: Any, key: str) -> list[Any]:
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    return []


def _status_of(exc: Exception) -> Optional[int]:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    return None


def _describe(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}: {exc.response.reason_phrase}"
    return str(exc) or type(exc).__name__


class SolarWindsClient:
    """Async client for the SolarWinds Observability REST API."""

    def __init__(
        self,
        config: TelemetryConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        archive_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport
        self._archive_transport = archive_transport
        self.headers = {
            "Authorization": f"Bearer {config.api_token}",
            "Content-Type": "application/json",
        }

    # -------------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------------
    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Make one authenticated request and return the decoded JSON body.

        Raises httpx.HTTPStatusError for non-2xx answers and other
        httpx.HTTPError subclasses for transport failures; callers map them.
        """
        async with httpx.AsyncClient(
            base_url=self.config.api_url,
            headers=self.headers,
            timeout=self.config.request_timeout,
            transport=self._transport,
        ) as client:
            response = await client.request(method, path, params=params, json=json)
            response.raise_for_status()
            if not response.content:
                return {}
            return response.json()

    # -------------------------------------------------------------------------
    # Entities & metrics
    # -------------------------------------------------------------------------
    async def list_entities(self, type: Optional[str] = None) -> list[MonitoredEntity]:
        params = {"type": type} if type else {}
        try:
            data = await self._request("GET", "/v1/entities", params=params)
        except (httpx.HTTPError, ValueError) as exc:
            raise TelemetryError(f"Failed to fetch entities: {_describe(exc)}") from exc
        return [_entity_from_api(e) for e in _items(data, "entities")]

    async def get_entity(self, entity_id: str) -> MonitoredEntity:
        try:
            data = await self._request("GET", f"/v1/entities/{entity_id}")
        except (httpx.HTTPError, ValueError) as exc:
            if _status_of(exc) == 404:
                raise NotFoundError(f"Entity {entity_id} not found") from exc
            raise TelemetryError(f"Failed to fetch entity {entity_id}: {_describe(exc)}") from exc
        if not isinstance(data, dict):
            raise TelemetryError(f"Failed to fetch entity {entity_id}: unexpected response shape")
        return _entity_from_api(data)

    async def get_metrics(
        self,
        entity_id: Optional[str] = None,
        metric_names: Optional[list[str]] = None,
        time_range: Optional[TimeRange] = None,
    ) -> list[MetricSample]:
        params: dict[str, Any] = {}
        if entity_id:
            params["entityId"] = entity_id
        if metric_names:
            params["names"] = ",".join(metric_names)
        if time_range:
            params["startTime"] = to_iso(time_range[0])
            params["endTime"] = to_iso(time_range[1])

        try:
            data = await self._request("GET", "/v1/metrics", params=params)
        except (httpx.HTTPError, ValueError) as exc:
            raise TelemetryError(f"Failed to fetch metrics: {_describe(exc)}") from exc
        return [_metric_from_api(m) for m in _items(data, "metricsInfo")]

    # -------------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------------
    async def list_alerts(self, active: Optional[bool] = None) -> list[AlertDefinition]:
        params = {"active": active} if active is not None else {}
        try:
            data = await self._request("GET", "/v1/alerts", params=params)
        except (httpx.HTTPError, ValueError) as exc:
            if _status_of(exc) == 404:
                logger.info("Alerts endpoint answered 404, returning no alerts")
                return []
            raise TelemetryError(f"Failed to fetch alerts: {_describe(exc)}") from exc
        return [_alert_from_api(a) for a in _items(data, "alerts")]

    async def create_alert(self, definition: dict[str, Any]) -> AlertDefinition:
        """Create an alert.  ``definition`` uses the API's field names."""
        try:
            data = await self._request("POST", "/v1/alerts", json=definition)
        except (httpx.HTTPError, ValueError) as exc:
            if _status_of(exc) == 404:
                raise NotSupportedError("Alert creation not supported in current API") from exc
            raise TelemetryError(f"Failed to create alert: {_describe(exc)}") from exc
        return _alert_from_api(data)

    async def update_alert(self, alert_id: str, updates: dict[str, Any]) -> AlertDefinition:
        """Patch an alert with only the fields present in ``updates``."""
        body = {k: v for k, v in updates.items() if v is not None}
        try:
            data = await self._request("PATCH", f"/v1/alerts/{alert_id}", json=body)
        except (httpx.HTTPError, ValueError) as exc:
            if _status_of(exc) == 404:
                raise NotSupportedError("Alert updates not supported in current API") from exc
            raise TelemetryError(f"Failed to update alert {alert_id}: {_describe(exc)}") from exc
        return _alert_from_api(data)

    async def delete_alert(self, alert_id: str) -> None:
        try:
            await self._request("DELETE", f"/v1/alerts/{alert_id}")
        except (httpx.HTTPError, ValueError) as exc:
            if _status_of(exc) == 404:
                raise NotSupportedError("Alert deletion not supported in current API") from exc
            raise TelemetryError(f"Failed to delete alert {alert_id}: {_describe(exc)}") from exc

    # -------------------------------------------------------------------------
    # Traces
    # -------------------------------------------------------------------------
    async def list_traces(
        self,
        service_name: Optional[str] = None,
        time_range: Optional[TimeRange] = None,
    ) -> list[TraceSpan]:
        params: dict[str, Any] = {}
        if service_name:
            params["service"] = service_name
        if time_range:
            params["startTime"] = to_iso(time_range[0])
            params["endTime"] = to_iso(time_range[1])

        try:
            data = await self._request("GET", "/v1/traces", params=params)
        except (httpx.HTTPError, ValueError) as exc:
            if _status_of(exc) == 404:
                logger.info("Traces endpoint answered 404, returning no traces")
                return []
            raise TelemetryError(f"Failed to fetch traces: {_describe(exc)}") from exc
        return [_span_from_api(s) for s in _items(data, "traces")]

    async def get_trace(self, trace_id: str) -> list[TraceSpan]:
        try:
            data = await self._request("GET", f"/v1/traces/{trace_id}")
        except (httpx.HTTPError, ValueError) as exc:
            if _status_of(exc) == 404:
                raise NotFoundError("Trace not found or traces not supported") from exc
            raise TelemetryError(f"Failed to fetch trace {trace_id}: {_describe(exc)}") from exc
        return [_span_from_api(s) for s in _items(data, "spans")]

    # -------------------------------------------------------------------------
    # Logs
    # -------------------------------------------------------------------------
    async def search_logs(
        self,
        query: Optional[str] = None,
        groups: Optional[list[str]] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[LogEntry]:
        """Search logs.  Either time bound may be given on its own."""
        limit = limit or DEFAULT_LOG_LIMIT
        params: dict[str, Any] = {"limit": limit}

        log_filter = build_log_filter(query, groups)
        if log_filter:
            params["filter"] = log_filter
        if start:
            params["startTime"] = to_iso(start)
        if end:
            params["endTime"] = to_iso(end)

        logger.debug("Requesting logs with params: %s", params)
        try:
            data = await self._request("GET", "/v1/logs", params=params)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Log search error: %s", _describe(exc))
            raise TelemetryError(f"Failed to search logs: {_describe(exc)}") from exc

        logs = data.get("logs") if isinstance(data, dict) else data
        if not isinstance(logs, list):
            logs = []

        # The API has been seen returning more than asked for.
        try:
            return [normalize_log_entry(raw) for raw in logs[:limit]]
        except ValueError as exc:
            raise TelemetryError(f"Failed to search logs: {exc}") from exc

    async def list_log_archives(self, start: datetime, end: datetime) -> list[LogArchive]:
        params = {"startTime": to_iso(start), "endTime": to_iso(end)}

        logger.debug("Requesting log archives with params: %s", params)
        try:
            data = await self._request("GET", "/v1/logs/archives", params=params)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Log archives error: %s", _describe(exc))
            raise TelemetryError(f"Failed to list log archives: {_describe(exc)}") from exc
        return [_archive_from_api(a) for a in _items(data, "logArchives")]

    async def download_and_unzip_archive(
        self,
        download_url: str,
        limit: Optional[int] = None,
    ) -> list[LogEntry]:
        """Download a pre-signed archive and parse (at most ``limit``) entries."""
        try:
            return await download_log_archive(
                download_url,
                limit=limit,
                timeout=self.config.archive_timeout,
                transport=self._archive_transport,
            )
        except TelemetryError as exc:
            logger.error("Archive download error: %s (url: %s)", exc, download_url[:150])
            raise TelemetryError(f"Failed to download and unzip archive: {exc}") from exc

    # -------------------------------------------------------------------------
    # Health probe
    # -------------------------------------------------------------------------
    async def test_connection(self) -> bool:
        """Cheap authenticated call used once at startup.  Never raises."""
        try:
            await self._request("GET", "/v1/entities", params={"limit": 1})
            return True
        except Exception as exc:
            logger.error("Connection test failed: %s", _describe(exc))
            return False
