# =============================================================================
# core/models.py  -  Data Models (the "nouns" of the system)
# =============================================================================
#
# These dataclasses define the *shape* of every record that flows from the
# observability API to the agent.  They carry no behavior; the client builds
# them from upstream JSON and the tools layer serializes them back out.
#
# NAMING:
#   Python fields are snake_case.  When a record is rendered for the agent
#   (tools/formatting.py) the fields are emitted under the upstream camelCase
#   names, so the agent sees "traceId", not "trace_id".
#
# LIFETIME:
#   Every record is request-scoped.  Nothing here is cached or persisted.
# =============================================================================

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional

EntityType = Literal["host", "application", "service", "database", "network"]
EntityStatus = Literal["healthy", "warning", "critical", "unknown"]
AlertSeverity = Literal["critical", "warning", "info"]
LogLevel = Literal["error", "warn", "info", "debug", "trace"]

DEFAULT_API_URL = "https://api.solarwinds.com"


# -----------------------------------------------------------------------------
# TelemetryConfig - process-wide settings, built once at startup
# -----------------------------------------------------------------------------
# Frozen so that a client can never mutate the settings it was handed.
# See core/config.py for how this is loaded from the environment.
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class TelemetryConfig:
    """Connection settings for the observability API."""

    api_token: str
    api_url: str = DEFAULT_API_URL
    organization_id: Optional[str] = None   # Accepted but not sent anywhere yet
    request_timeout: float = 30.0           # Seconds, per REST call
    archive_timeout: float = 120.0          # Seconds, whole archive download


# -----------------------------------------------------------------------------
# MetricSample - one reported value of one metric
# -----------------------------------------------------------------------------
@dataclass
class MetricSample:
    name: str
    value: float = 0                        # Upstream omits value sometimes
    timestamp: Optional[datetime] = None    # From upstream "lastReportedTime"
    tags: dict[str, str] = field(default_factory=dict)


# -----------------------------------------------------------------------------
# MonitoredEntity - a host, service, database... as the platform sees it
# -----------------------------------------------------------------------------
@dataclass
class MonitoredEntity:
    """Read-only view of a monitored entity."""

    id: str
    type: EntityType
    name: str
    status: EntityStatus = "unknown"
    metrics: Optional[list[MetricSample]] = None
    metadata: Optional[dict[str, Any]] = None


# -----------------------------------------------------------------------------
# AlertDefinition - the only record the agent can create or change
# -----------------------------------------------------------------------------
@dataclass
class AlertDefinition:
    id: str
    name: str
    condition: str
    severity: AlertSeverity
    enabled: bool = True
    description: Optional[str] = None


# -----------------------------------------------------------------------------
# TraceSpan - one span of a distributed trace
# -----------------------------------------------------------------------------
# Spans are kept flat.  parent_span_id is there if the agent wants to
# reconstruct the tree itself.
# -----------------------------------------------------------------------------
@dataclass
class TraceSpan:
    trace_id: str
    span_id: str
    operation_name: str
    service_name: str
    duration: float
    start_time: Optional[datetime] = None
    parent_span_id: Optional[str] = None
    tags: Optional[dict[str, Any]] = None


# -----------------------------------------------------------------------------
# LogEntry - one log line, normalized
# -----------------------------------------------------------------------------
# Upstream log records come in several shapes ("time" vs "timestamp",
# "severity" vs "level", ...).  Never build a LogEntry by hand: go through
# core.log_entries.normalize_log_entry so live search and archive download
# agree field for field.
# -----------------------------------------------------------------------------
@dataclass
class LogEntry:
    """A normalized log line from live search or from an archive."""

    timestamp: datetime
    level: LogLevel                         # Lower-cased
    message: str
    source: str                             # hostname → program → source
    attributes: dict[str, Any] = field(default_factory=dict)


# -----------------------------------------------------------------------------
# LogArchive - an hourly gzip bundle of logs sitting in object storage
# -----------------------------------------------------------------------------
@dataclass
class LogArchive:
    """Metadata for one downloadable log archive."""

    id: str
    name: str
    download_url: str                       # Pre-signed, expires
    archived_timestamp: str                 # Epoch seconds, as a string
    archive_size: int                       # Bytes
