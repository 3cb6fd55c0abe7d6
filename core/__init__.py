# =============================================================================
# core/__init__.py
# =============================================================================
# This package contains everything that talks to, or makes sense of, the
# SolarWinds Observability API.
#
# ARCHITECTURAL RULE:
#   Nothing in this package imports FastMCP.  The client, the models and the
#   log/archive handling work the same whether they are driven by the MCP
#   server, a test, or a REPL.
#
#   models.py       records and the frozen TelemetryConfig
#   config.py       environment → TelemetryConfig
#   client.py       SolarWindsClient (httpx, one connection per call)
#   log_entries.py  the one place upstream log records are normalized
#   archive.py      pre-signed download + gunzip + NDJSON parsing
#   errors.py       exception taxonomy
#   time_utils.py   timestamp parsing/formatting
# =============================================================================
