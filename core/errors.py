# =============================================================================
# core/errors.py  -  Exception taxonomy
# =============================================================================
#
# Every failure the client can produce is a TelemetryError.  The tools layer
# catches these (and anything else) and turns them into "Error: ..." text, so
# none of them ever reaches the MCP transport.
#
# ConfigurationError is the odd one out: it only happens at startup and is
# fatal.
# =============================================================================


class ConfigurationError(Exception):
    """Required configuration is missing or invalid."""


class TelemetryError(Exception):
    """A call to the observability API failed."""


class NotFoundError(TelemetryError):
    """The requested entity or trace does not exist upstream."""


class NotSupportedError(TelemetryError):
    """The upstream API does not offer this operation (it answered 404)."""


class ArchiveDownloadError(TelemetryError):
    """A pre-signed archive URL could not be fetched."""
