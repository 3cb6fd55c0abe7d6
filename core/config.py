# =============================================================================
# core/config.py  -  Configuration loading
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Reads the SOLARWINDS_* environment variables once and freezes them into
#   a TelemetryConfig.  The client receives that object in its constructor
#   and never looks at os.environ itself.
#
# .env FILES:
#   main.py calls load_dotenv() before load_config().  load_dotenv() does
#   not override variables that are already set, so values injected by the
#   MCP host (e.g. a desktop app's server config) win over the .env file.
#
# VARIABLES:
#   SOLARWINDS_API_URL    base URL (default https://api.solarwinds.com)
#   SOLARWINDS_API_TOKEN  bearer token (required)
#   SOLARWINDS_ORG_ID     organization id (optional, currently unused)
# =============================================================================

import logging
import os
from typing import Mapping, Optional

from core.errors import ConfigurationError
from core.models import DEFAULT_API_URL, TelemetryConfig

logger = logging.getLogger(__name__)

ENV_API_URL = "SOLARWINDS_API_URL"
ENV_API_TOKEN = "SOLARWINDS_API_TOKEN"
ENV_ORG_ID = "SOLARWINDS_ORG_ID"


def describe_environment(environ: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Summarize which settings are present, without leaking the token."""
    env = os.environ if environ is None else environ
    token = env.get(ENV_API_TOKEN)
    return {
        ENV_API_URL: "SET" if env.get(ENV_API_URL) else "NOT SET",
        ENV_API_TOKEN: f"SET (length: {len(token)})" if token else "NOT SET",
        ENV_ORG_ID: env.get(ENV_ORG_ID) or "NOT SET",
    }


def load_config(environ: Optional[Mapping[str, str]] = None) -> TelemetryConfig:
    """Build the immutable client configuration from the environment.

    Args:
        environ: Mapping to read from.  Defaults to os.environ; tests pass
                 a plain dict.

    Raises:
        ConfigurationError: if SOLARWINDS_API_TOKEN is missing or empty.
    """
    env = os.environ if environ is None else environ

    token = (env.get(ENV_API_TOKEN) or "").strip()
    if not token:
        raise ConfigurationError(f"{ENV_API_TOKEN} environment variable is required")

    api_url = (env.get(ENV_API_URL) or DEFAULT_API_URL).rstrip("/")
    config = TelemetryConfig(
        api_token=token,
        api_url=api_url,
        organization_id=env.get(ENV_ORG_ID) or None,
    )
    logger.info("Using API URL: %s", config.api_url)
    return config
