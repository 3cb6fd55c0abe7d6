"""Shared fixtures: a test config and clients wired to httpx.MockTransport."""

import httpx
import pytest

from core.client import SolarWindsClient
from core.models import TelemetryConfig
from tests.helpers import API_URL


@pytest.fixture
def config():
    return TelemetryConfig(api_token="test-token-123", api_url=API_URL)


@pytest.fixture
def make_client(config):
    """Build a client whose REST (and optionally archive) calls hit handlers."""

    def _make(handler=None, archive_handler=None):
        transport = httpx.MockTransport(handler) if handler else None
        archive_transport = httpx.MockTransport(archive_handler) if archive_handler else None
        return SolarWindsClient(config, transport=transport, archive_transport=archive_transport)

    return _make
