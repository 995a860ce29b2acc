"""Pytest configuration and shared fixtures.

Fixtures are organized by category:
- Config fixtures: Connection and client settings
- Mock fixtures: A fake transport recording every request
- Client fixtures: Connected and disconnected PolarityClient instances
"""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from polarity_rest.api.client import PolarityClient
from polarity_rest.api.transport import RequestSpec, TransportResponse
from polarity_rest.config import ChannelConfig, ConnectionConfig

HOST = "https://polarity.example.com"

# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def connection_config() -> ConnectionConfig:
    """Connection settings pointing at a fake server."""
    return ConnectionConfig(host=HOST, username="analyst", password="secret")


# =============================================================================
# Mock Transport Fixtures
# =============================================================================


def response(status_code: int, body: Any = None) -> TransportResponse:
    """Build a TransportResponse for a mocked transport."""
    return TransportResponse(status_code=status_code, body=body)


def sent_requests(transport: AsyncMock) -> list[RequestSpec]:
    """Return every RequestSpec passed to ``transport.send`` in call order."""
    return [call.args[0] for call in transport.send.await_args_list]


@pytest.fixture
def mock_transport() -> AsyncMock:
    """Create a transport mock.

    ``send`` answers 200 with an empty JSON:API document by default.
    Individual tests override ``send.return_value`` or ``send.side_effect``.

    Example:
        def test_something(mock_transport):
            mock_transport.send.side_effect = [response(200), response(201, {...})]
    """
    transport = AsyncMock()
    transport.send.return_value = response(200, {"data": []})
    return transport


# =============================================================================
# Client Fixtures
# =============================================================================


@pytest.fixture
def client(connection_config: ConnectionConfig, mock_transport: AsyncMock) -> PolarityClient:
    """A client marked as connected, using the mock transport.

    The poll interval is zero so channel clears never sleep.
    """
    polarity = PolarityClient(
        connection_config,
        transport=mock_transport,
        channels=ChannelConfig(clear_poll_interval_ms=0),
    )
    polarity.is_connected = True
    polarity.host = HOST
    return polarity


@pytest.fixture
def disconnected_client(
    connection_config: ConnectionConfig, mock_transport: AsyncMock
) -> PolarityClient:
    return PolarityClient(connection_config, transport=mock_transport)
