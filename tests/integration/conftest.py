"""Fixtures for integration tests."""

from __future__ import annotations

import socket
from collections.abc import AsyncGenerator

import pytest

from fishbowl_link.config import FishbowlConfig
from tests.helpers.fake_server import FakeFishbowlServer


@pytest.fixture
async def fishbowl_server() -> AsyncGenerator[FakeFishbowlServer]:
    """Fixture providing a fake Fishbowl server with the default handler."""
    server = FakeFishbowlServer()
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
def client_config(fishbowl_server: FakeFishbowlServer) -> FishbowlConfig:
    return FishbowlConfig(
        host=fishbowl_server.host,
        port=fishbowl_server.port,
        connect_timeout=1.0,
        request_timeout=5.0,
        max_connect_attempts=2,
    )


@pytest.fixture
def closed_port() -> int:
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
