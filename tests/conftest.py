"""Test fixtures — a fresh app and registry per test.

Learn: Testing pattern for the relay:

1. Registry and service tests use FakeConnection (tests/fakes.py), an
   in-memory stand-in that records sends and can fail or close on demand.
2. HTTP tests drive the app through httpx's ASGITransport, with fakes
   registered straight into the app's registry.
3. WebSocket tests use Starlette's TestClient as a context manager so
   every socket and request shares one event loop.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tests.fakes import FakeConnection
from wsrelay.config import MessagePolicy, Settings
from wsrelay.main import create_app
from wsrelay.realtime.registry import ConnectionRegistry


@pytest.fixture()
def settings():
    return Settings(
        message_policy=MessagePolicy.ECHO,
        send_welcome=True,
        welcome_message="Connected to test relay",
        service_name="wsrelay-test",
        client_label="Roku",
    )


@pytest.fixture()
def registry():
    return ConnectionRegistry()


@pytest.fixture()
def app(settings, registry):
    return create_app(settings, registry)


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client bound to the test app (no network, no lifespan)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def connected(registry):
    """Three open fake connections, already registered."""
    connections = [FakeConnection(f"roku-{i}") for i in range(3)]
    for connection in connections:
        await registry.register(connection)
    return connections
