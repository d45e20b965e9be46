"""
Pytest configuration and fixtures for the MCP SSE relay tests.

Every test gets its own Settings, registry and app; nothing touches the
module-level `settings` or the real Brave API.
"""

import httpx
import pytest

from mcp_relay.core.config import Settings
from mcp_relay.core.protocol import McpProtocolHandler
from mcp_relay.core.router import MessageRouter
from mcp_relay.core.tools import build_default_tools
from mcp_relay.main import create_app
from mcp_relay.runtime_state import ConnectionManager, SessionRegistry


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        environment="test",
        keepalive_interval_s=30.0,
        brave_api_key="test-brave-key",
        brave_base_url="https://brave.test/res/v1/web/search",
    )


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def protocol(settings):
    return McpProtocolHandler(
        build_default_tools(settings),
        server_name=settings.server_name,
        server_version=settings.server_version,
        messages_path="/messages",
    )


@pytest.fixture
async def manager(registry, protocol):
    manager = ConnectionManager(registry, binder=protocol, keepalive_interval_s=30.0)
    yield manager
    manager.shutdown()


@pytest.fixture
def message_router(registry, protocol):
    return MessageRouter(registry, handler=protocol)


@pytest.fixture
async def app(settings):
    app = create_app(settings=settings)
    yield app
    app.state.connections.shutdown()


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

