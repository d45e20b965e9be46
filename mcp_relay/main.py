# mcp_relay/main.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — FastAPI application entrypoint
----------------------------------------------
This file wires everything together:

- Sets up central logging.
- Builds one SessionRegistry, ConnectionManager, McpProtocolHandler and
  MessageRouter per app and stores them on app.state.
- Adds middleware (CORS).
- Mounts routers:
    * /sse       (GET, SSE)  → opens a session stream
    * /messages  (POST)      → JSON-RPC delivery to a session
    * /, /health, /debug     → meta endpoints
- Closes every open stream when the app shuts down.
- Exposes an ASGI `app` object for uvicorn.

Typical run command (dev):

    uvicorn mcp_relay.main:app --host 0.0.0.0 --port 3001

"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mcp_relay.core.config import MESSAGES_PATH, Settings, settings as default_settings
from mcp_relay.core.protocol import McpProtocolHandler
from mcp_relay.core.router import MessageRouter
from mcp_relay.core.tools import ToolRegistry, build_default_tools
from mcp_relay.routers.messages import router as messages_router
from mcp_relay.routers.meta import router as meta_router
from mcp_relay.routers.sse import router as sse_router
from mcp_relay.runtime_state import ConnectionManager, SessionRegistry
from mcp_relay.utils import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("MCP SSE relay started (env=%s)", app.state.settings.environment)
    try:
        yield
    finally:
        app.state.connections.shutdown()


def create_app(
    settings: Optional[Settings] = None,
    tools: Optional[ToolRegistry] = None,
) -> FastAPI:
    """
    Application factory.

    Every call returns an independent app with its own registry, so tests
    can run several side by side.
    """
    settings = settings or default_settings
    tools = tools if tools is not None else build_default_tools(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.server_version,
        lifespan=lifespan,
    )

    registry = SessionRegistry()
    protocol = McpProtocolHandler(
        tools,
        server_name=settings.server_name,
        server_version=settings.server_version,
        messages_path=MESSAGES_PATH,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.protocol = protocol
    app.state.connections = ConnectionManager(
        registry,
        binder=protocol,
        keepalive_interval_s=settings.keepalive_interval_s,
    )
    app.state.message_router = MessageRouter(
        registry,
        handler=protocol,
        delivery_timeout_s=settings.delivery_timeout_s,
    )

    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(meta_router)
    app.include_router(sse_router)
    app.include_router(messages_router)

    logger.info(
        "FastAPI app created (env=%s, tools=%d, keepalive=%.0fs)",
        settings.environment,
        len(tools),
        settings.keepalive_interval_s,
    )
    return app


setup_logging(debug=default_settings.debug)

# ASGI app for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info("MCP SSE Server running on port %d", default_settings.api_port)
    uvicorn.run(
        "mcp_relay.main:app",
        host=default_settings.api_host,
        port=default_settings.api_port,
        reload=(default_settings.environment != "production"),
    )
