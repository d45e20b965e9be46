# mcp_relay/routers/sse.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — /sse router
---------------------------
Opens the long-lived event stream for one MCP client.

Frames the client sees, in order:

    :keepalive                       (forces headers through proxies)

    event: endpoint
    data: /messages?sessionId=<id>   (where to POST JSON-RPC)

    event: message                   (one per JSON-RPC reply)
    data: {...}

    :ping                            (every keepalive_interval_s)
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.types import Receive, Scope, Send

from mcp_relay.core.config import SSE_PATH
from mcp_relay.core.errors import DuplicateSessionError
from mcp_relay.models.status import ErrorBody
from mcp_relay.routers.deps import get_connection_manager
from mcp_relay.runtime_state import ConnectionManager, StreamingConnection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sse"])

# Headers required for SSE behind nginx-style proxies.
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class SessionStreamResponse(StreamingResponse):
    """
    StreamingResponse that closes its connection when the response ends.

    On ASGI 2.4 servers a failed `send` raises ClientDisconnect and the
    body iterator is never finalized.
    """

    def __init__(self, manager: ConnectionManager, connection: StreamingConnection) -> None:
        super().__init__(
            manager.stream(connection),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )
        self.manager = manager
        self.connection = connection

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.manager.close(self.connection, reason="client disconnected")


@router.get(SSE_PATH, summary="Open an MCP event stream")
async def sse_endpoint(
    request: Request,
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """
    Register a new session and stream its frames until either side hangs up.

    The client learns its session id from the `endpoint` event.
    """
    try:
        connection = manager.open_connection(disconnect_probe=request.is_disconnected)
    except DuplicateSessionError as exc:
        logger.error("Refusing SSE connection: %s", exc)
        return JSONResponse(status_code=500, content=ErrorBody(error=str(exc)).model_dump())

    return SessionStreamResponse(manager, connection)
