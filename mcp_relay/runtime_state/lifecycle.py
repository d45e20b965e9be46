# mcp_relay/runtime_state/lifecycle.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — Connection lifecycle
------------------------------------
ConnectionManager owns every StreamingConnection from the moment a client
opens `GET /sse` until the stream is gone.

    CONNECTING --open_connection()--> OPEN --close()--> CLOSED

Triggers for close():
- the client disconnects (StreamingResponse stops iterating `stream()`)
- the keepalive task finds the channel unwritable or the client gone
- the protocol handler cannot be bound to the new stream
- server shutdown

close() cancels the keepalive task, removes the registry entry, ends the
channel and releases the protocol session. It runs once, whichever
trigger fires first.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import AsyncIterator, Callable, Optional, Protocol, Set

from mcp_relay.runtime_state.connection import (
    ConnectionState,
    DisconnectProbe,
    StreamingConnection,
)
from mcp_relay.runtime_state.registry import SessionRegistry
from mcp_relay.utils import get_logger

logger = get_logger(__name__)


class Binder(Protocol):
    async def bind(self, connection: StreamingConnection) -> None: ...

    def release(self, connection: StreamingConnection) -> None: ...


def new_session_id() -> str:
    return str(uuid.uuid4())


class ConnectionManager:
    """
    Opens, keeps alive and tears down SSE connections.

    Parameters
    ----------
    registry:
        Registry that holds every OPEN connection.
    binder:
        Protocol handler attached to each new connection (see
        McpProtocolHandler.bind).
    keepalive_interval_s:
        Seconds between ":ping" frames.
    session_id_factory:
        Id generator; uuid4 unless a test supplies its own.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        binder: Binder,
        keepalive_interval_s: float = 30.0,
        session_id_factory: Callable[[], str] = new_session_id,
    ) -> None:
        self.registry = registry
        self.binder = binder
        self.keepalive_interval_s = keepalive_interval_s
        self._session_id_factory = session_id_factory
        self._bind_tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Establishment
    # ------------------------------------------------------------------

    def open_connection(
        self,
        disconnect_probe: Optional[DisconnectProbe] = None,
    ) -> StreamingConnection:
        """
        Create, register and start a new connection.

        The leading ":keepalive" frame is queued before anything else so
        proxies flush the response headers straight away. Handler binding
        runs in the background; a failure there closes the connection.

        Raises DuplicateSessionError if the generated id is already live.
        """
        connection = StreamingConnection(
            self._session_id_factory(),
            disconnect_probe=disconnect_probe,
        )
        connection.send_comment("keepalive")

        connection.state = ConnectionState.OPEN
        try:
            self.registry.register(connection.session_id, connection)
        except Exception:
            connection.state = ConnectionState.CLOSED
            connection.close_reason = "registration failed"
            connection.channel.end()
            raise

        connection.keepalive_task = asyncio.create_task(
            self._keepalive(connection),
            name=f"keepalive-{connection.session_id}",
        )
        bind_task = asyncio.create_task(
            self._bind(connection),
            name=f"bind-{connection.session_id}",
        )
        self._bind_tasks.add(bind_task)
        bind_task.add_done_callback(self._bind_tasks.discard)

        logger.info("New SSE connection established: %s", connection.session_id)
        return connection

    async def _bind(self, connection: StreamingConnection) -> None:
        try:
            await self.binder.bind(connection)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Error connecting server to transport %s: %s",
                connection.session_id,
                exc,
            )
            self.close(connection, reason="handler bind failed")
            return
        logger.info("Server connected to transport: %s", connection.session_id)

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    async def _keepalive(self, connection: StreamingConnection) -> None:
        while True:
            await asyncio.sleep(self.keepalive_interval_s)

            if not connection.is_writable() or await connection.client_gone():
                self.close(connection, reason="channel not writable")
                return

            connection.send_comment("ping")
            logger.debug("Sending keepalive ping for %s", connection.session_id)

    # ------------------------------------------------------------------
    # Streaming + teardown
    # ------------------------------------------------------------------

    async def stream(self, connection: StreamingConnection) -> AsyncIterator[str]:
        """
        Body iterator for the StreamingResponse.

        Ends when the channel is released; if the client goes away first
        the iterator is cancelled and the connection is closed on the way
        out.
        """
        try:
            async for frame in connection.channel.frames():
                yield frame
        finally:
            self.close(connection, reason="client disconnected")

    def close(self, connection: StreamingConnection, reason: str = "closed") -> bool:
        """
        Move a connection to CLOSED and release everything it holds.

        Returns False if it was already closed.
        """
        if connection.state is ConnectionState.CLOSED:
            return False

        connection.state = ConnectionState.CLOSED
        connection.close_reason = reason

        task = connection.keepalive_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

        self.registry.remove(connection.session_id, connection)
        connection.channel.end()
        self.binder.release(connection)

        logger.info("Connection closed: %s (%s)", connection.session_id, reason)
        return True

    def shutdown(self) -> None:
        """Close every open connection; used when the app stops."""
        connections = self.registry.connections()
        for connection in connections:
            self.close(connection, reason="server shutdown")
        for task in list(self._bind_tasks):
            task.cancel()
        if connections:
            logger.info("Closed %d SSE connection(s) on shutdown", len(connections))
