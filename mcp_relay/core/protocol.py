# mcp_relay/core/protocol.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — MCP protocol handler
------------------------------------
Attaches an `mcp` low-level Server to every relay connection.

Flow:
  GET /sse
    -> ConnectionManager.open_connection()
    -> McpProtocolHandler.bind(connection)
       writes:  event: endpoint
                data: /messages?sessionId=<id>
       starts:  server.run(inbound, outbound) for this session
  POST /messages?sessionId=<id>  (JSON-RPC body)
    -> MessageRouter.route()
    -> McpProtocolHandler.handle_message(connection, payload)
       validates the envelope, queues it on the session's inbound stream
  server reply
    -> pump writes:  event: message
                     data: {"jsonrpc": "2.0", "id": ..., "result": {...}}

Version negotiation, method dispatch and JSON-RPC error replies are the
SDK's. Replies travel on the stream after POST /messages has already been
answered with 202.

Tool failures are not transport failures: a tool that raises yields a
normal `tools/call` result with `isError: true`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import anyio
import mcp.types as types
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.shared.message import SessionMessage
from pydantic import ValidationError

from mcp_relay.core.errors import ChannelClosedError, HandlerBindError, InvalidMessage, ToolError
from mcp_relay.core.tools import ToolRegistry
from mcp_relay.runtime_state.connection import StreamingConnection
from mcp_relay.utils import Stopwatch

logger = logging.getLogger(__name__)

# Inbound messages buffered per session before POST /messages waits.
INBOUND_BUFFER = 32


@dataclass
class McpSession:
    inbound: MemoryObjectSendStream
    task: asyncio.Task


class McpProtocolHandler:
    """
    One `mcp` Server shared by every connection, one `server.run()` per session.

    Parameters
    ----------
    tools:
        Tools offered through tools/list and tools/call.
    server_name, server_version:
        Reported as serverInfo in the initialize result.
    messages_path:
        Path announced in the endpoint event.
    """

    def __init__(
        self,
        tools: ToolRegistry,
        server_name: str,
        server_version: str,
        messages_path: str = "/messages",
    ) -> None:
        self.tools = tools
        self.messages_path = messages_path
        self.server: Server = Server(server_name, version=server_version)
        self._sessions: Dict[str, McpSession] = {}

        @self.server.list_tools()
        async def list_tools() -> List[types.Tool]:
            return self.tools.definitions()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> Sequence[types.TextContent]:
            return await self.call_tool(name, arguments or {})

    # ------------------------------------------------------------------
    # Transport hooks
    # ------------------------------------------------------------------

    def endpoint_for(self, session_id: str) -> str:
        return f"{self.messages_path}?sessionId={session_id}"

    def initialization_options(self):
        return self.server.create_initialization_options(
            notification_options=NotificationOptions(tools_changed=True),
        )

    async def bind(self, connection: StreamingConnection) -> None:
        """Announce the message endpoint and start the session's server loop."""
        if not connection.is_writable():
            raise HandlerBindError(f"Stream {connection.session_id} is not writable")
        if connection.session_id in self._sessions:
            raise HandlerBindError(f"Session {connection.session_id} is already bound")
        try:
            connection.send_event("endpoint", self.endpoint_for(connection.session_id))
        except ChannelClosedError as exc:
            raise HandlerBindError(str(exc)) from exc

        inbound_writer, inbound_reader = anyio.create_memory_object_stream(INBOUND_BUFFER)
        outbound_writer, outbound_reader = anyio.create_memory_object_stream(0)
        task = asyncio.create_task(
            self._run_session(connection, inbound_reader, outbound_writer, outbound_reader),
            name=f"mcp-{connection.session_id}",
        )
        self._sessions[connection.session_id] = McpSession(inbound_writer, task)

    def release(self, connection: StreamingConnection) -> None:
        """Stop the server loop of a closed connection. Safe to call twice."""
        session = self._sessions.pop(connection.session_id, None)
        if session is None:
            return
        session.inbound.close()
        if not session.task.done():
            session.task.cancel()

    def active_sessions(self) -> int:
        return len(self._sessions)

    async def _run_session(
        self,
        connection: StreamingConnection,
        inbound_reader: MemoryObjectReceiveStream,
        outbound_writer: MemoryObjectSendStream,
        outbound_reader: MemoryObjectReceiveStream,
    ) -> None:
        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(self._pump, connection, outbound_reader)
                await self.server.run(inbound_reader, outbound_writer, self.initialization_options())
        except Exception as exc:  # noqa: BLE001
            logger.error("[MCP] session %s ended with error: %s", connection.session_id, exc)
        finally:
            logger.debug("[MCP] session %s stopped", connection.session_id)

    async def _pump(self, connection: StreamingConnection, outbound_reader: MemoryObjectReceiveStream) -> None:
        async with outbound_reader:
            async for session_message in outbound_reader:
                data = session_message.message.model_dump_json(by_alias=True, exclude_none=True)
                try:
                    connection.send_event("message", data)
                except ChannelClosedError:
                    logger.warning("[MCP] dropping reply for closed stream %s", connection.session_id)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def handle_message(self, connection: StreamingConnection, payload: Any) -> None:
        """
        Hand one inbound JSON-RPC message to `connection`'s server loop.

        Raises
        ------
        InvalidMessage
            `payload` is not a JSON-RPC 2.0 message.
        ChannelClosedError
            The stream or its server loop is already gone.
        """
        message = self.parse(payload)

        session = self._sessions.get(connection.session_id)
        if session is None or not connection.is_writable():
            raise ChannelClosedError(f"Connection {connection.session_id} has no live MCP session")

        try:
            await session.inbound.send(SessionMessage(message))
        except (anyio.ClosedResourceError, anyio.BrokenResourceError) as exc:
            raise ChannelClosedError(f"MCP session {connection.session_id} is closed") from exc

        logger.debug("[MCP] %s <- %s", connection.session_id, getattr(message.root, "method", "response"))

    @staticmethod
    def parse(payload: Any) -> types.JSONRPCMessage:
        if isinstance(payload, (list, tuple)):
            raise InvalidMessage("Message must be a JSON object")
        try:
            if isinstance(payload, (bytes, str)):
                return types.JSONRPCMessage.model_validate_json(payload)
            return types.JSONRPCMessage.model_validate(payload)
        except ValidationError as exc:
            raise InvalidMessage(f"Invalid JSON-RPC message: {exc}") from exc

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> Sequence[types.TextContent]:
        tool = self.tools.get(name)
        if tool is None:
            raise ToolError(f"Tool {name} not found")
        try:
            args = tool.input_model.model_validate(arguments)
        except ValidationError as exc:
            raise ToolError(f"Invalid arguments for tool {name}: {exc}") from exc

        with Stopwatch(f"[MCP] tool {name}", logger):
            return await tool.func(args)
