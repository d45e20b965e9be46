"""
Shared helpers for reading frames off SSE channels in tests.
"""

import asyncio
import json
from typing import List, Tuple

from mcp_relay.runtime_state import ConnectionManager, StreamingConnection


async def next_frames(connection: StreamingConnection, count: int, timeout: float = 1.0) -> List[str]:
    """Pull `count` frames off a connection's channel."""
    frames = connection.channel.frames()
    return [await asyncio.wait_for(frames.__anext__(), timeout) for _ in range(count)]


def parse_event(frame: str) -> Tuple[str, str]:
    """Split "event: x\\ndata: y\\n\\n" into (x, y)."""
    event, data = "", []
    for line in frame.strip("\n").split("\n"):
        if line.startswith("event: "):
            event = line[len("event: "):]
        elif line.startswith("data: "):
            data.append(line[len("data: "):])
    return event, "\n".join(data)


def parse_reply(frame: str) -> dict:
    event, data = parse_event(frame)
    assert event == "message"
    return json.loads(data)


async def open_bound(manager: ConnectionManager) -> StreamingConnection:
    """Open a connection and consume its :keepalive + endpoint frames."""
    connection = manager.open_connection()
    await next_frames(connection, 2)
    return connection


async def initialize(protocol, connection: StreamingConnection, version: str = "2024-11-05") -> dict:
    """Run the initialize handshake; returns the initialize reply."""
    await protocol.handle_message(connection, {
        "jsonrpc": "2.0",
        "id": "init",
        "method": "initialize",
        "params": {
            "protocolVersion": version,
            "capabilities": {},
            "clientInfo": {"name": "relay-tests", "version": "0"},
        },
    })
    reply = parse_reply((await next_frames(connection, 1))[0])
    await protocol.handle_message(connection, {"jsonrpc": "2.0", "method": "notifications/initialized"})
    return reply


async def open_ready(manager: ConnectionManager) -> StreamingConnection:
    """open_bound() plus a completed MCP handshake."""
    connection = await open_bound(manager)
    await initialize(manager.binder, connection)
    return connection
