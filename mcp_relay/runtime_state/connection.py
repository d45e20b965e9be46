# mcp_relay/runtime_state/connection.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — Streaming connection
------------------------------------
One open `GET /sse` stream.

An `SSEChannel` is the writable side of the stream: frames are pushed onto
an asyncio.Queue and the StreamingResponse body iterator drains it. The
`StreamingConnection` ties a channel to its session id, its keepalive task
and its lifecycle state.

Frame helpers
~~~~~~~~~~~~~
    format_comment("ping")                -> ":ping\\n\\n"
    format_event("message", '{"id": 1}')  -> "event: message\\ndata: {...}\\n\\n"
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Optional

from mcp_relay.core.errors import ChannelClosedError

# e.g. starlette's Request.is_disconnected
DisconnectProbe = Callable[[], Awaitable[bool]]


def format_comment(text: str) -> str:
    """SSE comment frame; clients ignore it, proxies see traffic."""
    return f":{text}\n\n"


def format_event(event: str, data: str) -> str:
    """SSE event frame. Multi-line data is split over several `data:` lines."""
    lines = "".join(f"data: {line}\n" for line in data.splitlines() or [""])
    return f"event: {event}\n{lines}\n"


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class SSEChannel:
    """Queue-backed writable stream handle."""

    _END = None

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._ended = False
        self.frames_written = 0

    @property
    def ended(self) -> bool:
        return self._ended

    def is_writable(self) -> bool:
        return not self._ended

    def write(self, frame: str) -> None:
        if self._ended:
            raise ChannelClosedError("SSE channel already ended")
        self._queue.put_nowait(frame)
        self.frames_written += 1

    def end(self) -> None:
        """Release the channel. Safe to call more than once."""
        if self._ended:
            return
        self._ended = True
        self._queue.put_nowait(self._END)

    async def frames(self) -> AsyncIterator[str]:
        """Yield frames until the channel is ended."""
        while True:
            frame = await self._queue.get()
            if frame is self._END:
                return
            yield frame


class StreamingConnection:
    """
    One session: id + channel + keepalive task + state.

    Only the ConnectionManager mutates `state` and `keepalive_task`; the
    router treats connections as read-only delivery targets.
    """

    def __init__(
        self,
        session_id: str,
        channel: Optional[SSEChannel] = None,
        disconnect_probe: Optional[DisconnectProbe] = None,
    ) -> None:
        self.session_id = session_id
        self.channel = channel if channel is not None else SSEChannel()
        self.state = ConnectionState.CONNECTING
        self.keepalive_task: Optional[asyncio.Task] = None
        self.close_reason: Optional[str] = None
        self._disconnect_probe = disconnect_probe

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def is_writable(self) -> bool:
        return self.is_open and self.channel.is_writable()

    async def client_gone(self) -> bool:
        """Ask the transport whether the client has disconnected."""
        if self._disconnect_probe is None:
            return False
        return await self._disconnect_probe()

    def send_comment(self, text: str) -> None:
        self.channel.write(format_comment(text))

    def send_event(self, event: str, data: str) -> None:
        if not self.is_open:
            raise ChannelClosedError(f"Connection {self.session_id} is {self.state.value}")
        self.channel.write(format_event(event, data))

    def __repr__(self) -> str:
        return f"StreamingConnection(session_id={self.session_id!r}, state={self.state.value})"
