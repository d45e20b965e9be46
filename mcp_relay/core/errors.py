# mcp_relay/core/errors.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — Error taxonomy
------------------------------
Every exception the relay raises on purpose lives here so the HTTP layer
can translate them in one place:

    NoActiveConnection   -> 400 {"error": ...}
    InvalidMessage       -> 400 {"error": ...}
    DeliveryFailed       -> 500 {"error": ...}

Connection-level errors (HandlerBindError, ChannelClosedError) never reach
an HTTP response; they close the affected stream instead.
"""

from __future__ import annotations

from typing import Optional


class RelayError(Exception):
    """Base class for all relay errors."""


class DuplicateSessionError(RelayError):
    """A session id is already registered."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session already registered: {session_id}")
        self.session_id = session_id


class NoActiveConnection(RelayError):
    """No open stream could be resolved for an inbound message."""

    def __init__(self, session_id: Optional[str] = None) -> None:
        super().__init__("No active SSE connection found")
        self.session_id = session_id


class DeliveryFailed(RelayError):
    """The protocol handler or the stream failed while delivering a message."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class InvalidMessage(RelayError):
    """The request body is not a JSON-RPC 2.0 message."""


class HandlerBindError(RelayError):
    """The protocol handler could not be attached to a new stream."""


class ChannelClosedError(RelayError):
    """Write attempted on an SSE channel that has already ended."""


class ToolError(Exception):
    """Raised by tool handlers; reported to the client as an errored tool result."""


class BraveSearchError(ToolError):
    """Brave Search is misconfigured or the HTTP call failed."""
