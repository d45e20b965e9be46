"""
Runtime state package for the MCP SSE relay.

Everything that tracks open SSE streams lives here:

    registry = SessionRegistry()
    manager = ConnectionManager(registry, binder=protocol_handler)

    connection = manager.open_connection()
    # ... StreamingResponse(manager.stream(connection)) ...

    registry.lookup(connection.session_id)   # -> connection while OPEN

Nothing here is global; create_app() builds one set per application.
"""

from .connection import (
    ConnectionState,
    SSEChannel,
    StreamingConnection,
    format_comment,
    format_event,
)
from .registry import SessionRegistry
from .lifecycle import ConnectionManager, new_session_id

__all__ = [
    "ConnectionState",
    "SSEChannel",
    "StreamingConnection",
    "format_comment",
    "format_event",
    "SessionRegistry",
    "ConnectionManager",
    "new_session_id",
]
