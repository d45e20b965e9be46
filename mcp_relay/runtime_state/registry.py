# mcp_relay/runtime_state/registry.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — Session registry
--------------------------------
In-memory map of session id -> open StreamingConnection.

Design notes
~~~~~~~~~~~~
- One registry per app instance (built in create_app, stored on
  app.state); nothing here is module-global.
- Assumes a single event loop in a single process. Every method is
  synchronous, so no await point can interleave two mutations.
- Only OPEN connections are stored; ConnectionManager removes an entry in
  the same step that closes its connection.
- `lookup_or_fallback` is the deliberate weak spot: when a client (or a
  proxy in front of it) drops the session id, any open connection is used.
  That is only safe when one client is connected at a time.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from mcp_relay.core.errors import DuplicateSessionError
from mcp_relay.runtime_state.connection import StreamingConnection
from mcp_relay.utils import get_logger

logger = get_logger(__name__)


class SessionRegistry:
    """Session id -> StreamingConnection map with an explicit fallback lookup."""

    def __init__(self) -> None:
        self._connections: Dict[str, StreamingConnection] = {}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def register(self, session_id: str, connection: StreamingConnection) -> None:
        """Insert an entry. Raises DuplicateSessionError if the id is taken."""
        if session_id in self._connections:
            raise DuplicateSessionError(session_id)
        self._connections[session_id] = connection
        logger.debug(
            "[SessionRegistry] Registered %s (%d active)",
            session_id,
            len(self._connections),
        )

    def remove(
        self,
        session_id: str,
        connection: Optional[StreamingConnection] = None,
    ) -> bool:
        """
        Remove an entry; no-op if absent.

        When `connection` is given, the entry is only removed if it still
        maps to that connection. Returns True if something was removed.
        """
        current = self._connections.get(session_id)
        if current is None:
            return False
        if connection is not None and current is not connection:
            return False
        del self._connections[session_id]
        logger.debug(
            "[SessionRegistry] Removed %s (%d active)",
            session_id,
            len(self._connections),
        )
        return True

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, session_id: str) -> Optional[StreamingConnection]:
        """Exact match, or None."""
        return self._connections.get(session_id)

    def lookup_or_fallback(self, session_id: Optional[str]) -> Optional[StreamingConnection]:
        """
        Exact lookup when an id is given; otherwise any open connection.

        Callers must not rely on which connection the fallback picks. Returns
        None when the id is unknown or the registry is empty.
        """
        if session_id:
            return self.lookup(session_id)

        for connection in self._connections.values():
            logger.info(
                "[SessionRegistry] No sessionId provided, using first available: %s",
                connection.session_id,
            )
            return connection
        return None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def session_ids(self) -> List[str]:
        return list(self._connections)

    def connections(self) -> List[StreamingConnection]:
        return list(self._connections.values())

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._connections
