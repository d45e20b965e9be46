# mcp_relay/core/router.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — Message router
------------------------------
Resolves an inbound message to an open stream and hands it to the
protocol handler.

    route(session_id_hint, payload)
      1. registry.lookup_or_fallback(hint)
      2. nothing found              -> NoActiveConnection   (HTTP 400)
      3. handler.handle_message()   -> RoutingResult (reply follows on the stream)
      4. handler/stream failure     -> DeliveryFailed       (HTTP 500)

InvalidMessage from the handler is passed through untouched: a malformed
body is the sender's fault, not a delivery failure.

The router never mutates the registry or a connection's state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from mcp_relay.core.errors import (
    ChannelClosedError,
    DeliveryFailed,
    InvalidMessage,
    NoActiveConnection,
)
from mcp_relay.runtime_state.connection import StreamingConnection
from mcp_relay.runtime_state.registry import SessionRegistry

logger = logging.getLogger(__name__)


class MessageHandler(Protocol):
    async def handle_message(
        self,
        connection: StreamingConnection,
        payload: Any,
    ) -> None: ...


@dataclass
class RoutingResult:
    session_id: str
    used_fallback: bool


class MessageRouter:
    def __init__(
        self,
        registry: SessionRegistry,
        handler: MessageHandler,
        delivery_timeout_s: Optional[float] = None,
    ) -> None:
        self.registry = registry
        self.handler = handler
        self.delivery_timeout_s = delivery_timeout_s

    def resolve(self, session_id_hint: Optional[str]) -> StreamingConnection:
        connection = self.registry.lookup_or_fallback(session_id_hint)
        if connection is None:
            logger.error("No transport found for session: %s", session_id_hint or "any")
            raise NoActiveConnection(session_id_hint)
        return connection

    async def route(self, session_id_hint: Optional[str], payload: Any) -> RoutingResult:
        connection = self.resolve(session_id_hint)
        used_fallback = not session_id_hint

        if not connection.is_open:
            raise DeliveryFailed(f"Connection {connection.session_id} is closed")

        delivery = self.handler.handle_message(connection, payload)
        try:
            if self.delivery_timeout_s is not None:
                await asyncio.wait_for(delivery, timeout=self.delivery_timeout_s)
            else:
                await delivery
        except InvalidMessage:
            raise
        except asyncio.TimeoutError as exc:
            logger.error(
                "Delivery to %s timed out after %.1f s",
                connection.session_id,
                self.delivery_timeout_s,
            )
            raise DeliveryFailed(
                f"Message delivery timed out after {self.delivery_timeout_s} s",
                cause=exc,
            ) from exc
        except ChannelClosedError as exc:
            logger.warning("Stream %s closed during delivery", connection.session_id)
            raise DeliveryFailed(str(exc), cause=exc) from exc
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error processing message for %s", connection.session_id)
            raise DeliveryFailed(str(exc) or exc.__class__.__name__, cause=exc) from exc

        return RoutingResult(
            session_id=connection.session_id,
            used_fallback=used_fallback,
        )
