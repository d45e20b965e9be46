# mcp_relay/routers/messages.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — /messages router
--------------------------------
Out-of-band half of the transport: clients POST JSON-RPC messages here
and read the replies on their SSE stream.

Flow:
  HTTP POST /messages?sessionId=<id>   (legacy alias: connectionId)
    -> MessageRouter.route(session_id, body)
       - exact session lookup, or any open stream when no id is given
       - McpProtocolHandler.handle_message() queues it for the session's MCP server
    -> 202 "Accepted"   (the reply follows on the SSE stream)

Errors:
  400 {"error": "No active SSE connection found"}   nothing to deliver to
  400 {"error": "..."}                              body is not JSON-RPC
  500 {"error": "..."}                              delivery failed
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from mcp_relay.core.config import MESSAGES_PATH
from mcp_relay.core.errors import DeliveryFailed, InvalidMessage, NoActiveConnection
from mcp_relay.core.router import MessageRouter
from mcp_relay.models.status import ErrorBody
from mcp_relay.routers.deps import get_message_router

logger = logging.getLogger(__name__)

router = APIRouter(tags=["messages"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorBody(error=message).model_dump())


@router.post(MESSAGES_PATH, summary="Deliver a JSON-RPC message to an open stream")
async def post_message(
    request: Request,
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    connection_id: Optional[str] = Query(default=None, alias="connectionId"),
    message_router: MessageRouter = Depends(get_message_router),
):
    # Prefer the standard name; fall back to the legacy alias.
    session_id = session_id or connection_id

    logger.info("Received message request with sessionId: %s", session_id)
    logger.debug("Available sessions: %s", message_router.registry.session_ids())

    try:
        payload = await request.json()
    except ValueError as exc:
        logger.warning("Rejecting non-JSON message body: %s", exc)
        return _error(400, f"Invalid JSON: {exc}")

    logger.debug("Message body: %s", json.dumps(payload))

    try:
        result = await message_router.route(session_id, payload)
    except NoActiveConnection as exc:
        return _error(400, str(exc))
    except InvalidMessage as exc:
        logger.warning("Invalid message for session %s: %s", session_id or "any", exc)
        return _error(400, str(exc))
    except DeliveryFailed as exc:
        logger.error("Error processing message: %s", exc)
        return _error(500, str(exc))

    logger.debug(
        "Delivered to %s (fallback=%s)",
        result.session_id,
        result.used_fallback,
    )
    return PlainTextResponse("Accepted", status_code=202)
