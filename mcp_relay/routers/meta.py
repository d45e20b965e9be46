# mcp_relay/routers/meta.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — meta router
---------------------------
Endpoints that are not part of the MCP transport:

- GET /        static service metadata
- GET /health  liveness + number of open streams
- GET /debug   echoes the request back (for debugging proxies)
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from mcp_relay.core.config import MESSAGES_PATH, SSE_PATH, Settings
from mcp_relay.models.status import HealthStatus, ServiceStatus
from mcp_relay.routers.deps import get_registry, get_settings
from mcp_relay.runtime_state import SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["meta"])


@router.get("/", response_model=ServiceStatus)
async def root(settings: Settings = Depends(get_settings)) -> ServiceStatus:
    return ServiceStatus(
        name=settings.app_name,
        endpoints={"sse": SSE_PATH, "messages": MESSAGES_PATH},
        docs=settings.docs_url,
    )


@router.get("/health", response_model=HealthStatus)
async def health_check(
    settings: Settings = Depends(get_settings),
    registry: SessionRegistry = Depends(get_registry),
) -> HealthStatus:
    return HealthStatus(environment=settings.environment, active_sessions=len(registry))


@router.get("/debug")
async def debug_request(request: Request) -> Dict[str, Any]:
    """
    Echo headers, method, url and query parameters.

    Useful when a proxy in front of the relay rewrites or strips things
    (the classic case: a missing sessionId).
    """
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return {
        "headers": dict(request.headers),
        "method": request.method,
        "url": url,
        "query": dict(request.query_params),
    }
