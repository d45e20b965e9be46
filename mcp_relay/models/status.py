# mcp_relay/models/status.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — Meta endpoint models
------------------------------------
Response bodies for `/`, `/health` and the JSON error body returned by
`/messages`.
"""

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, Field


class ServiceStatus(BaseModel):
    """Static service metadata returned by `GET /`."""

    status: str = "online"
    name: str
    endpoints: Dict[str, str] = Field(
        ...,
        description="Relative paths of the SSE and message endpoints.",
    )
    docs: str


class HealthStatus(BaseModel):
    status: str = "ok"
    environment: str
    active_sessions: int


class ErrorBody(BaseModel):
    error: str
