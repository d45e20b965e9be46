# mcp_relay/routers/deps.py
# -*- coding: utf-8 -*-
"""
FastAPI dependencies that hand the per-app relay objects to endpoints.

create_app() stores them on app.state; endpoints never import them.
"""

from __future__ import annotations

from fastapi import Request

from mcp_relay.core.config import Settings
from mcp_relay.core.router import MessageRouter
from mcp_relay.runtime_state import ConnectionManager, SessionRegistry


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.connections


def get_message_router(request: Request) -> MessageRouter:
    return request.app.state.message_router
