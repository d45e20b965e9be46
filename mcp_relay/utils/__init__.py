# mcp_relay/utils/__init__.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — Utility toolbox
-------------------------------
Shared helpers used across the relay:

- logging : central logging configuration
- timers  : small timing helpers

    from mcp_relay.utils import setup_logging, get_logger
"""

from __future__ import annotations

from .logging import (  # noqa: F401
    setup_logging,
    get_logger,
)

from .timers import (  # noqa: F401
    Stopwatch,
)
