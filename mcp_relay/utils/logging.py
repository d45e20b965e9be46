# mcp_relay/utils/logging.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — logging utilities
---------------------------------
Central logging configuration for the relay server.

We try to:
- Use a consistent format across all modules.
- Honour settings.debug (keepalive ticks and routing details are DEBUG).
- Play nice with Uvicorn/FastAPI logs.
"""

from __future__ import annotations

import logging
import os
from typing import Optional


def setup_logging(
    *,
    debug: bool = False,
    level: Optional[int] = None,
) -> None:
    """
    Configure root logging for the process.

    Parameters
    ----------
    debug:
        If True, default log level becomes DEBUG, otherwise INFO.
        This is typically wired from settings.debug.
    level:
        Optional explicit logging level (overrides debug flag).

    Calling it more than once only adjusts levels.
    """
    base_level = level if level is not None else (logging.DEBUG if debug else logging.INFO)

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(base_level)
        for h in root.handlers:
            h.setLevel(base_level)
        return

    logging.basicConfig(
        level=base_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Access logs get very chatty with one POST per JSON-RPC message.
    for noisy in ("uvicorn.access", "urllib3"):
        logging.getLogger(noisy).setLevel(os.getenv("RELAY_NOISY_LOG_LEVEL", "WARNING"))


def get_logger(name: str) -> logging.Logger:
    """
    Small convenience wrapper around logging.getLogger.

    Usage:
        from mcp_relay.utils import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)
