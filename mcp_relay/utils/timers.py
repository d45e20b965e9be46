# mcp_relay/utils/timers.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — timing utilities
--------------------------------
Stopwatch context manager used to log how long tool calls take,
including the ones that raise.
"""

from __future__ import annotations

import logging
import time
from typing import Optional


class Stopwatch:
    """
    Simple stopwatch context manager.

    Example:
        with Stopwatch("tool search", logger):
            await tool.call(arguments)

    This will log something like:
        tool search took 0.237 s

    `elapsed` stays readable after the block exits.
    """

    def __init__(
        self,
        label: str,
        logger: Optional[logging.Logger] = None,
        level: int = logging.INFO,
    ) -> None:
        self.label = label
        self.logger = logger or logging.getLogger(__name__)
        self.level = level
        self.elapsed: float = 0.0
        self._start: float = 0.0

    def __enter__(self) -> "Stopwatch":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.elapsed = time.perf_counter() - self._start
        status = "failed after" if exc_type is not None else "took"
        self.logger.log(self.level, "%s %s %.3f s", self.label, status, self.elapsed)
