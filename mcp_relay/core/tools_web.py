# mcp_relay/core/tools_web.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — Web search backend
----------------------------------
The only place that knows how to talk to the Brave Search web API.

Used by the `search` tool in mcp_relay/core/tools.py. Everything here is
blocking (requests); the tool runs it in a worker thread.

Design:
- Input params -> list of result dicts.
- Any configuration, network or JSON problem raises BraveSearchError; the
  protocol handler turns that into an errored tool result instead of a
  transport failure.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from mcp_relay.core.errors import BraveSearchError

logger = logging.getLogger(__name__)


def brave_web_search(
    query: str,
    count: int,
    *,
    api_key: Optional[str],
    base_url: str,
    timeout: float = 10.0,
) -> List[Dict[str, Any]]:
    """
    Run a Brave web search and return `web.results`.

    Returns an empty list when the response has no `web` block.

    Raises
    ------
    BraveSearchError
        If the API key is missing, the HTTP call fails, the status is not
        2xx, or the body is not JSON.
    """
    if not api_key:
        raise BraveSearchError("BRAVE_API_KEY environment variable is not set")

    headers = {
        "X-Subscription-Token": api_key,
        "Accept": "application/json",
    }
    params = {"q": query, "count": count}

    try:
        resp = requests.get(base_url, headers=headers, params=params, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Brave search HTTP error for %r: %s", query, exc)
        raise BraveSearchError(f"Brave search failed: {exc}") from exc

    if not resp.ok:
        preview = resp.text[:200].replace("\n", " ")
        logger.warning("Brave search HTTP %s for %r: %s", resp.status_code, query, preview)
        raise BraveSearchError(f"Brave search failed: {resp.reason}")

    try:
        data = resp.json()
    except ValueError as exc:
        logger.warning("Brave search returned non-JSON body for %r", query)
        raise BraveSearchError("Brave search failed: response was not JSON") from exc

    web = data.get("web") if isinstance(data, dict) else None
    results = web.get("results") if isinstance(web, dict) else None
    if not results:
        return []
    return list(results)
