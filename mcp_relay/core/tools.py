# mcp_relay/core/tools.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — Tools
---------------------
Tool registry plus the two tools the server exposes:

- add(a, b)              -> "a + b" as text
- search(query, count?)  -> Brave web results as pretty JSON text

Each tool declares its input shape as a strict pydantic model. The model's
JSON Schema becomes the `inputSchema` of the advertised `mcp.types.Tool`,
and `tools/call` arguments are validated against it before the tool runs.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Type

import mcp.types as types
from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr

from mcp_relay.core.config import Settings
from mcp_relay.core.tools_web import brave_web_search

logger = logging.getLogger(__name__)

ToolFunc = Callable[[Any], Awaitable[Sequence[types.TextContent]]]


def text_content(text: str) -> List[types.TextContent]:
    return [types.TextContent(type="text", text=text)]


@dataclass
class Tool:
    name: str
    input_model: Type[BaseModel]
    func: ToolFunc
    description: Optional[str] = None

    def input_schema(self) -> Dict[str, Any]:
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        return schema

    def definition(self) -> types.Tool:
        """Entry for the `tools/list` result."""
        return types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema(),
        )


class ToolRegistry:
    """Name -> Tool map, filled with the `tool()` decorator."""

    def __init__(self) -> None:
        self._tools: Dict[str, Tool] = {}

    def tool(
        self,
        name: str,
        input_model: Type[BaseModel],
        description: Optional[str] = None,
    ) -> Callable[[ToolFunc], ToolFunc]:
        def decorator(func: ToolFunc) -> ToolFunc:
            if name in self._tools:
                raise ValueError(f"Tool {name} is already registered")
            self._tools[name] = Tool(name, input_model, func, description)
            return func

        return decorator

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def definitions(self) -> List[types.Tool]:
        return [tool.definition() for tool in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)


# ---------------------------------------------------------------------------
# Input shapes
# ---------------------------------------------------------------------------


class AddInput(BaseModel):
    # JSON numbers only: "40" and true are rejected.
    model_config = ConfigDict(extra="forbid")

    a: StrictFloat
    b: StrictFloat


class SearchInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query: StrictStr
    count: Optional[StrictInt] = None


def format_number(value: float) -> str:
    """Render a sum the way a JSON client expects: 3, not 3.0."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


# ---------------------------------------------------------------------------
# Default tool set
# ---------------------------------------------------------------------------


def build_default_tools(settings: Settings) -> ToolRegistry:
    """Registry with `add` and `search`, the latter wired to `settings`."""
    tools = ToolRegistry()

    @tools.tool("add", AddInput, description="Add two numbers")
    async def add(args: AddInput) -> List[types.TextContent]:
        return text_content(format_number(float(args.a + args.b)))

    @tools.tool("search", SearchInput, description="Search the web with Brave Search")
    async def search(args: SearchInput) -> List[types.TextContent]:
        count = args.count if args.count is not None else settings.search_default_count
        logger.info("[search] query=%r count=%d", args.query, count)
        results = await asyncio.to_thread(
            brave_web_search,
            args.query,
            count,
            api_key=settings.brave_api_key,
            base_url=settings.brave_base_url,
            timeout=settings.brave_timeout_s,
        )
        return text_content(json.dumps(results, indent=2))

    return tools
