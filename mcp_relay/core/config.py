# mcp_relay/core/config.py
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — Configuration
-----------------------------
Central configuration for the relay server, including:

- app metadata (also reported to MCP clients as serverInfo)
- API host/port
- SSE / message endpoint paths (constants)
- keepalive + delivery timing
- Brave Search credentials for the `search` tool

Values come from the environment or a `.env` file at the project root.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# This file is: <root>/mcp_relay/core/config.py
PACKAGE_DIR: Path = Path(__file__).resolve().parents[1]
ROOT_DIR: Path = PACKAGE_DIR.parent

# Route paths; the endpoint event announces MESSAGES_PATH to clients.
SSE_PATH = "/sse"
MESSAGES_PATH = "/messages"


class Settings(BaseSettings):
    """
    Global configuration for the relay.

    Instantiated once at import time as `settings`; tests build their own
    instances and pass them to `create_app(settings=...)`.
    """

    model_config = SettingsConfigDict(
        env_file=ROOT_DIR / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # --- App / server basics -----------------------------------------------
    app_name: str = "MCP SSE Example Server"
    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False

    api_host: str = "0.0.0.0"
    # ENV: PORT=3001 (API_PORT also accepted)
    api_port: int = Field(
        default=3001,
        validation_alias=AliasChoices("PORT", "API_PORT"),
    )

    cors_enabled: bool = True
    docs_url: str = "https://modelcontextprotocol.io/docs"

    # --- MCP identity -------------------------------------------------------
    server_name: str = "Brave Search Server"
    server_version: str = "1.0.0"

    # --- Transport ----------------------------------------------------------
    # Seconds between ":ping" comment frames on every open stream.
    keepalive_interval_s: float = Field(default=30.0, gt=0)

    # Upper bound for one message delivery; None leaves it to the tools.
    delivery_timeout_s: Optional[float] = Field(default=None, gt=0)

    # --- Brave Search tool ---------------------------------------------------
    # ENV: BRAVE_API_KEY=...
    brave_api_key: Optional[str] = Field(
        default=None,
        description="Subscription token for the Brave Search API (env: BRAVE_API_KEY).",
    )
    brave_base_url: str = "https://api.search.brave.com/res/v1/web/search"
    brave_timeout_s: float = 10.0
    search_default_count: int = 5


# Single global settings instance used by the rest of the app.
settings = Settings()
