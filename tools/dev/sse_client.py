#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
MCP SSE Relay — Dev console client (/sse + /messages)
-----------------------------------------------------
Interactive console tool for poking the relay by hand.

Features:
- Opens GET /sse in a background thread and prints every frame it gets
  (endpoint event, JSON-RPC replies, keepalive pings with --show-pings).
- Sends `initialize` as soon as the endpoint event arrives.
- Simple REPL for JSON-RPC calls over POST /messages:

      /tools                 tools/list
      /add 2 3               tools/call add
      /search <query> [n]    tools/call search
      /ping                  ping
      /nosession             toggle omitting sessionId (tests the fallback)
      /quit

This client is meant for development / testing on your laptop.
"""

from __future__ import annotations

import argparse
import itertools
import json
import sys
import threading
from typing import Any, Dict, Optional

import requests

DEFAULT_SERVER = "http://127.0.0.1:3001"


# ---------------------------------------------------------------------------
# CLI argument parsing
# ---------------------------------------------------------------------------


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="MCP SSE Relay — Dev console client",
    )
    parser.add_argument(
        "--server",
        type=str,
        default=DEFAULT_SERVER,
        help=f"Relay base URL (default: {DEFAULT_SERVER})",
    )
    parser.add_argument(
        "--show-pings",
        action="store_true",
        help="Print keepalive comment frames as they arrive.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Timeout in seconds for POST /messages (default: 10).",
    )
    return parser.parse_args()


# ---------------------------------------------------------------------------
# SSE reader thread
# ---------------------------------------------------------------------------


class StreamReader(threading.Thread):
    """Reads /sse and remembers the message endpoint it announces."""

    def __init__(self, server: str, show_pings: bool = False) -> None:
        super().__init__(daemon=True)
        self.server = server.rstrip("/")
        self.show_pings = show_pings
        self.endpoint: Optional[str] = None
        self.endpoint_ready = threading.Event()
        self.closed = threading.Event()

    def run(self) -> None:
        try:
            with requests.get(f"{self.server}/sse", stream=True, timeout=(5, None)) as resp:
                resp.raise_for_status()
                event = "message"
                data_lines = []
                for line in resp.iter_lines(decode_unicode=True):
                    if line is None:
                        continue
                    if line.startswith(":"):
                        if self.show_pings:
                            print(f"\n[sse] {line}")
                        continue
                    if line.startswith("event:"):
                        event = line[len("event:"):].strip()
                    elif line.startswith("data:"):
                        data_lines.append(line[len("data:"):].strip())
                    elif line == "" and data_lines:
                        self._dispatch(event, "\n".join(data_lines))
                        event, data_lines = "message", []
        except requests.RequestException as exc:
            print(f"\n[sse] stream error: {exc}")
        finally:
            self.closed.set()
            self.endpoint_ready.set()
            print("\n[sse] stream closed")

    def _dispatch(self, event: str, data: str) -> None:
        if event == "endpoint":
            self.endpoint = data
            self.endpoint_ready.set()
            print(f"[sse] endpoint: {data}")
            return

        try:
            message = json.loads(data)
        except json.JSONDecodeError:
            print(f"\n[sse] {event}: {data}")
            return

        if "error" in message:
            err = message["error"]
            print(f"\n[reply #{message.get('id')}] error {err.get('code')}: {err.get('message')}")
            return

        result = message.get("result", {})
        content = result.get("content") if isinstance(result, dict) else None
        if content:
            flag = " (tool error)" if result.get("isError") else ""
            for item in content:
                print(f"\n[reply #{message.get('id')}]{flag} {item.get('text')}")
        else:
            print(f"\n[reply #{message.get('id')}] {json.dumps(result, indent=2)}")


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------

_ids = itertools.count(1)


def build_request(method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"jsonrpc": "2.0", "id": next(_ids), "method": method}
    if params is not None:
        payload["params"] = params
    return payload


def parse_command(text: str) -> Optional[Dict[str, Any]]:
    """Turn a REPL line into a JSON-RPC request, or None if unknown."""
    parts = text.split()
    cmd, rest = parts[0].lower(), parts[1:]

    if cmd == "/tools":
        return build_request("tools/list")
    if cmd == "/ping":
        return build_request("ping")
    if cmd == "/add" and len(rest) == 2:
        try:
            a, b = float(rest[0]), float(rest[1])
        except ValueError:
            return None
        return build_request("tools/call", {"name": "add", "arguments": {"a": a, "b": b}})
    if cmd == "/search" and rest:
        arguments: Dict[str, Any] = {"query": " ".join(rest)}
        if len(rest) > 1 and rest[-1].isdigit():
            arguments = {"query": " ".join(rest[:-1]), "count": int(rest[-1])}
        return build_request("tools/call", {"name": "search", "arguments": arguments})
    return None


def post(args: argparse.Namespace, url: str, payload: Dict[str, Any]) -> None:
    try:
        resp = requests.post(url, json=payload, timeout=args.timeout)
    except requests.RequestException as exc:
        print(f"[client] POST failed: {exc}")
        return
    if resp.status_code != 202:
        print(f"[client] HTTP {resp.status_code}: {resp.text}")


# ---------------------------------------------------------------------------
# REPL
# ---------------------------------------------------------------------------


def run(args: argparse.Namespace) -> None:
    base = args.server.rstrip("/")
    reader = StreamReader(base, show_pings=args.show_pings)
    reader.start()

    print(f"Connecting to '{base}/sse' ...")
    reader.endpoint_ready.wait(timeout=10)
    if reader.endpoint is None:
        print("[client] No endpoint event received; is the server running?")
        return

    with_session = f"{base}{reader.endpoint}"
    without_session = f"{base}{reader.endpoint.split('?', 1)[0]}"
    omit_session = False

    post(args, with_session, build_request(
        "initialize",
        {
            "protocolVersion": "2024-11-05",
            "capabilities": {},
            "clientInfo": {"name": "relay-dev-console", "version": "0.1.0"},
        },
    ))
    post(args, with_session, {"jsonrpc": "2.0", "method": "notifications/initialized"})

    print("Type /tools, /add a b, /search <query> [count], /ping, /nosession or /quit.\n")

    while not reader.closed.is_set():
        try:
            text = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            return

        if not text:
            continue
        if text.lower() in {"/quit", "/exit"}:
            print("Bye.")
            return
        if text.lower() == "/nosession":
            omit_session = not omit_session
            print(f"[client] sessionId {'omitted' if omit_session else 'included'}")
            continue

        payload = parse_command(text)
        if payload is None:
            print("[client] Unknown command.")
            continue

        post(args, without_session if omit_session else with_session, payload)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    args = parse_args()
    try:
        run(args)
    except KeyboardInterrupt:
        print("\nBye.")
    sys.exit(0)


if __name__ == "__main__":
    main()
