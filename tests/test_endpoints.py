"""
HTTP-level tests for the relay app (mcp_relay/main.py + routers).

/messages, /, /health and /debug go through httpx.AsyncClient. The /sse
stream never ends on its own, so it is driven with a hand-rolled ASGI
receive/send pair instead.
"""

import asyncio

import pytest

from helpers import next_frames, open_ready, parse_reply
from mcp_relay.core.errors import DeliveryFailed


def ping(request_id=1):
    return {"jsonrpc": "2.0", "id": request_id, "method": "ping"}


def sse_scope(spec_version):
    return {
        "type": "http",
        "asgi": {"version": "3.0", "spec_version": spec_version},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/sse",
        "raw_path": b"/sse",
        "root_path": "",
        "query_string": b"",
        "headers": [(b"host", b"testserver"), (b"accept", b"text/event-stream")],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }


class TestMessagesEndpoint:

    async def test_scenario_single_then_two_connections(self, app, client):
        manager = app.state.connections
        registry = app.state.registry

        a = await open_ready(manager)

        # Exact id: delivered to A, reply observable on A's stream.
        resp = await client.post("/messages", params={"sessionId": a.session_id}, json=ping(1))
        assert resp.status_code == 202
        assert resp.text == "Accepted"
        assert parse_reply((await next_frames(a, 1))[0])["id"] == 1

        # Unknown id: client error.
        resp = await client.post("/messages", params={"sessionId": "unknown"}, json=ping(2))
        assert resp.status_code == 400
        assert resp.json() == {"error": "No active SSE connection found"}

        # No id while only A is open: falls back to A.
        resp = await client.post("/messages", json=ping(3))
        assert resp.status_code == 202
        assert parse_reply((await next_frames(a, 1))[0])["id"] == 3

        # Client disconnects.
        manager.close(a, reason="client disconnected")
        assert registry.lookup(a.session_id) is None

        # Two open connections, no id: exactly one of them gets the reply.
        b = await open_ready(manager)
        c = await open_ready(manager)
        resp = await client.post("/messages", json=ping(4))
        assert resp.status_code == 202
        await asyncio.sleep(0.1)
        replies = [conn.channel.frames_written - 3 for conn in (b, c)]
        assert sorted(replies) == [0, 1]

    async def test_legacy_connection_id_alias(self, app, client):
        conn = await open_ready(app.state.connections)

        resp = await client.post("/messages", params={"connectionId": conn.session_id}, json=ping())

        assert resp.status_code == 202
        assert parse_reply((await next_frames(conn, 1))[0])["result"] == {}

    async def test_no_connections_at_all(self, client):
        resp = await client.post("/messages", json=ping())

        assert resp.status_code == 400
        assert "No active SSE connection" in resp.json()["error"]

    async def test_tool_call_round_trip(self, app, client):
        conn = await open_ready(app.state.connections)

        resp = await client.post(
            "/messages",
            params={"sessionId": conn.session_id},
            json={
                "jsonrpc": "2.0",
                "id": 10,
                "method": "tools/call",
                "params": {"name": "add", "arguments": {"a": 40, "b": 2}},
            },
        )

        assert resp.status_code == 202
        reply = parse_reply((await next_frames(conn, 1))[0])
        assert reply["result"]["content"] == [{"type": "text", "text": "42"}]

    async def test_invalid_json_body(self, app, client):
        conn = await open_ready(app.state.connections)

        resp = await client.post(
            "/messages",
            params={"sessionId": conn.session_id},
            content=b"{oops",
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        assert "Invalid JSON" in resp.json()["error"]

    async def test_not_json_rpc(self, app, client):
        conn = await open_ready(app.state.connections)

        resp = await client.post("/messages", params={"sessionId": conn.session_id}, json={"a": 1})

        assert resp.status_code == 400
        assert "Invalid JSON-RPC message" in resp.json()["error"]
        assert conn.is_open

    async def test_delivery_failure_is_500(self, app, client, monkeypatch):
        conn = await open_ready(app.state.connections)

        async def broken(session_id, payload):
            raise DeliveryFailed("stream write failed")

        monkeypatch.setattr(app.state.message_router, "route", broken)

        resp = await client.post("/messages", params={"sessionId": conn.session_id}, json=ping())

        assert resp.status_code == 500
        assert resp.json() == {"error": "stream write failed"}

    async def test_closed_stream_is_500(self, app, client):
        conn = await open_ready(app.state.connections)
        conn.channel.end()

        resp = await client.post("/messages", params={"sessionId": conn.session_id}, json=ping())

        assert resp.status_code == 500
        assert "error" in resp.json()


class TestMetaEndpoints:

    async def test_root_status(self, client):
        resp = await client.get("/")

        assert resp.status_code == 200
        assert resp.json() == {
            "status": "online",
            "name": "MCP SSE Example Server",
            "endpoints": {"sse": "/sse", "messages": "/messages"},
            "docs": "https://modelcontextprotocol.io/docs",
        }

    async def test_health_counts_sessions(self, app, client):
        await open_ready(app.state.connections)

        resp = await client.get("/health")

        assert resp.json() == {"status": "ok", "environment": "test", "active_sessions": 1}

    async def test_debug_echoes_request(self, client):
        resp = await client.get("/debug", params={"sessionId": "abc"}, headers={"X-Test": "yes"})
        body = resp.json()

        assert body["method"] == "GET"
        assert body["url"] == "/debug?sessionId=abc"
        assert body["query"] == {"sessionId": "abc"}
        assert body["headers"]["x-test"] == "yes"


class TestSseEndpoint:

    async def test_stream_headers_frames_and_cleanup(self, app):
        registry = app.state.registry
        messages = []
        got_endpoint = asyncio.Event()
        disconnected = asyncio.Event()

        async def receive():
            await disconnected.wait()
            return {"type": "http.disconnect"}

        async def send(message):
            messages.append(message)
            if message["type"] == "http.response.body" and b"event: endpoint" in message.get("body", b""):
                got_endpoint.set()

        task = asyncio.create_task(app(sse_scope("2.3"), receive, send))
        await asyncio.wait_for(got_endpoint.wait(), timeout=2.0)

        start = messages[0]
        headers = {k.decode().lower(): v.decode() for k, v in start["headers"]}
        assert start["status"] == 200
        assert headers["content-type"].startswith("text/event-stream")
        assert headers["cache-control"] == "no-cache"
        assert headers["connection"] == "keep-alive"
        assert headers["x-accel-buffering"] == "no"

        bodies = b"".join(m.get("body", b"") for m in messages[1:]).decode()
        assert bodies.startswith(":keepalive\n\n")
        assert len(registry) == 1
        session_id = registry.session_ids()[0]
        assert f"data: /messages?sessionId={session_id}" in bodies

        disconnected.set()
        await asyncio.wait_for(task, timeout=2.0)

        assert registry.lookup(session_id) is None

    async def test_failed_send_on_asgi_24_closes_session(self, app, client):
        # ASGI 2.4 servers report a gone client by failing `send`, not via receive().
        registry = app.state.registry
        protocol = app.state.protocol
        never = asyncio.Event()

        async def receive():
            await never.wait()
            return {"type": "http.disconnect"}

        async def send(message):
            if message["type"] == "http.response.body" and b"event: endpoint" in message.get("body", b""):
                raise OSError("connection reset by peer")

        # Starlette reports this as ClientDisconnect.
        with pytest.raises(Exception) as exc_info:
            await asyncio.wait_for(app(sse_scope("2.4"), receive, send), timeout=2.0)
        assert not isinstance(exc_info.value, asyncio.TimeoutError)

        assert len(registry) == 0
        assert protocol.active_sessions() == 0

        resp = await client.post("/messages", json=ping())
        assert resp.status_code == 400
