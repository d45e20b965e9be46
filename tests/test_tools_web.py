"""
Tests for mcp_relay/core/tools_web.py and the `search` tool.

requests.get is monkeypatched; nothing here reaches the network.
"""

import json

import pytest
import requests

from mcp_relay.core import tools_web
from mcp_relay.core.errors import BraveSearchError
from mcp_relay.core.tools import SearchInput, build_default_tools, format_number

URL = "https://brave.test/res/v1/web/search"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, reason="OK", text=""):
        self.status_code = status_code
        self._payload = payload
        self.reason = reason
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def fake_get(monkeypatch):
    calls = []

    def install(response=None, exc=None):
        def _get(url, headers=None, params=None, timeout=None):
            calls.append({"url": url, "headers": headers, "params": params, "timeout": timeout})
            if exc is not None:
                raise exc
            return response

        monkeypatch.setattr(tools_web.requests, "get", _get)
        return calls

    return install


class TestBraveWebSearch:

    def test_missing_api_key(self, fake_get):
        calls = fake_get(FakeResponse())

        with pytest.raises(BraveSearchError, match="BRAVE_API_KEY environment variable is not set"):
            tools_web.brave_web_search("q", 5, api_key=None, base_url=URL)

        assert calls == []

    def test_sends_token_and_query(self, fake_get):
        results = [{"title": "Python", "url": "https://python.org"}]
        calls = fake_get(FakeResponse(payload={"web": {"results": results}}))

        found = tools_web.brave_web_search("python asyncio", 3, api_key="k", base_url=URL, timeout=2.0)

        assert found == results
        assert calls[0]["headers"] == {"X-Subscription-Token": "k", "Accept": "application/json"}
        assert calls[0]["params"] == {"q": "python asyncio", "count": 3}
        assert calls[0]["timeout"] == 2.0

    def test_missing_web_block_is_empty(self, fake_get):
        fake_get(FakeResponse(payload={"query": {}}))

        assert tools_web.brave_web_search("q", 5, api_key="k", base_url=URL) == []

    def test_http_error_status(self, fake_get):
        fake_get(FakeResponse(status_code=429, reason="Too Many Requests", text="slow down"))

        with pytest.raises(BraveSearchError, match="Brave search failed: Too Many Requests"):
            tools_web.brave_web_search("q", 5, api_key="k", base_url=URL)

    def test_network_error(self, fake_get):
        fake_get(exc=requests.ConnectionError("dns failure"))

        with pytest.raises(BraveSearchError, match="dns failure"):
            tools_web.brave_web_search("q", 5, api_key="k", base_url=URL)

    def test_non_json_body(self, fake_get):
        fake_get(FakeResponse(payload=None))

        with pytest.raises(BraveSearchError, match="not JSON"):
            tools_web.brave_web_search("q", 5, api_key="k", base_url=URL)


class TestSearchTool:

    async def test_default_count_and_pretty_json(self, settings, fake_get):
        results = [{"title": "a"}]
        calls = fake_get(FakeResponse(payload={"web": {"results": results}}))
        search = build_default_tools(settings).get("search")

        result = await search.func(SearchInput(query="hello"))

        assert calls[0]["params"]["count"] == settings.search_default_count
        assert calls[0]["url"] == settings.brave_base_url
        assert [item.type for item in result] == ["text"]
        assert result[0].text == json.dumps(results, indent=2)

    async def test_search_error_propagates_from_tool(self, settings, fake_get):
        fake_get(FakeResponse(status_code=500, reason="Server Error"))
        search = build_default_tools(settings).get("search")

        with pytest.raises(BraveSearchError):
            await search.func(SearchInput(query="hello", count=2))


@pytest.mark.parametrize(
    "value, expected",
    [(3.0, "3"), (0.1 + 0.2, "0.30000000000000004"), (-2.5, "-2.5")],
)
def test_format_number(value, expected):
    assert format_number(value) == expected
