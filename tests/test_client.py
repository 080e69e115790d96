from __future__ import annotations

import asyncio

import httpx
import pytest

from browser_toolkit.client import ToolkitClient, ToolkitClientError


def _transport(seen: list[httpx.Request]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.headers.get("API-Key") != "secret":
            return httpx.Response(401, json={"data": None, "error": "Invalid API-Key"})
        if request.url.path == "/api/v1/browser/images":
            return httpx.Response(
                200,
                json={
                    "data": [
                        {"url": "https://cdn/a.png", "alt": "a", "width": 2, "height": 3, "size": 6},
                    ],
                    "error": None,
                },
            )
        if request.url.path == "/api/v1/health/readiness":
            return httpx.Response(503, text="Failed to setup driver")
        return httpx.Response(200, json={"data": "<html></html>", "error": None})

    return httpx.MockTransport(handler)


def test_client_sends_query_and_key() -> None:
    seen: list[httpx.Request] = []
    client = ToolkitClient("http://toolkit/", api_key="secret", transport=_transport(seen))

    html = asyncio.run(client.get_html("https://example.com", delay=250, bypass_paywall=True))

    assert html == "<html></html>"
    request = seen[0]
    assert request.url.path == "/api/v1/browser/html"
    assert request.url.params["url"] == "https://example.com"
    assert request.url.params["delay"] == "250"
    assert request.url.params["bypass_paywall"] == "true"


def test_client_parses_images() -> None:
    client = ToolkitClient("http://toolkit", api_key="secret", transport=_transport([]))

    images = asyncio.run(client.get_images("https://example.com"))

    assert images[0].url == "https://cdn/a.png"
    assert images[0].size == 6


def test_client_raises_with_envelope_error() -> None:
    client = ToolkitClient("http://toolkit", api_key="wrong", transport=_transport([]))

    with pytest.raises(ToolkitClientError) as exc_info:
        asyncio.run(client.get_text("https://example.com"))

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "Invalid API-Key"


def test_client_readiness_failure() -> None:
    client = ToolkitClient("http://toolkit", api_key="secret", transport=_transport([]))

    with pytest.raises(ToolkitClientError) as exc_info:
        asyncio.run(client.readiness())

    assert exc_info.value.status_code == 503
    assert exc_info.value.message == "Failed to setup driver"
