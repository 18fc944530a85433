"""
backend/tests/test_http_client.py

Purpose:
    Bounded retry of the provider HTTP client and key-free URL logging.
"""

from __future__ import annotations

import sys

import httpx
import pytest

sys.path.insert(0, "backend")

from tipster.providers.http_client import ResilientClient, _parse_retry_after, _safe_url


def _client(handler, max_retries: int = 1) -> ResilientClient:
    client = ResilientClient("test", max_retries=max_retries, base_delay=0)
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


@pytest.mark.asyncio
async def test_retries_once_on_5xx_then_succeeds():
    statuses = iter([503, 200])

    def handler(request):
        return httpx.Response(next(statuses), json={"ok": True})

    client = _client(handler)
    resp = await client.get("https://example.test/fixtures")
    await client.aclose()

    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_returns_last_response_when_retries_exhausted():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, headers={"Retry-After": "0"})

    client = _client(handler, max_retries=2)
    resp = await client.get("https://example.test/fixtures")
    await client.aclose()

    assert resp.status_code == 500
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_non_retryable_status_is_returned_immediately():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(403)

    client = _client(handler)
    resp = await client.get("https://example.test/fixtures")
    await client.aclose()

    assert resp.status_code == 403
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_network_error_is_raised_after_retries():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    with pytest.raises(httpx.ConnectError):
        await client.get("https://example.test/fixtures")
    await client.aclose()


def test_safe_url_strips_query():
    assert _safe_url("https://api.test/v4/matches?apiKey=secret&x=1") == "https://api.test/v4/matches"


def test_retry_after_header_parsing():
    assert _parse_retry_after(httpx.Response(429, headers={"Retry-After": "7"})) == 7.0
    assert _parse_retry_after(httpx.Response(429, headers={"Retry-After": "soon"})) is None
    assert _parse_retry_after(httpx.Response(429)) is None
