import json

import httpx
import pytest

from whoop.errors import RelayUnreachable
from whoop.relay_client import RelayClient

RELAY = "https://relay.example/token"


def _client(handler) -> RelayClient:
    return RelayClient(url=RELAY, timeout=5, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_api_action_payload() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"records": []})

    resp = await _client(handler).api("/recovery", "tok")

    assert resp.ok and resp.body == {"records": []}
    assert seen == [{"action": "api", "endpoint": "/recovery", "accessToken": "tok"}]


@pytest.mark.asyncio
async def test_refresh_and_exchange_payloads() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"access_token": "a"})

    client = _client(handler)
    await client.refresh("R")
    await client.exchange_code("c", "http://localhost:8000/callback")

    assert seen == [
        {"action": "refresh", "refresh_token": "R"},
        {"code": "c", "redirect_uri": "http://localhost:8000/callback"},
    ]


@pytest.mark.asyncio
async def test_error_status_is_returned_not_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Token refresh failed", "details": {"error": "invalid_grant"}})

    resp = await _client(handler).refresh("R")

    assert resp.status_code == 400
    assert not resp.ok
    assert resp.error_message.startswith("Token refresh failed")


@pytest.mark.asyncio
async def test_non_json_body_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    resp = await _client(handler).api("/cycle", "tok")

    assert resp.status_code == 502
    assert resp.body["response"] == "<html>Bad Gateway</html>"


@pytest.mark.asyncio
async def test_connection_error_raises_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RelayUnreachable):
        await _client(handler).api("/cycle", "tok")


@pytest.mark.asyncio
async def test_timeout_raises_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(RelayUnreachable, match="timed out"):
        await _client(handler).refresh("R")


@pytest.mark.asyncio
async def test_undecodable_body_raises_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"garbage"))

    with pytest.raises(RelayUnreachable):
        await _client(handler).api("/cycle", "tok")
