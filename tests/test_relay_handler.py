import base64
import json
import urllib.parse

import httpx
import pytest

from relay.handler import handle_event


def _event(body: dict) -> dict:
    return {"body": json.dumps(body)}


@pytest.fixture(autouse=True)
def client_secret(monkeypatch):
    monkeypatch.setenv("WHOOP_CLIENT_SECRET", "shh")


@pytest.mark.asyncio
async def test_api_proxies_with_bearer_token() -> None:
    seen = []

    def upstream(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"records": [{"cycle_id": 1}]})

    result = await handle_event(
        _event({"action": "api", "endpoint": "/recovery?limit=25", "accessToken": "tok"}),
        transport=httpx.MockTransport(upstream),
    )

    assert result["statusCode"] == 200
    assert json.loads(result["body"]) == {"records": [{"cycle_id": 1}]}
    assert seen[0].headers["Authorization"] == "Bearer tok"
    assert seen[0].url.path.endswith("/recovery")
    assert seen[0].url.params["limit"] == "25"


@pytest.mark.asyncio
async def test_api_passes_upstream_status_through() -> None:
    def upstream(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Authorization was not valid"})

    result = await handle_event(
        _event({"action": "api", "endpoint": "/cycle", "accessToken": "tok"}),
        transport=httpx.MockTransport(upstream),
    )

    assert result["statusCode"] == 401
    assert json.loads(result["body"]) == {"message": "Authorization was not valid"}


@pytest.mark.asyncio
async def test_api_non_json_upstream() -> None:
    def upstream(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    result = await handle_event(
        _event({"action": "api", "endpoint": "/cycle", "accessToken": "tok"}),
        transport=httpx.MockTransport(upstream),
    )

    body = json.loads(result["body"])
    assert result["statusCode"] == 503
    assert body["error"] == "Whoop API error"
    assert body["response"] == "unavailable"


@pytest.mark.asyncio
async def test_api_missing_fields() -> None:
    result = await handle_event(_event({"action": "api", "endpoint": "/cycle"}))

    assert result["statusCode"] == 400
    assert json.loads(result["body"]) == {"error": "Missing endpoint or accessToken"}


@pytest.mark.asyncio
async def test_refresh_uses_client_secret() -> None:
    forms = []

    def upstream(request: httpx.Request) -> httpx.Response:
        forms.append(dict(urllib.parse.parse_qsl(request.content.decode())))
        return httpx.Response(200, json={"access_token": "a2", "refresh_token": "R2", "expires_in": 3600})

    result = await handle_event(
        _event({"action": "refresh", "refresh_token": "R1"}), transport=httpx.MockTransport(upstream)
    )

    assert result["statusCode"] == 200
    assert json.loads(result["body"])["access_token"] == "a2"
    assert forms[0]["grant_type"] == "refresh_token"
    assert forms[0]["refresh_token"] == "R1"
    assert forms[0]["client_secret"] == "shh"


@pytest.mark.asyncio
async def test_refresh_failure_reports_details() -> None:
    def upstream(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "invalid_grant"})

    result = await handle_event(
        _event({"action": "refresh", "refresh_token": "R1"}), transport=httpx.MockTransport(upstream)
    )

    assert result["statusCode"] == 400
    assert json.loads(result["body"]) == {"error": "Token refresh failed", "details": {"error": "invalid_grant"}}


@pytest.mark.asyncio
async def test_default_action_exchanges_code() -> None:
    forms = []

    def upstream(request: httpx.Request) -> httpx.Response:
        forms.append(dict(urllib.parse.parse_qsl(request.content.decode())))
        return httpx.Response(200, json={"access_token": "a1", "expires_in": 3600})

    result = await handle_event(
        _event({"code": "c", "redirect_uri": "http://localhost:8000/callback"}),
        transport=httpx.MockTransport(upstream),
    )

    assert result["statusCode"] == 200
    assert forms[0]["grant_type"] == "authorization_code"
    assert forms[0]["code"] == "c"
    assert forms[0]["redirect_uri"] == "http://localhost:8000/callback"


@pytest.mark.asyncio
async def test_exchange_missing_code() -> None:
    result = await handle_event(_event({"redirect_uri": "http://localhost:8000/callback"}))

    assert result["statusCode"] == 400
    assert json.loads(result["body"]) == {"error": "Missing code or redirect_uri"}


@pytest.mark.asyncio
async def test_malformed_body_is_a_500() -> None:
    result = await handle_event({"body": "{not json"})

    assert result["statusCode"] == 500
    assert "error" in json.loads(result["body"])


@pytest.mark.asyncio
async def test_base64_encoded_body_is_decoded() -> None:
    def upstream(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"user_id": 7})

    raw = json.dumps({"action": "api", "endpoint": "/user/profile/basic", "accessToken": "tok"})
    event = {"body": base64.b64encode(raw.encode()).decode(), "isBase64Encoded": True}

    result = await handle_event(event, transport=httpx.MockTransport(upstream))

    assert result["statusCode"] == 200
    assert json.loads(result["body"]) == {"user_id": 7}
