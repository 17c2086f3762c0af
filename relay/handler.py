"""
Server-side relay for Whoop (Lambda function URL handler).

Holds the client secret so it never reaches the browser/CLI, and proxies
API calls so the caller never talks to Whoop directly. The JSON body's
`action` picks the route:

    {"action": "api", "endpoint": "/recovery", "accessToken": "..."}
    {"action": "refresh", "refresh_token": "..."}
    {"code": "...", "redirect_uri": "..."}          # authorization code exchange
"""

import asyncio
import base64
import json
import logging

import httpx

from config.settings import (
    RELAY_TIMEOUT_SECONDS,
    WHOOP_API_BASE,
    WHOOP_CLIENT_ID,
    WHOOP_TOKEN_URL,
    require,
)

logger = logging.getLogger(__name__)

HEADERS = {"Content-Type": "application/json"}


def _response(status_code: int, body) -> dict:
    return {"statusCode": status_code, "headers": HEADERS, "body": json.dumps(body)}


async def _proxy_api(client: httpx.AsyncClient, body: dict) -> dict:
    endpoint, access_token = body.get("endpoint"), body.get("accessToken")
    if not endpoint or not access_token:
        return _response(400, {"error": "Missing endpoint or accessToken"})

    url = f"{WHOOP_API_BASE}{endpoint}"
    logger.info(f"Calling Whoop API: {url}")
    resp = await client.get(url, headers={"Authorization": f"Bearer {access_token}"})
    logger.info(f"Whoop API response status: {resp.status_code}")
    try:
        data = resp.json()
    except ValueError:
        return _response(
            resp.status_code,
            {"error": "Whoop API error", "status": resp.status_code, "response": resp.text, "url": url},
        )
    return _response(resp.status_code, data)


async def _token_request(client: httpx.AsyncClient, form: dict, failure: str) -> dict:
    form = {**form, "client_id": WHOOP_CLIENT_ID, "client_secret": require("WHOOP_CLIENT_SECRET")}
    resp = await client.post(WHOOP_TOKEN_URL, data=form)
    try:
        data = resp.json()
    except ValueError:
        data = {"response": resp.text}
    if resp.is_error:
        logger.error(f"{failure}: {resp.status_code}")
        return _response(resp.status_code, {"error": failure, "details": data})
    return _response(200, data)


async def _refresh(client: httpx.AsyncClient, body: dict) -> dict:
    refresh_token = body.get("refresh_token")
    if not refresh_token:
        return _response(400, {"error": "Missing refresh_token"})
    return await _token_request(
        client,
        {"grant_type": "refresh_token", "refresh_token": refresh_token, "scope": "offline"},
        "Token refresh failed",
    )


async def _exchange_code(client: httpx.AsyncClient, body: dict) -> dict:
    code, redirect_uri = body.get("code"), body.get("redirect_uri")
    if not code or not redirect_uri:
        return _response(400, {"error": "Missing code or redirect_uri"})
    return await _token_request(
        client,
        {"grant_type": "authorization_code", "code": code, "redirect_uri": redirect_uri},
        "Token exchange failed",
    )


async def handle_event(event: dict, transport: httpx.AsyncBaseTransport | None = None) -> dict:
    try:
        raw = event.get("body") or "{}"
        if event.get("isBase64Encoded"):
            raw = base64.b64decode(raw).decode("utf-8")
        body = json.loads(raw)
        action = body.get("action")
        async with httpx.AsyncClient(timeout=RELAY_TIMEOUT_SECONDS, transport=transport) as client:
            if action == "api":
                return await _proxy_api(client, body)
            if action == "refresh":
                return await _refresh(client, body)
            return await _exchange_code(client, body)
    except Exception as e:
        logger.exception("Relay error")
        return _response(500, {"error": str(e)})


def handler(event, context):
    """AWS Lambda entry point."""
    return asyncio.run(handle_event(event))
