"""
Client for the server-side relay.

The relay keeps the Whoop client secret off this machine and forwards
token exchanges and API calls. All three operations go to one URL and are
told apart by the `action` field of the JSON body.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from config.settings import RELAY_TIMEOUT_SECONDS, RELAY_URL
from whoop.errors import RelayUnreachable

logger = logging.getLogger(__name__)


@dataclass
class RelayResponse:
    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def error_message(self) -> str:
        if isinstance(self.body, dict) and self.body.get("error"):
            details = self.body.get("details")
            return f"{self.body['error']}: {details}" if details else str(self.body["error"])
        return f"Relay returned {self.status_code}"


class RelayClient:
    def __init__(
        self,
        url: str = RELAY_URL,
        timeout: float = RELAY_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def _post(self, payload: dict) -> RelayResponse:
        action = payload.get("action", "exchange")
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(self._url, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"Relay {action} timed out after {self._timeout}s")
            raise RelayUnreachable(f"Whoop relay timed out after {self._timeout}s") from e
        except httpx.RequestError as e:
            logger.error(f"Relay {action} failed: {e}")
            raise RelayUnreachable(f"Whoop relay unreachable: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {"error": "Relay returned a non-JSON response", "response": resp.text}
        logger.info(f"Relay {action} → {resp.status_code}")
        return RelayResponse(status_code=resp.status_code, body=body)

    async def exchange_code(self, code: str, redirect_uri: str) -> RelayResponse:
        return await self._post({"code": code, "redirect_uri": redirect_uri})

    async def refresh(self, refresh_token: str) -> RelayResponse:
        return await self._post({"action": "refresh", "refresh_token": refresh_token})

    async def api(self, endpoint: str, access_token: str) -> RelayResponse:
        return await self._post({"action": "api", "endpoint": endpoint, "accessToken": access_token})
