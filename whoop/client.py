"""
Async Whoop API client. Calls go through the relay; tokens are refreshed
before expiry and once more if Whoop rejects a token we believed valid.
"""

import logging
import urllib.parse
from datetime import datetime
from typing import Any

from whoop.errors import ApiRequestFailed, AuthenticationExpired, NotAuthenticated
from whoop.refresher import TokenRefresher
from whoop.relay_client import RelayClient
from whoop.token_store import TokenStore

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2
PAGE_LIMIT = 25


def _fmt(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def build_endpoint(path: str, params: dict[str, Any] | None = None) -> str:
    params = {k: v for k, v in (params or {}).items() if v is not None}
    if not params:
        return path
    return f"{path}?{urllib.parse.urlencode(params)}"


class WhoopClient:
    def __init__(self, token_store: TokenStore, relay: RelayClient, refresher: TokenRefresher | None = None):
        self._token_store = token_store
        self._relay = relay
        self._refresher = refresher or TokenRefresher(token_store, relay)

    async def _access_token(self) -> str:
        token = self._token_store.get_access_token()
        if token:
            return token
        if self._token_store.get_refresh_token():
            return await self._refresher.refresh()
        raise NotAuthenticated()

    async def request(self, endpoint: str) -> Any:
        """GET `endpoint` from the Whoop API and return the parsed body as-is."""
        token = await self._access_token()
        for attempt in range(1, MAX_ATTEMPTS + 1):
            resp = await self._relay.api(endpoint, token)
            if resp.ok:
                return resp.body
            if resp.status_code != 401:
                logger.error(f"Whoop API {endpoint} failed with {resp.status_code}")
                raise ApiRequestFailed(resp.status_code, resp.body)
            if attempt == MAX_ATTEMPTS or not self._token_store.get_refresh_token():
                break
            current = self._token_store.get_access_token()
            if current and current != token:
                # another caller already refreshed
                token = current
                continue
            logger.warning(f"Whoop rejected access token on {endpoint} — refreshing and retrying once")
            token = await self._refresher.refresh()

        self._token_store.clear_token()
        raise AuthenticationExpired()

    async def get_all(self, path: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Fetch all pages of a paginated endpoint."""
        params = dict(params or {})
        results = []
        while True:
            data = await self.request(build_endpoint(path, params))
            results.extend(data.get("records", []))
            next_token = data.get("next_token")
            if not next_token:
                break
            params["nextToken"] = next_token
        return results

    def _range_params(self, start: datetime | None, end: datetime | None) -> dict[str, Any]:
        return {
            "limit": PAGE_LIMIT,
            "start": _fmt(start) if start else None,
            "end": _fmt(end) if end else None,
        }

    # ---- Public API methods ----

    async def get_profile(self) -> dict:
        return await self.request("/user/profile/basic")

    async def get_body_measurement(self) -> dict:
        return await self.request("/user/measurement/body")

    async def get_recovery(self, start: datetime | None = None, end: datetime | None = None) -> dict:
        return await self.request(build_endpoint("/recovery", self._range_params(start, end)))

    async def get_sleep(self, start: datetime | None = None, end: datetime | None = None) -> dict:
        return await self.request(build_endpoint("/activity/sleep", self._range_params(start, end)))

    async def get_workouts(self, start: datetime | None = None, end: datetime | None = None) -> dict:
        return await self.request(build_endpoint("/activity/workout", self._range_params(start, end)))

    async def get_cycles(self, start: datetime | None = None, end: datetime | None = None) -> dict:
        return await self.request(build_endpoint("/cycle", self._range_params(start, end)))
