"""
Refresh-token exchange with single-flight deduplication.

Whoop invalidates a refresh token once it is used, so two concurrent
refreshes would leave one caller holding a dead token. All callers that ask
for a refresh while one is running await that same task.
"""

import asyncio
import logging

from whoop.errors import ApiRequestFailed, AuthenticationExpired, NotAuthenticated
from whoop.relay_client import RelayClient
from whoop.token_store import TokenStore

logger = logging.getLogger(__name__)

# Statuses the issuer uses to reject the refresh token itself
_REJECTED_STATUSES = (400, 401)


class TokenRefresher:
    def __init__(self, token_store: TokenStore, relay: RelayClient):
        self._token_store = token_store
        self._relay = relay
        self._in_flight: asyncio.Task | None = None

    @property
    def refreshing(self) -> bool:
        return self._in_flight is not None

    async def refresh(self, refresh_token: str | None = None) -> str:
        """Return a fresh access token, joining an in-flight refresh if there is one."""
        if self._in_flight is None:
            refresh_token = refresh_token or self._token_store.get_refresh_token()
            if not refresh_token:
                raise NotAuthenticated()
            self._in_flight = asyncio.ensure_future(self._run(refresh_token))
        else:
            logger.debug("Joining in-flight WHOOP token refresh")
        # shield: a cancelled waiter must not cancel the refresh other callers share
        return await asyncio.shield(self._in_flight)

    async def _run(self, refresh_token: str) -> str:
        try:
            logger.info("Refreshing WHOOP access token")
            resp = await self._relay.refresh(refresh_token)
            if resp.ok and isinstance(resp.body, dict) and resp.body.get("access_token"):
                self._token_store.save_token(resp.body)
                return resp.body["access_token"]
            if resp.status_code in _REJECTED_STATUSES:
                logger.warning("WHOOP refresh token rejected — re-auth required")
                self._token_store.clear_token()
                raise AuthenticationExpired()
            raise ApiRequestFailed(
                resp.status_code, resp.body, f"Token refresh failed: {resp.error_message}"
            )
        finally:
            self._in_flight = None
