"""
Whoop OAuth2 authorization-code flow.

Connect from the command line:
    python main.py connect

This opens the Whoop consent page in a browser, listens on the redirect URI
for the callback, checks the returned state against the nonce we stored,
and exchanges the code for tokens through the relay.
"""

import asyncio
import logging
import secrets
import string
import time
import urllib.parse
import webbrowser
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable

from config.settings import (
    WHOOP_AUTH_URL,
    WHOOP_CLIENT_ID,
    WHOOP_REDIRECT_URI,
    WHOOP_SCOPES,
)
from whoop.errors import StateMismatch, WhoopError
from whoop.relay_client import RelayClient
from whoop.storage import Storage
from whoop.token_store import TokenStore

logger = logging.getLogger(__name__)

STATE_KEY = "whoop_oauth_state"
_STATE_ALPHABET = string.ascii_letters + string.digits
_STATE_LENGTH = 32


@dataclass
class CallbackResult:
    success: bool
    data: dict | None = None
    error: str | None = None


def generate_state() -> str:
    return "".join(secrets.choice(_STATE_ALPHABET) for _ in range(_STATE_LENGTH))


def build_auth_url(state: str, client_id: str = WHOOP_CLIENT_ID, redirect_uri: str = WHOOP_REDIRECT_URI) -> str:
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": WHOOP_SCOPES,
        "state": state,
    }
    return f"{WHOOP_AUTH_URL}?{urllib.parse.urlencode(params, quote_via=urllib.parse.quote)}"


class WhoopAuth:
    def __init__(
        self,
        token_store: TokenStore,
        session_storage: Storage,
        relay: RelayClient,
        navigate: Callable[[str], Any] = webbrowser.open,
        redirect_uri: str = WHOOP_REDIRECT_URI,
    ):
        self._token_store = token_store
        self._session = session_storage
        self._relay = relay
        self._navigate = navigate
        self.redirect_uri = redirect_uri

    def initiate_auth(self) -> str:
        """Store a fresh state nonce and send the user to the Whoop consent page."""
        state = generate_state()
        self._session.set(STATE_KEY, state)
        url = build_auth_url(state, redirect_uri=self.redirect_uri)
        logger.info("Redirecting to Whoop for authorization")
        self._navigate(url)
        return url

    async def handle_callback(self, code: str, state: str) -> CallbackResult:
        saved_state = self._session.get(STATE_KEY)
        # single use, whether or not it matches
        self._session.delete(STATE_KEY)
        if not saved_state or saved_state != state:
            logger.warning("OAuth callback state does not match the stored nonce")
            return CallbackResult(success=False, error=str(StateMismatch()))

        try:
            resp = await self._relay.exchange_code(code, self.redirect_uri)
        except WhoopError as e:
            return CallbackResult(success=False, error=str(e))

        if not resp.ok:
            logger.error(f"Token exchange failed with {resp.status_code}")
            return CallbackResult(
                success=False, error=f"Token exchange failed: {resp.status_code} - {resp.error_message}"
            )
        if not isinstance(resp.body, dict) or not resp.body.get("access_token"):
            return CallbackResult(success=False, error="No access token received")

        self._token_store.save_token(resp.body)
        logger.info("WHOOP connected")
        return CallbackResult(success=True, data=resp.body)

    async def handle_callback_params(self, params: dict[str, str]) -> CallbackResult:
        """Handle the raw query parameters of the redirect back from Whoop."""
        if params.get("error"):
            self._session.delete(STATE_KEY)
            return CallbackResult(success=False, error=f"Authorization denied: {params['error']}")
        code, state = params.get("code"), params.get("state")
        if not code or not state:
            self._session.delete(STATE_KEY)
            return CallbackResult(success=False, error="Missing authorization code or state")
        return await self.handle_callback(code, state)


class _CallbackHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        parsed = urllib.parse.urlparse(self.path)
        params = {k: v[0] for k, v in urllib.parse.parse_qs(parsed.query).items()}
        if "code" in params or "error" in params:
            self.server.callback_params = params
            self.send_response(200)
            self.end_headers()
            self.wfile.write(b"<h2>Whoop responded. You can close this tab.</h2>")
        else:
            self.send_response(400)
            self.end_headers()
            self.wfile.write(b"Missing code parameter.")

    def log_message(self, *args):
        pass  # suppress server logs


def wait_for_callback(redirect_uri: str = WHOOP_REDIRECT_URI, timeout: float = 120) -> dict[str, str] | None:
    """Serve the redirect URI locally until Whoop calls back or the timeout passes."""
    parsed = urllib.parse.urlparse(redirect_uri)
    server = HTTPServer((parsed.hostname or "localhost", parsed.port or 80), _CallbackHandler)
    server.callback_params = None
    server.timeout = 1
    deadline = time.monotonic() + timeout
    logger.info(f"Waiting for OAuth callback on {redirect_uri} ...")
    try:
        # browser may send favicon etc. first
        while server.callback_params is None and time.monotonic() < deadline:
            server.handle_request()
    finally:
        server.server_close()
    return server.callback_params


async def run_oauth_flow(auth: WhoopAuth, timeout: float = 120) -> CallbackResult:
    """Interactive flow: open the browser, capture the redirect, store tokens."""
    url = auth.initiate_auth()
    print(f"\nOpening browser for Whoop auth...\nIf it doesn't open: {url}\n")
    params = await asyncio.to_thread(wait_for_callback, auth.redirect_uri, timeout)
    if params is None:
        return CallbackResult(success=False, error="No auth code received. Timed out.")
    return await auth.handle_callback_params(params)
