import logging
import time
from typing import Callable

from config.settings import TOKEN_EXPIRY_BUFFER_SECONDS
from whoop.storage import Storage

logger = logging.getLogger(__name__)

TOKEN_KEY = "whoop_token"
TOKEN_EXPIRY_KEY = "whoop_token_expiry"
REFRESH_TOKEN_KEY = "whoop_refresh_token"


def _now_millis() -> int:
    return int(time.time() * 1000)


class TokenStore:
    """Access token, its expiry (epoch millis) and the refresh token.

    The expiry is stored as issued; the safety buffer only applies on read.
    """

    def __init__(self, storage: Storage, clock: Callable[[], int] = _now_millis):
        self._storage = storage
        self._clock = clock

    def get_access_token(self) -> str | None:
        """Token, or None if missing or within the expiry buffer. Never deletes state."""
        token = self._storage.get(TOKEN_KEY)
        expiry = self._storage.get(TOKEN_EXPIRY_KEY)
        if not token or not expiry:
            return None
        try:
            expires_at = int(expiry)
        except ValueError:
            logger.warning("Stored WHOOP token expiry is not a number — treating token as expired")
            return None
        if self._clock() >= expires_at - TOKEN_EXPIRY_BUFFER_SECONDS * 1000:
            return None
        return token

    def get_refresh_token(self) -> str | None:
        return self._storage.get(REFRESH_TOKEN_KEY) or None

    def save_token(self, token_response: dict) -> None:
        """Persist a token endpoint response. A missing refresh_token keeps the old one."""
        expires_at = self._clock() + int(token_response.get("expires_in", 3600)) * 1000
        self._storage.set(TOKEN_KEY, token_response["access_token"])
        self._storage.set(TOKEN_EXPIRY_KEY, str(expires_at))
        if token_response.get("refresh_token"):
            self._storage.set(REFRESH_TOKEN_KEY, token_response["refresh_token"])
        logger.info("WHOOP tokens saved")

    def clear_token(self) -> None:
        for key in (TOKEN_KEY, TOKEN_EXPIRY_KEY, REFRESH_TOKEN_KEY):
            self._storage.delete(key)
        logger.info("WHOOP tokens cleared")

    def is_connected(self) -> bool:
        return self.get_access_token() is not None or self.get_refresh_token() is not None
