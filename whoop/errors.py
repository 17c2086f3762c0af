"""
Errors raised by the Whoop connector.

Every error carries a human-readable message suitable for showing to the user.
"""


class WhoopError(Exception):
    pass


class StateMismatch(WhoopError):
    """Callback state did not match the stored nonce (possible forged callback)."""

    def __init__(self, message: str = "State mismatch - possible CSRF attack"):
        super().__init__(message)


class NotAuthenticated(WhoopError):
    def __init__(self, message: str = "Not authenticated with Whoop"):
        super().__init__(message)


class AuthenticationExpired(WhoopError):
    """The issuer rejected our refresh token. All local token state is gone."""

    def __init__(self, message: str = "Authentication expired. Please reconnect."):
        super().__init__(message)


class ApiRequestFailed(WhoopError):
    def __init__(self, status_code: int, body=None, message: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"API request failed: {status_code}")


class RelayUnreachable(WhoopError):
    def __init__(self, message: str = "Whoop relay unreachable"):
        super().__init__(message)
