import os
from dotenv import load_dotenv

load_dotenv()

# Whoop OAuth
WHOOP_CLIENT_ID = os.getenv("WHOOP_CLIENT_ID", "")
WHOOP_REDIRECT_URI = os.getenv("WHOOP_REDIRECT_URI", "http://localhost:8000/callback")
WHOOP_AUTH_URL = "https://api.prod.whoop.com/oauth/oauth2/auth"
WHOOP_TOKEN_URL = "https://api.prod.whoop.com/oauth/oauth2/token"
WHOOP_API_BASE = os.getenv("WHOOP_API_BASE", "https://api.prod.whoop.com/developer/v2")
WHOOP_SCOPES = "read:profile read:recovery read:sleep read:workout read:cycles read:body_measurement offline"

# Relay (server-side token exchange + API proxy)
RELAY_URL = os.getenv("RELAY_URL", "http://localhost:9000/token")
RELAY_TIMEOUT_SECONDS = float(os.getenv("RELAY_TIMEOUT_SECONDS", "30"))

# Token bookkeeping
TOKEN_EXPIRY_BUFFER_SECONDS = 5 * 60

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///jarvis.db")

# Import
DEFAULT_IMPORT_DAYS = int(os.getenv("DEFAULT_IMPORT_DAYS", "7"))


def require(key: str) -> str:
    """Get a required env var — raise at call time, not import time."""
    val = os.getenv(key, "")
    if not val:
        raise RuntimeError(f"Required environment variable not set: {key}")
    return val
