"""
Armory Web configuration. Read once from the environment at import.
No secrets in this file; client credentials come from env.
"""
import os

# Battle.net application credentials (registered at develop.battle.net)
CLIENT_ID = os.environ.get("BATTLENET_CLIENT_ID", "")
CLIENT_SECRET = os.environ.get("BATTLENET_CLIENT_SECRET", "")

# Callback URL registered with the provider; Battle.net redirects here with ?code=&state=
REDIRECT_URI = os.environ.get("BATTLENET_REDIRECT_URI", "http://localhost:3000/callback")

# OAuth host (authorize + token) and regional game data API host
OAUTH_URL = os.environ.get("BATTLENET_OAUTH_URL", "https://oauth.battle.net").rstrip("/")
API_URL = os.environ.get("BATTLENET_API_URL", "https://us.api.blizzard.com").rstrip("/")

# wow.profile is required for /profile/user/wow and the character endpoints
SCOPE = os.environ.get("BATTLENET_SCOPE", "openid wow.profile")
NAMESPACE = os.environ.get("BATTLENET_NAMESPACE", "profile-us")
LOCALE = os.environ.get("BATTLENET_LOCALE", "en_US")

# Only characters at exactly this level are returned by /api/profile
MAX_LEVEL = int(os.environ.get("ARMORY_MAX_LEVEL", "80"))

# Per downstream call timeout (seconds) and cap on simultaneous calls per profile request
HTTP_TIMEOUT = float(os.environ.get("ARMORY_HTTP_TIMEOUT", "10.0"))
MAX_CONCURRENT_REQUESTS = int(os.environ.get("ARMORY_MAX_CONCURRENT_REQUESTS", "16"))

# Session cookie carries only an opaque id; state and token stay server-side
SESSION_COOKIE = os.environ.get("ARMORY_SESSION_COOKIE", "armory_session")
SESSION_TTL = int(os.environ.get("ARMORY_SESSION_TTL", "86400"))
# Idle sessions are swept from the in-memory store at most this often (seconds)
SESSION_PURGE_INTERVAL = float(os.environ.get("ARMORY_SESSION_PURGE_INTERVAL", "60"))
COOKIE_SECURE = os.environ.get("ARMORY_COOKIE_SECURE", "false").lower() in ("1", "true", "yes")

# Where the browser lands after login / logout
LOGIN_LANDING = "/#login"
LOGOUT_LANDING = "/"

LOG_LEVEL = os.environ.get("ARMORY_LOG_LEVEL", "INFO").upper()

HOST = os.environ.get("ARMORY_HOST", "127.0.0.1")
PORT = int(os.environ.get("ARMORY_PORT", "3000"))
