"""
Application configuration from environment variables.

Load with python-dotenv in main so env vars are available before imports.
Secrets needed at startup (JWT_SECRET, TOKEN_ENCRYPTION_KEY) raise RuntimeError
at module load. Google OAuth client values are optional here and are checked
where they are used (see get_oauth_settings / ConfigurationMissing).
"""
import os
from dataclasses import dataclass

# --- Required (raise if missing) ---
JWT_SECRET = os.getenv("JWT_SECRET")
TOKEN_ENCRYPTION_KEY = os.getenv("TOKEN_ENCRYPTION_KEY")

for name, val in [
    ("JWT_SECRET", JWT_SECRET),
    ("TOKEN_ENCRYPTION_KEY", TOKEN_ENCRYPTION_KEY),
]:
    if not val or not str(val).strip():
        raise RuntimeError(f"Required env var {name} is missing or empty")

JWT_ALGORITHM = "HS256"

# --- Google OAuth client (validated lazily) ---
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", "")

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URI = "https://openidconnect.googleapis.com/v1/userinfo"
DRIVE_API_URL = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"

GOOGLE_SCOPES = (
    "openid",
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
)


def _int_env(key: str, default: int, minimum: int = 0) -> int:
    try:
        return max(minimum, int(os.getenv(key, str(default))))
    except ValueError:
        return default


# --- Optional with defaults ---
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")

# Session rows created at OAuth callback stay valid this long
SESSION_TTL_HOURS = _int_env("SESSION_TTL_HOURS", 24, minimum=1)

# Access tokens expiring within this window are refreshed before use
TOKEN_REFRESH_BUFFER_SECONDS = _int_env("TOKEN_REFRESH_BUFFER_SECONDS", 300)

# OAuth CSRF: cookie name for state parameter, short-lived
OAUTH_STATE_COOKIE_NAME = os.getenv("OAUTH_STATE_COOKIE_NAME", "oauth_state")
OAUTH_STATE_MAX_AGE = 600  # 10 minutes

# API keys look like "<prefix><64 hex chars>"
API_KEY_PREFIX = os.getenv("API_KEY_PREFIX", "gd_")
API_KEY_HEADER = "X-API-Key"

# Request timeouts (connect, read) in seconds
GOOGLE_REQUEST_TIMEOUT = (5, 60)
DRIVE_DOWNLOAD_TIMEOUT = (5, 120)

# Secure cookie flag (set True in production over HTTPS)
SECURE_COOKIES = os.getenv("SECURE_COOKIES", "false").lower() in ("1", "true", "yes")

# Database URL (SQLite default; use Postgres URL in production)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./drive_gateway.db")

# Skip create_all at startup (set in production when using migrations)
SKIP_DB_INIT = os.getenv("SKIP_DB_INIT", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


@dataclass(frozen=True)
class OAuthSettings:
    """Google OAuth client configuration passed explicitly to token code."""
    client_id: str
    client_secret: str
    redirect_uri: str
    token_uri: str = GOOGLE_TOKEN_URI
    auth_uri: str = GOOGLE_AUTH_URI
    userinfo_uri: str = GOOGLE_USERINFO_URI
    refresh_buffer_seconds: int = TOKEN_REFRESH_BUFFER_SECONDS


def get_oauth_settings() -> OAuthSettings:
    """FastAPI dependency: OAuth settings built from the environment."""
    return OAuthSettings(
        client_id=GOOGLE_CLIENT_ID,
        client_secret=GOOGLE_CLIENT_SECRET,
        redirect_uri=GOOGLE_REDIRECT_URI,
    )
