"""
Secret material: session tokens, API keys, OAuth state.

Session tokens are JWTs (HS256, JWT_SECRET) with a random jti so that two
sessions for the same user never collide. They are validated by looking up the
sessions table, not by decoding; the JWT only makes them self-describing.
API keys are "<API_KEY_PREFIX><64 hex>"; only their SHA-256 digest is stored.
"""
import hashlib
import secrets
from datetime import datetime

from jose import jwt

from config import API_KEY_PREFIX, JWT_ALGORITHM, JWT_SECRET


def create_session_token(user_id: int, expires_at: datetime) -> str:
    """Build a JWT for the given internal user id; exp matches the session row."""
    payload = {
        "sub": str(user_id),
        "exp": expires_at,
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def generate_api_key() -> str:
    return API_KEY_PREFIX + secrets.token_hex(32)


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode()).hexdigest()


def generate_oauth_state() -> str:
    return secrets.token_hex(32)
