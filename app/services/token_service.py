"""
Google OAuth token lifecycle.

- build_auth_url: consent URL (offline access, forced consent, CSRF state).
- exchange_code / fetch_userinfo: initial authorization-code grant.
- get_valid_access_token: returns a usable access token for a user, refreshing
  it when it expires within OAuthSettings.refresh_buffer_seconds and persisting
  the result (one commit, only when a refresh happened).

No retries: a failed provider call is surfaced immediately.
"""
import logging
from datetime import datetime, timedelta
from urllib.parse import urlencode

import requests
from pydantic import ValidationError
from sqlalchemy.orm import Session

from config import GOOGLE_REQUEST_TIMEOUT, GOOGLE_SCOPES, OAuthSettings
from crypto import decrypt, encrypt
from errors import ConfigurationMissing, InvalidRequest, NotFound, TokenRefreshFailed
from models import User, as_utc, utcnow
from schemas import GoogleUserInfo, TokenResponse

logger = logging.getLogger(__name__)

_FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


def _require_client(settings: OAuthSettings) -> None:
    if not settings.client_id or not settings.redirect_uri:
        raise ConfigurationMissing("Missing required Google OAuth2 configuration")


def build_auth_url(settings: OAuthSettings, state: str) -> str:
    """Google consent URL. Raises ConfigurationMissing without client id / redirect URI."""
    _require_client(settings)
    params = {
        "client_id": settings.client_id,
        "redirect_uri": settings.redirect_uri,
        "response_type": "code",
        "scope": " ".join(GOOGLE_SCOPES),
        "access_type": "offline",  # refresh token
        "prompt": "consent",
        "state": state,
    }
    return f"{settings.auth_uri}?{urlencode(params)}"


def exchange_code(settings: OAuthSettings, code: str) -> TokenResponse:
    """Trade an authorization code for access/refresh tokens."""
    _require_client(settings)
    resp = requests.post(
        settings.token_uri,
        data={
            "client_id": settings.client_id,
            "client_secret": settings.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": settings.redirect_uri,
        },
        headers=_FORM_HEADERS,
        timeout=GOOGLE_REQUEST_TIMEOUT,
    )
    if not resp.ok:
        logger.warning("Authorization code exchange failed: %s %s", resp.status_code, resp.text)
        raise InvalidRequest(f"Token exchange failed: {resp.status_code}")
    try:
        return TokenResponse.model_validate(resp.json())
    except (ValueError, ValidationError) as e:
        raise InvalidRequest("Token exchange did not return access_token") from e


def fetch_userinfo(settings: OAuthSettings, access_token: str) -> GoogleUserInfo:
    resp = requests.get(
        settings.userinfo_uri,
        headers={"Authorization": f"Bearer {access_token}"},
        timeout=GOOGLE_REQUEST_TIMEOUT,
    )
    if not resp.ok:
        raise InvalidRequest(f"Failed to fetch Google profile: {resp.status_code}")
    try:
        return GoogleUserInfo.model_validate(resp.json())
    except (ValueError, ValidationError) as e:
        raise InvalidRequest("Google userinfo missing sub or email") from e


def needs_refresh(token_expiry: datetime | None, now: datetime, buffer_seconds: int) -> bool:
    """True when the token is expired or expires within the buffer window."""
    if token_expiry is None:
        return True
    return now >= as_utc(token_expiry) - timedelta(seconds=buffer_seconds)


def _refresh(settings: OAuthSettings, refresh_token: str) -> TokenResponse:
    resp = requests.post(
        settings.token_uri,
        data={
            "client_id": settings.client_id,
            "client_secret": settings.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        },
        headers=_FORM_HEADERS,
        timeout=GOOGLE_REQUEST_TIMEOUT,
    )
    if not resp.ok:
        logger.warning("Google token refresh failed: %s %s", resp.status_code, resp.text)
        raise TokenRefreshFailed(
            f"Token refresh failed: {resp.status_code}",
            provider_status=resp.status_code,
        )
    try:
        return TokenResponse.model_validate(resp.json())
    except (ValueError, ValidationError) as e:
        raise TokenRefreshFailed(
            "Token refresh returned no access_token",
            provider_status=resp.status_code,
        ) from e


def get_valid_access_token(db: Session, user_id: int, settings: OAuthSettings) -> str:
    """
    Return a valid Google access token for this user, refreshing if expired or
    expiring within the buffer. Access token and expiry are written together in
    one commit; the refresh token only changes if Google rotated it.
    """
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")

    now = utcnow()
    if not needs_refresh(user.token_expiry, now, settings.refresh_buffer_seconds):
        return decrypt(user.encrypted_access_token)

    refresh_token = decrypt(user.encrypted_refresh_token)
    if not refresh_token:
        raise TokenRefreshFailed("No refresh token stored; please log in again")

    data = _refresh(settings, refresh_token)
    user.encrypted_access_token = encrypt(data.access_token)
    user.token_expiry = now + timedelta(seconds=data.expires_in)
    if data.refresh_token:
        user.encrypted_refresh_token = encrypt(data.refresh_token)
    user.updated_at = now
    db.commit()
    logger.info("Refreshed Google access token for user %s", user_id)
    return data.access_token
