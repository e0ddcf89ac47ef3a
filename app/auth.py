"""
Google OAuth consent URL, callback, API keys, and the caller dependencies.

- /auth/url returns the Google consent URL and sets a short-lived CSRF state cookie.
- /auth/callback exchanges the code, upserts the user, opens a session and
  returns the session token (sent back as `Authorization: Bearer <token>`).
- /auth/api-keys creates an API key for programmatic access (shown once).
- get_current_user resolves the Bearer session token; get_api_key_user
  resolves the X-API-Key header. Both raise 401 when the credential is invalid.
"""
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from config import (
    API_KEY_HEADER,
    OAUTH_STATE_COOKIE_NAME,
    OAUTH_STATE_MAX_AGE,
    SECURE_COOKIES,
    OAuthSettings,
    get_oauth_settings,
)
from database import get_db
from errors import InvalidRequest
from schemas import AuthCallbackBody, CreateApiKeyBody, UserContext
from security import generate_oauth_state
from services.auth_service import (
    create_api_key,
    handle_auth_callback,
    revoke_session,
    validate_api_key,
    validate_session,
)
from services.token_service import build_auth_url

router = APIRouter(prefix="/auth")


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="No valid authorization token provided")
    return header[len("Bearer "):]


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> UserContext:
    """
    FastAPI dependency: validate the Bearer session token and return the caller.
    Raises 401 if the header is missing or the session is invalid/expired.
    """
    user = validate_session(db, _bearer_token(request))
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session token")
    return user


def get_api_key_user(
    request: Request,
    db: Session = Depends(get_db),
) -> UserContext:
    """FastAPI dependency: validate the X-API-Key header and return its owner."""
    api_key = request.headers.get(API_KEY_HEADER)
    if not api_key:
        raise HTTPException(status_code=401, detail="API key required")
    user = validate_api_key(db, api_key)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return user


@router.get("/url")
def get_auth_url(
    response: Response,
    settings: OAuthSettings = Depends(get_oauth_settings),
):
    """
    Google consent URL. The same random state is put in an HttpOnly cookie so
    the callback can check the request was not forged.
    """
    state = generate_oauth_state()
    auth_url = build_auth_url(settings, state)
    response.set_cookie(
        OAUTH_STATE_COOKIE_NAME,
        state,
        max_age=OAUTH_STATE_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=SECURE_COOKIES,
        path="/",
    )
    return {"authUrl": auth_url}


@router.post("/callback")
def auth_callback(
    body: AuthCallbackBody,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: OAuthSettings = Depends(get_oauth_settings),
):
    """
    Exchange the authorization code and open a session. The posted state must
    match the state cookie set by /auth/url.
    """
    state_cookie = request.cookies.get(OAUTH_STATE_COOKIE_NAME)
    if not state_cookie or not body.state or not secrets.compare_digest(body.state, state_cookie):
        raise InvalidRequest("Invalid or expired state; please try logging in again")

    result = handle_auth_callback(db, settings, body.code)
    response.delete_cookie(OAUTH_STATE_COOKIE_NAME, path="/")
    return result


@router.post("/api-keys")
def create_key(
    body: CreateApiKeyBody,
    user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create an API key. The plaintext key is only ever returned by this call."""
    return create_api_key(db, user, body.keyName)


@router.get("/me")
def me(user: UserContext = Depends(get_current_user)):
    """Return the current caller (user id, Google id, email)."""
    return user


@router.post("/logout")
def logout(
    request: Request,
    user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Deactivate the presented session token."""
    revoke_session(db, _bearer_token(request))
    return {"ok": True}
