"""
Auth service: OAuth callback, sessions and API keys.

validate_session / validate_api_key never raise. Any storage error, malformed
token or expiry yields None, so callers fail closed.
"""
import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from config import SESSION_TTL_HOURS, OAuthSettings
from crypto import encrypt
from models import ApiKey, User, UserSession, as_utc, utcnow
from schemas import UserContext
from security import create_session_token, generate_api_key, hash_api_key
from services.token_service import exchange_code, fetch_userinfo

logger = logging.getLogger(__name__)


def user_profile(user: User) -> dict:
    """User fields safe to return to a browser (no tokens)."""
    return {
        "id": user.id,
        "googleId": user.google_id,
        "email": user.email,
        "name": user.name,
        "tokenExpiry": as_utc(user.token_expiry),
        "createdAt": as_utc(user.created_at),
        "updatedAt": as_utc(user.updated_at),
    }


def _context(user: User) -> UserContext:
    return UserContext(userId=user.id, googleId=user.google_id, email=user.email)


def _rollback_quietly(db: Session) -> None:
    try:
        db.rollback()
    except Exception:
        logger.warning("Rollback after failed validation also failed", exc_info=True)


def handle_auth_callback(db: Session, settings: OAuthSettings, code: str) -> dict:
    """
    Exchange the code, upsert the user by Google id, open a session.
    Returns {user, accessToken} where accessToken is the session token.
    """
    tokens = exchange_code(settings, code)
    profile = fetch_userinfo(settings, tokens.access_token)

    now = utcnow()
    token_expiry = now + timedelta(seconds=tokens.expires_in)

    user = db.scalars(select(User).where(User.google_id == profile.sub)).first()
    if user is None:
        user = User(
            google_id=profile.sub,
            email=profile.email,
            name=profile.name,
            encrypted_access_token=encrypt(tokens.access_token),
            encrypted_refresh_token=encrypt(tokens.refresh_token),
            token_expiry=token_expiry,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.flush()
        logger.info("Created user %s for Google id %s", user.id, profile.sub)
    else:
        user.email = profile.email
        user.name = profile.name
        user.encrypted_access_token = encrypt(tokens.access_token)
        if tokens.refresh_token:
            user.encrypted_refresh_token = encrypt(tokens.refresh_token)
        user.token_expiry = token_expiry
        user.updated_at = now

    expires_at = now + timedelta(hours=SESSION_TTL_HOURS)
    session_token = create_session_token(user.id, expires_at)
    db.add(UserSession(user_id=user.id, session_token=session_token, expires_at=expires_at))
    db.commit()
    db.refresh(user)

    return {"user": user_profile(user), "accessToken": session_token}


def validate_session(db: Session, session_token) -> UserContext | None:
    """
    Resolve an active, unexpired session to its user. Expired sessions are
    deactivated as a side effect.
    """
    if not isinstance(session_token, str) or not session_token.strip():
        return None
    try:
        row = db.execute(
            select(UserSession, User)
            .join(User, UserSession.user_id == User.id)
            .where(
                UserSession.session_token == session_token.strip(),
                UserSession.is_active.is_(True),
            )
        ).first()
        if row is None:
            return None
        session, user = row

        if as_utc(session.expires_at) <= utcnow():
            session.is_active = False
            db.commit()
            return None
        return _context(user)
    except Exception:
        logger.exception("Session validation failed")
        _rollback_quietly(db)
        return None


def revoke_session(db: Session, session_token: str) -> bool:
    """Deactivate a session (logout). Returns True if an active session matched."""
    session = db.scalars(
        select(UserSession).where(
            UserSession.session_token == session_token.strip(),
            UserSession.is_active.is_(True),
        )
    ).first()
    if session is None:
        return False
    session.is_active = False
    db.commit()
    return True


def validate_api_key(db: Session, api_key) -> UserContext | None:
    """Resolve an active API key (exact value) to its owner; bumps last_used_at."""
    if not isinstance(api_key, str) or not api_key:
        return None
    try:
        row = db.execute(
            select(ApiKey, User)
            .join(User, ApiKey.user_id == User.id)
            .where(ApiKey.key_hash == hash_api_key(api_key), ApiKey.is_active.is_(True))
        ).first()
        if row is None:
            return None
        key, user = row
        key.last_used_at = utcnow()
        db.commit()
        return _context(user)
    except Exception:
        logger.exception("API key validation failed")
        _rollback_quietly(db)
        return None


def create_api_key(db: Session, user: UserContext, key_name: str) -> dict:
    """
    Generate and store a new API key. The plaintext is returned here only;
    to rotate, create a new key.
    """
    api_key = generate_api_key()
    row = ApiKey(
        user_id=user.userId,
        key_name=key_name,
        key_hash=hash_api_key(api_key),
        key_prefix=api_key[:12],
        is_active=True,
        created_at=utcnow(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Created API key %s... for user %s", row.key_prefix, user.userId)
    return {"apiKey": api_key, "keyName": row.key_name, "createdAt": as_utc(row.created_at)}
