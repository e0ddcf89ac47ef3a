"""
Data models for the Drive gateway.

Users own sessions, API keys and audit rows. Nothing here is hard-deleted by the
application: sessions and keys are deactivated, audit rows are append-only.
"""
from datetime import datetime, UTC

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from database import Base


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything stored here is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class User(Base):
    """
    Google identity and OAuth state.

    - id: internal primary key; google_id: Google subject id (unique).
    - encrypted_access_token / encrypted_refresh_token: Fernet-encrypted;
      decrypted only when calling Google APIs. The refresh token is replaced
      only when Google issues a new one.
    - token_expiry: UTC time the access token expires; always written together
      with the access token.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    google_id = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=False)
    name = Column(String(255))

    # OAuth tokens encrypted at rest (crypto.encrypt / crypto.decrypt)
    encrypted_access_token = Column(String(2048), nullable=False)
    encrypted_refresh_token = Column(String(2048), nullable=True)
    token_expiry = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class UserSession(Base):
    """Browser session issued at OAuth callback; usable while active and unexpired."""
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    session_token = Column(String(1024), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class ApiKey(Base):
    """
    Programmatic access key. Only the SHA-256 digest of the secret is stored;
    key_prefix keeps the first characters for display. Keys never expire.
    """
    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    key_name = Column(String(255), nullable=False)
    key_hash = Column(String(64), unique=True, nullable=False, index=True)
    key_prefix = Column(String(16), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class AuditLog(Base):
    """Append-only record of a file operation (list/upload/download/delete/open)."""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(String(32), nullable=False)
    file_id = Column(String(255), nullable=True)
    file_name = Column(String(1024), nullable=True)
    # JSON string with operation details
    metadata_json = Column("metadata", Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
