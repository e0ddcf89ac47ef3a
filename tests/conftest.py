"""
Pytest configuration and fixtures for the Drive gateway tests.

Required env vars are set here, before any app module is imported, because
config validates secrets at import time. The database is in-memory SQLite
(StaticPool), recreated for every test.

IMPORTANT: patch outbound HTTP where it is used:

    Drive calls:         @patch("services.drive_service.requests.request")
    OAuth token calls:   @patch("services.token_service.requests.post")
    Google userinfo:     @patch("services.token_service.requests.get")
"""
import json
import os
from datetime import timedelta

import pytest
import requests
from cryptography.fernet import Fernet

os.environ["ENV"] = "test"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["TOKEN_ENCRYPTION_KEY"] = Fernet.generate_key().decode()
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SKIP_DB_INIT"] = "true"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ["GOOGLE_REDIRECT_URI"] = "http://localhost:3000/auth/callback"

from config import OAuthSettings  # noqa: E402
from crypto import encrypt  # noqa: E402
from database import Base, SessionLocal, engine  # noqa: E402
import models  # noqa: E402
from schemas import UserContext  # noqa: E402
from services.audit import AuditLogger  # noqa: E402


@pytest.fixture
def db():
    """Fresh schema and session per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def settings():
    return OAuthSettings(
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri="http://localhost:3000/auth/callback",
    )


@pytest.fixture
def audit():
    return AuditLogger()


@pytest.fixture
def make_user(db):
    """Factory: insert a user whose access token is valid for an hour unless overridden."""
    counter = {"n": 0}

    def _make(
        *,
        email="test@example.com",
        access_token="valid-access-token",
        refresh_token="refresh-token-123",
        expires_in=timedelta(hours=1),
    ):
        counter["n"] += 1
        now = models.utcnow()
        user = models.User(
            google_id=f"google-id-{counter['n']}",
            email=email,
            name="Test User",
            encrypted_access_token=encrypt(access_token),
            encrypted_refresh_token=encrypt(refresh_token),
            token_expiry=now + expires_in,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def user_context(user):
    return UserContext(userId=user.id, googleId=user.google_id, email=user.email)


def _fake_response(status=200, json_data=None, content=None, reason=None):
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason or ("OK" if status < 400 else "Error")
    resp.encoding = "utf-8"
    if json_data is not None:
        resp._content = json.dumps(json_data).encode()
        resp.headers["Content-Type"] = "application/json"
    else:
        resp._content = content if content is not None else b""
    return resp


@pytest.fixture
def fake_response():
    """Factory building real requests.Response objects for mocked HTTP calls."""
    return _fake_response


def audit_rows(db, action=None):
    query = db.query(models.AuditLog)
    if action:
        query = query.filter(models.AuditLog.action == action)
    return query.order_by(models.AuditLog.id).all()


@pytest.fixture
def audit_entries(db):
    """Callable returning audit rows (optionally for one action), oldest first."""
    return lambda action=None: audit_rows(db, action)
