"""
Tests for services/token_service.py - consent URL, refresh policy, persistence
"""

from datetime import timedelta
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest

from config import OAuthSettings
from crypto import decrypt
from errors import ConfigurationMissing, NotFound, TokenRefreshFailed
from models import as_utc, utcnow
from services.token_service import build_auth_url, get_valid_access_token, needs_refresh


class TestBuildAuthUrl:
    """Tests for the Google consent URL."""

    def test_contains_offline_consent_and_state(self, settings):
        url = build_auth_url(settings, "state-123")
        parsed = urlparse(url)
        params = parse_qs(parsed.query)

        assert parsed.netloc == "accounts.google.com"
        assert params["client_id"] == ["test-client-id"]
        assert params["redirect_uri"] == ["http://localhost:3000/auth/callback"]
        assert params["response_type"] == ["code"]
        assert params["access_type"] == ["offline"]
        assert params["prompt"] == ["consent"]
        assert params["state"] == ["state-123"]
        assert "https://www.googleapis.com/auth/drive" in params["scope"][0].split()

    def test_missing_client_id_raises(self):
        settings = OAuthSettings(client_id="", client_secret="s", redirect_uri="http://x/cb")
        with pytest.raises(ConfigurationMissing):
            build_auth_url(settings, "s")

    def test_missing_redirect_uri_raises(self):
        settings = OAuthSettings(client_id="id", client_secret="s", redirect_uri="")
        with pytest.raises(ConfigurationMissing):
            build_auth_url(settings, "s")


class TestNeedsRefresh:
    """Tests for the expiry buffer check."""

    def test_expired(self):
        now = utcnow()
        assert needs_refresh(now - timedelta(seconds=1), now, 300)

    def test_inside_buffer(self):
        now = utcnow()
        assert needs_refresh(now + timedelta(minutes=4), now, 300)

    def test_exactly_at_buffer_edge(self):
        now = utcnow()
        assert needs_refresh(now + timedelta(seconds=300), now, 300)

    def test_outside_buffer(self):
        now = utcnow()
        assert not needs_refresh(now + timedelta(minutes=6), now, 300)

    def test_naive_expiry_treated_as_utc(self):
        now = utcnow()
        naive = (now + timedelta(hours=1)).replace(tzinfo=None)
        assert not needs_refresh(naive, now, 300)


class TestGetValidAccessToken:
    """Tests for proactive refresh and persistence."""

    @patch("services.token_service.requests.post")
    def test_valid_token_makes_no_refresh_call(self, mock_post, db, user, settings):
        token = get_valid_access_token(db, user.id, settings)

        assert token == "valid-access-token"
        mock_post.assert_not_called()

    @patch("services.token_service.requests.post")
    def test_expired_token_refreshes_once_and_persists(self, mock_post, db, make_user, settings, fake_response):
        user = make_user(expires_in=timedelta(minutes=-10))
        mock_post.return_value = fake_response(
            json_data={"access_token": "new-access-token", "expires_in": 3600, "token_type": "Bearer"}
        )
        before = utcnow()

        token = get_valid_access_token(db, user.id, settings)

        assert token == "new-access-token"
        assert mock_post.call_count == 1
        url = mock_post.call_args.args[0]
        data = mock_post.call_args.kwargs["data"]
        assert url == "https://oauth2.googleapis.com/token"
        assert data == {
            "client_id": "test-client-id",
            "client_secret": "test-client-secret",
            "refresh_token": "refresh-token-123",
            "grant_type": "refresh_token",
        }

        db.refresh(user)
        assert decrypt(user.encrypted_access_token) == "new-access-token"
        assert as_utc(user.token_expiry) >= before + timedelta(seconds=3590)
        # No rotation in the response: refresh token kept
        assert decrypt(user.encrypted_refresh_token) == "refresh-token-123"
        assert as_utc(user.updated_at) >= before

    @patch("services.token_service.requests.post")
    def test_token_inside_buffer_is_refreshed(self, mock_post, db, make_user, settings, fake_response):
        user = make_user(expires_in=timedelta(minutes=2))
        mock_post.return_value = fake_response(json_data={"access_token": "fresh", "expires_in": 3600})

        assert get_valid_access_token(db, user.id, settings) == "fresh"
        assert mock_post.call_count == 1

    @patch("services.token_service.requests.post")
    def test_rotated_refresh_token_is_stored(self, mock_post, db, make_user, settings, fake_response):
        user = make_user(expires_in=timedelta(minutes=-1))
        mock_post.return_value = fake_response(
            json_data={"access_token": "a2", "expires_in": 3600, "refresh_token": "r2"}
        )

        get_valid_access_token(db, user.id, settings)

        db.refresh(user)
        assert decrypt(user.encrypted_refresh_token) == "r2"

    @patch("services.token_service.requests.post")
    def test_refresh_rejected_raises_with_status(self, mock_post, db, make_user, settings, fake_response):
        user = make_user(expires_in=timedelta(minutes=-1))
        mock_post.return_value = fake_response(status=400, json_data={"error": "invalid_grant"})
        old_expiry = as_utc(user.token_expiry)

        with pytest.raises(TokenRefreshFailed) as exc_info:
            get_valid_access_token(db, user.id, settings)

        assert exc_info.value.provider_status == 400
        db.refresh(user)
        # Neither access token nor expiry changed
        assert decrypt(user.encrypted_access_token) == "valid-access-token"
        assert as_utc(user.token_expiry) == old_expiry

    @patch("services.token_service.requests.post")
    def test_missing_refresh_token_raises(self, mock_post, db, make_user, settings):
        user = make_user(refresh_token=None, expires_in=timedelta(minutes=-1))

        with pytest.raises(TokenRefreshFailed):
            get_valid_access_token(db, user.id, settings)
        mock_post.assert_not_called()

    def test_unknown_user_raises_not_found(self, db, settings):
        with pytest.raises(NotFound):
            get_valid_access_token(db, 999, settings)
