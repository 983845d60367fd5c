"""Unit tests for YouTube Auth client."""

import asyncio
import time
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest
from google.auth.exceptions import RefreshError, TransportError
from google.oauth2.credentials import Credentials

from app.core.exceptions import AuthExpiredError, InvalidCredentialsError, PublishError
from app.infrastructure.youtube_auth import (
    YOUTUBE_SCOPES,
    AuthorizedUser,
    YouTubeAuthClient,
)

NEW_EXPIRY = datetime(2030, 1, 1, 12, 0)


class MemoryStore:
    """Credential store holding a single record."""

    def __init__(self, record):
        self.record = record
        self.get_calls = 0
        self.updates = []

    async def get(self, subject_id):
        self.get_calls += 1
        return self.record

    async def update_access_token(self, subject_id, access_token, token_expiry):
        self.updates.append((subject_id, access_token, token_expiry))
        self.record = replace(self.record, access_token=access_token, token_expiry=token_expiry)


def _refreshed(token="fresh-token"):
    def refresh(self, request):
        time.sleep(0.01)
        self.token = token
        self.expiry = NEW_EXPIRY

    return refresh


def _client(store=None):
    return YouTubeAuthClient(
        client_id="client-id.apps.googleusercontent.com",
        client_secret="client-secret",
        redirect_uri="http://localhost:8000/auth/callback",
        credential_store=store or MagicMock(),
    )


class TestYouTubeScopes:
    """Tests for YOUTUBE_SCOPES constant."""

    def test_scopes_defined(self):
        """Test that required scopes are defined."""
        assert "openid" in YOUTUBE_SCOPES
        assert "https://www.googleapis.com/auth/userinfo.email" in YOUTUBE_SCOPES
        assert "https://www.googleapis.com/auth/youtube.upload" in YOUTUBE_SCOPES


class TestAuthorizedUser:
    """Tests for AuthorizedUser dataclass."""

    def test_credential_fields(self):
        user = AuthorizedUser(
            subject_id="sub-1",
            email="a@example.com",
            access_token="at",
            refresh_token=None,
            token_expiry=None,
        )

        assert user.credential_fields() == {
            "email": "a@example.com",
            "access_token": "at",
            "refresh_token": None,
            "token_expiry": None,
        }


class TestAuthorizationUrl:
    """Tests for YouTubeAuthClient.authorization_url."""

    def test_url_requests_offline_consent(self):
        url, state = _client().authorization_url()

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert parsed.netloc == "accounts.google.com"
        assert query["client_id"] == ["client-id.apps.googleusercontent.com"]
        assert query["redirect_uri"] == ["http://localhost:8000/auth/callback"]
        assert query["access_type"] == ["offline"]
        assert query["prompt"] == ["consent"]
        assert query["response_type"] == ["code"]
        assert "https://www.googleapis.com/auth/youtube.upload" in query["scope"][0]
        assert query["state"] == [state]
        assert "code_challenge" not in query

    def test_explicit_state(self):
        url, state = _client().authorization_url(state="abc123")

        assert state == "abc123"
        assert "state=abc123" in url

    def test_states_are_random(self):
        client = _client()
        assert client.authorization_url()[1] != client.authorization_url()[1]


class TestExchangeCode:
    """Tests for YouTubeAuthClient.exchange_code."""

    @pytest.fixture
    def flow(self):
        flow = MagicMock()
        flow.credentials = MagicMock(
            id_token="id-token",
            token="access-token",
            refresh_token="refresh-token",
            expiry=datetime(2030, 1, 1),
        )
        return flow

    @pytest.mark.asyncio
    async def test_exchange_success(self, flow):
        client = _client()
        claims = {"sub": "sub-1", "email": "a@example.com"}

        with (
            patch.object(client, "_flow", return_value=flow),
            patch(
                "app.infrastructure.youtube_auth.id_token.verify_oauth2_token",
                return_value=claims,
            ) as verify,
        ):
            user = await client.exchange_code("auth-code")

        flow.fetch_token.assert_called_once_with(code="auth-code")
        assert verify.call_args.args[0] == "id-token"
        assert verify.call_args.args[2] == "client-id.apps.googleusercontent.com"
        assert user.subject_id == "sub-1"
        assert user.email == "a@example.com"
        assert user.access_token == "access-token"
        assert user.refresh_token == "refresh-token"
        assert user.token_expiry == datetime(2030, 1, 1, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_rejected_code(self, flow):
        client = _client()
        flow.fetch_token.side_effect = Exception("(invalid_grant) Bad Request")

        with patch.object(client, "_flow", return_value=flow):
            with pytest.raises(InvalidCredentialsError, match="invalid_grant"):
                await client.exchange_code("bad-code")

    @pytest.mark.asyncio
    async def test_missing_id_token(self, flow):
        client = _client()
        flow.credentials.id_token = None

        with patch.object(client, "_flow", return_value=flow):
            with pytest.raises(InvalidCredentialsError, match="no id_token"):
                await client.exchange_code("auth-code")

    @pytest.mark.asyncio
    async def test_invalid_id_token(self, flow):
        client = _client()

        with (
            patch.object(client, "_flow", return_value=flow),
            patch(
                "app.infrastructure.youtube_auth.id_token.verify_oauth2_token",
                side_effect=ValueError("Token has wrong audience"),
            ),
        ):
            with pytest.raises(InvalidCredentialsError, match="wrong audience"):
                await client.exchange_code("auth-code")


class TestBuildCredentials:
    """Tests for YouTubeAuthClient.build_credentials."""

    def test_build_credentials(self, credential_record):
        creds = _client().build_credentials(credential_record)

        assert creds.token == "access-token"
        assert creds.refresh_token == "refresh-token"
        assert creds.client_id == "client-id.apps.googleusercontent.com"
        assert creds.expiry.tzinfo is None
        assert creds.expired is False


class TestEnsureFresh:
    """Tests for YouTubeAuthClient.ensure_fresh."""

    @pytest.mark.asyncio
    async def test_unexpired_token_is_used_as_is(self, credential_record):
        store = MemoryStore(credential_record)

        creds = await _client(store).ensure_fresh(credential_record)

        assert creds.token == "access-token"
        assert store.get_calls == 0

    @pytest.mark.asyncio
    async def test_refresh_and_persist(self, expired_record):
        store = MemoryStore(expired_record)

        with patch.object(Credentials, "refresh", autospec=True, side_effect=_refreshed()):
            creds = await _client(store).ensure_fresh(expired_record)

        assert creds.token == "fresh-token"
        assert store.updates == [
            ("sub-123", "fresh-token", NEW_EXPIRY.replace(tzinfo=UTC)),
        ]

    @pytest.mark.asyncio
    async def test_token_refreshed_by_another_run(self, expired_record):
        fresh = replace(
            expired_record,
            access_token="other-run-token",
            token_expiry=datetime.now(tz=UTC) + timedelta(hours=1),
        )
        store = MemoryStore(fresh)

        with patch.object(Credentials, "refresh", autospec=True) as refresh:
            creds = await _client(store).ensure_fresh(expired_record)

        refresh.assert_not_called()
        assert creds.token == "other-run-token"
        assert store.updates == []

    @pytest.mark.asyncio
    async def test_missing_refresh_token(self, expired_record):
        record = replace(expired_record, refresh_token=None)

        with pytest.raises(AuthExpiredError) as exc_info:
            await _client(MemoryStore(record)).ensure_fresh(record)

        assert exc_info.value.token_type == "refresh"

    @pytest.mark.asyncio
    async def test_revoked_refresh_token(self, expired_record):
        store = MemoryStore(expired_record)
        error = RefreshError("invalid_grant: Token has been expired or revoked.")

        with patch.object(Credentials, "refresh", autospec=True, side_effect=error):
            with pytest.raises(AuthExpiredError) as exc_info:
                await _client(store).ensure_fresh(expired_record)

        assert "invalid_grant" in exc_info.value.details["error"]
        assert store.updates == []

    @pytest.mark.asyncio
    async def test_retryable_refresh_failure(self, expired_record):
        error = RefreshError("temporarily unavailable", retryable=True)

        with patch.object(Credentials, "refresh", autospec=True, side_effect=error):
            with pytest.raises(PublishError) as exc_info:
                await _client(MemoryStore(expired_record)).ensure_fresh(expired_record)

        assert not isinstance(exc_info.value, AuthExpiredError)

    @pytest.mark.asyncio
    async def test_transport_failure(self, expired_record):
        error = TransportError("connection reset")

        with patch.object(Credentials, "refresh", autospec=True, side_effect=error):
            with pytest.raises(PublishError, match="connection reset"):
                await _client(MemoryStore(expired_record)).ensure_fresh(expired_record)

    @pytest.mark.asyncio
    async def test_concurrent_runs_refresh_once(self, expired_record):
        store = MemoryStore(expired_record)
        client = _client(store)

        with patch.object(
            Credentials, "refresh", autospec=True, side_effect=_refreshed()
        ) as refresh:
            results = await asyncio.gather(
                *(client.ensure_fresh(expired_record) for _ in range(5))
            )

        assert refresh.call_count == 1
        assert len(store.updates) == 1
        assert {creds.token for creds in results} == {"fresh-token"}


class TestPersistRotated:
    """Tests for YouTubeAuthClient.persist_rotated."""

    @pytest.mark.asyncio
    async def test_unchanged_token_is_not_written(self):
        store = MagicMock()
        store.update_access_token = AsyncMock()
        creds = MagicMock(token="same")

        written = await _client(store).persist_rotated("sub-1", "same", creds)

        assert written is False
        store.update_access_token.assert_not_called()

    @pytest.mark.asyncio
    async def test_rotated_token_is_written(self):
        store = MagicMock()
        store.update_access_token = AsyncMock()
        creds = MagicMock(token="rotated", expiry=NEW_EXPIRY)

        written = await _client(store).persist_rotated("sub-1", "original", creds)

        assert written is True
        store.update_access_token.assert_awaited_once_with(
            "sub-1", "rotated", NEW_EXPIRY.replace(tzinfo=UTC)
        )
