"""YouTube OAuth authentication client.

This module provides the web-server OAuth 2.0 flow for Google accounts and
the delegated-credential handling used when publishing on a user's behalf:
building google-auth credentials from a stored record, refreshing expired
access tokens and writing refreshed tokens back to the credential store.

Required OAuth scopes:
- openid, userinfo.email, userinfo.profile: Identify the user
- youtube.upload: Upload videos
"""

import asyncio
import secrets
import weakref
from dataclasses import dataclass
from datetime import UTC, datetime

from google.auth.exceptions import GoogleAuthError, RefreshError
from google.auth.transport.requests import Request
from google.oauth2 import id_token
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from app.core.exceptions import AuthExpiredError, InvalidCredentialsError, PublishError
from app.core.logging import get_logger
from app.models.credential import CredentialRecord
from app.services.credential_store import CredentialStore

logger = get_logger(__name__)

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

# OAuth scopes requested at consent time
YOUTUBE_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/youtube.upload",
]


@dataclass
class AuthorizedUser:
    """Outcome of a completed consent flow.

    Attributes:
        subject_id: Google subject identifier (``sub``)
        email: Account email
        access_token: Access token
        refresh_token: Refresh token (None when Google does not reissue one)
        token_expiry: Access token expiry
    """

    subject_id: str
    email: str | None
    access_token: str
    refresh_token: str | None
    token_expiry: datetime | None

    def credential_fields(self) -> dict:
        """Fields to upsert into the credential store."""
        return {
            "email": self.email,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_expiry": self.token_expiry,
        }


def _to_aware(value: datetime | None) -> datetime | None:
    # google-auth keeps expiry as naive UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _to_naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class YouTubeAuthClient:
    """Google OAuth client for delegated YouTube access.

    Example:
        >>> auth = YouTubeAuthClient(client_id, client_secret, redirect_uri, store)
        >>> url, state = auth.authorization_url()
        >>> user = await auth.exchange_code(code)
        >>> creds = await auth.ensure_fresh(record)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        credential_store: CredentialStore,
        scopes: list[str] | None = None,
    ) -> None:
        """Initialize YouTube auth client.

        Args:
            client_id: OAuth client ID
            client_secret: OAuth client secret
            redirect_uri: Registered callback URI
            credential_store: Store that receives refreshed tokens
            scopes: Scopes to request (defaults to YOUTUBE_SCOPES)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.credential_store = credential_store
        self.scopes = scopes or list(YOUTUBE_SCOPES)
        self._refresh_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

        logger.info("YouTubeAuthClient initialized", redirect_uri=redirect_uri)

    # =========================================================================
    # Consent flow
    # =========================================================================

    def _flow(self, state: str | None = None) -> Flow:
        client_config = {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }
        return Flow.from_client_config(
            client_config,
            scopes=self.scopes,
            redirect_uri=self.redirect_uri,
            state=state,
            autogenerate_code_verifier=False,
        )

    def authorization_url(self, state: str | None = None) -> tuple[str, str]:
        """Build the consent screen URL.

        Requests offline access and forces the consent prompt so Google
        issues a refresh token.

        Returns:
            Tuple of (url, state)
        """
        state = state or secrets.token_urlsafe(16)
        url, state = self._flow(state).authorization_url(
            access_type="offline",
            prompt="consent",
            state=state,
        )
        return url, state

    async def exchange_code(self, code: str) -> AuthorizedUser:
        """Exchange an authorization code and resolve the signed-in user.

        Args:
            code: Authorization code from the callback

        Returns:
            AuthorizedUser with tokens and identity

        Raises:
            InvalidCredentialsError: If the exchange or id-token check fails
        """
        flow = self._flow()
        try:
            await asyncio.to_thread(flow.fetch_token, code=code)
            creds = flow.credentials
            if not creds.id_token:
                raise InvalidCredentialsError(
                    message="Token response carried no id_token",
                    credential_type="id_token",
                )
            claims = await asyncio.to_thread(
                id_token.verify_oauth2_token,
                creds.id_token,
                Request(),
                self.client_id,
            )
        except InvalidCredentialsError:
            raise
        except Exception as e:
            # oauthlib raises its own OAuth2Error hierarchy, verification raises ValueError
            logger.error("OAuth code exchange failed", error=str(e))
            raise InvalidCredentialsError(
                message=f"OAuth exchange failed: {e}",
                credential_type="oauth",
            ) from e

        user = AuthorizedUser(
            subject_id=claims["sub"],
            email=claims.get("email"),
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            token_expiry=_to_aware(creds.expiry),
        )
        logger.info("OAuth flow completed", subject_id=user.subject_id)
        return user

    # =========================================================================
    # Delegated credentials
    # =========================================================================

    def build_credentials(self, record: CredentialRecord) -> Credentials:
        """Build google-auth credentials from a stored record."""
        return Credentials(
            token=record.access_token,
            refresh_token=record.refresh_token,
            token_uri=GOOGLE_TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=self.scopes,
            expiry=_to_naive_utc(record.token_expiry),
        )

    async def ensure_fresh(self, record: CredentialRecord) -> Credentials:
        """Return usable credentials, refreshing and persisting if expired.

        Refresh-and-persist runs under a per-subject lock and re-reads the
        store first, so concurrent runs for one user refresh at most once.

        Args:
            record: Credential record loaded for the run

        Returns:
            Credentials with an unexpired access token

        Raises:
            AuthExpiredError: If the refresh token is missing, invalid or revoked
            PublishError: If the token endpoint failed transiently
        """
        if not record.is_expired():
            return self.build_credentials(record)

        lock = self._refresh_locks.get(record.subject_id)
        if lock is None:
            lock = asyncio.Lock()
            self._refresh_locks[record.subject_id] = lock

        async with lock:
            latest = await self.credential_store.get(record.subject_id)
            if not latest.is_expired():
                logger.debug("Using token refreshed by another run", subject_id=record.subject_id)
                return self.build_credentials(latest)

            if not latest.refresh_token:
                raise AuthExpiredError(
                    message="No refresh token stored; re-authorize via /auth/login",
                    user_id=record.subject_id,
                )

            creds = self.build_credentials(latest)
            await self._refresh(creds, record.subject_id)
            await self.credential_store.update_access_token(
                record.subject_id,
                creds.token,
                _to_aware(creds.expiry),
            )
            logger.info("Access token refreshed", subject_id=record.subject_id)
            return creds

    async def _refresh(self, creds: Credentials, subject_id: str) -> None:
        try:
            await asyncio.to_thread(creds.refresh, Request())
        except RefreshError as e:
            if getattr(e, "retryable", False):
                raise PublishError(
                    f"Token refresh failed: {e}",
                    error_reason="token_refresh_unavailable",
                ) from e
            logger.warning("Refresh token rejected", subject_id=subject_id, error=str(e))
            raise AuthExpiredError(
                user_id=subject_id,
                details={"error": str(e)},
            ) from e
        except GoogleAuthError as e:
            raise PublishError(
                f"Token refresh failed: {e}",
                error_reason="token_refresh_unavailable",
            ) from e

    async def persist_rotated(self, subject_id: str, issued_token: str, creds: Credentials) -> bool:
        """Persist a token the Google client refreshed on its own mid-call.

        Args:
            subject_id: Subject identifier
            issued_token: Access token the call started with
            creds: Credentials after the call

        Returns:
            True if a new token was written
        """
        if not creds.token or creds.token == issued_token:
            return False
        await self.credential_store.update_access_token(
            subject_id,
            creds.token,
            _to_aware(creds.expiry),
        )
        logger.info("Rotated access token persisted", subject_id=subject_id)
        return True


__all__ = [
    "AuthorizedUser",
    "GOOGLE_TOKEN_URI",
    "YOUTUBE_SCOPES",
    "YouTubeAuthClient",
]
