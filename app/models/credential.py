"""User credential ORM model.

This module defines the UserCredential model that stores per-user delegated
OAuth credentials, keyed by the authorization provider's subject id, and the
immutable CredentialRecord value handed to the publish pipeline.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDMixin

# Treat tokens this close to expiry as already expired
EXPIRY_SKEW = timedelta(seconds=60)


class UserCredential(Base, UUIDMixin, TimestampMixin):
    """Delegated Google credentials for one authenticated user.

    At most one row exists per subject id; writes are upserts.

    Attributes:
        subject_id: Stable subject identifier issued by Google (``sub``)
        email: Account email
        access_token: Current OAuth access token
        refresh_token: OAuth refresh token
        token_expiry: When the access token expires
    """

    __tablename__ = "user_credentials"
    __repr_hidden__ = frozenset({"access_token", "refresh_token"})

    subject_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(320))
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(Text)
    token_expiry: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def to_record(self) -> "CredentialRecord":
        """Detach the row into an immutable CredentialRecord."""
        return CredentialRecord(
            subject_id=self.subject_id,
            email=self.email,
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            token_expiry=self.token_expiry,
        )


@dataclass(frozen=True)
class CredentialRecord:
    """Read-only view of a stored credential.

    Attributes:
        subject_id: Subject identifier
        email: Account email
        access_token: OAuth access token (may be expired)
        refresh_token: OAuth refresh token
        token_expiry: Access token expiry instant
    """

    subject_id: str
    email: str | None
    access_token: str
    refresh_token: str | None
    token_expiry: datetime | None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the access token should be refreshed before use.

        A record without an expiry is treated as expired.
        """
        if self.token_expiry is None:
            return True
        now = now or datetime.now(tz=UTC)
        expiry = self.token_expiry
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=UTC)
        return expiry - EXPIRY_SKEW <= now

    def __repr__(self) -> str:
        return (
            f"CredentialRecord(subject_id={self.subject_id!r}, email={self.email!r}, "
            f"token_expiry={self.token_expiry!r})"
        )


__all__ = [
    "CredentialRecord",
    "UserCredential",
]
