"""Pytest configuration and fixtures.

This module provides common fixtures used across all tests.
"""

from datetime import UTC, datetime, timedelta

import pytest

from app.core.logging import setup_logging
from app.models.credential import CredentialRecord
from app.models.publish import PrivacyStatus, PublishMetadata, PublishRequest

# Setup logging for tests
setup_logging()


@pytest.fixture
def credential_record() -> CredentialRecord:
    """Credential with an access token valid for another hour."""
    return CredentialRecord(
        subject_id="sub-123",
        email="creator@example.com",
        access_token="access-token",
        refresh_token="refresh-token",
        token_expiry=datetime.now(tz=UTC) + timedelta(hours=1),
    )


@pytest.fixture
def expired_record() -> CredentialRecord:
    """Credential whose access token expired an hour ago."""
    return CredentialRecord(
        subject_id="sub-123",
        email="creator@example.com",
        access_token="stale-token",
        refresh_token="refresh-token",
        token_expiry=datetime.now(tz=UTC) - timedelta(hours=1),
    )


@pytest.fixture
def publish_request() -> PublishRequest:
    """Request for a 12345-byte source."""
    return PublishRequest(
        video_url="https://example.com/a.mp4",
        metadata=PublishMetadata(title="T", privacy_status=PrivacyStatus.PRIVATE),
    )
