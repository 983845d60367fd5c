"""ORM models and run value objects."""

from app.models.base import Base, TimestampMixin, UUIDMixin
from app.models.credential import CredentialRecord, UserCredential
from app.models.publish import (
    PipelineRun,
    PrivacyStatus,
    PublishMetadata,
    PublishOutcome,
    PublishRequest,
    RunState,
)

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "CredentialRecord",
    "UserCredential",
    "PipelineRun",
    "PrivacyStatus",
    "PublishMetadata",
    "PublishOutcome",
    "PublishRequest",
    "RunState",
]
