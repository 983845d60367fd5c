"""Publish request and pipeline run models.

These are plain value objects; nothing here is persisted. A PipelineRun
lives only for the duration of one publish request.
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from app.core.exceptions import ReelayError
from app.core.state_machine import StateMachine, create_run_state_machine

if TYPE_CHECKING:
    from app.infrastructure.object_storage import LocalArtifact


class PrivacyStatus(str, enum.Enum):
    """YouTube video privacy status."""

    PUBLIC = "public"  # Visible to everyone
    PRIVATE = "private"  # Only visible to owner
    UNLISTED = "unlisted"  # Visible to anyone with the link


class RunState(str, enum.Enum):
    """Pipeline run state."""

    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    FETCHING = "fetching"
    STAGING = "staging"
    MATERIALIZING = "materializing"
    PUBLISHING = "publishing"
    CLEANING_UP = "cleaning_up"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class PublishMetadata:
    """Metadata sent with the platform's create-video call.

    Attributes:
        title: Video title
        description: Video description
        tags: Video tags
        category_id: YouTube category ID
        privacy_status: Privacy setting
        publish_at: Scheduled publish instant (platform requires private)
    """

    title: str
    description: str = ""
    tags: list[str] = field(default_factory=list)
    category_id: str = "22"
    privacy_status: PrivacyStatus = PrivacyStatus.PRIVATE
    publish_at: datetime | None = None


@dataclass
class PublishRequest:
    """One request to publish a remote video.

    Attributes:
        video_url: URL of the source video bytes
        metadata: Publish metadata
    """

    video_url: str | None
    metadata: PublishMetadata


@dataclass
class PublishOutcome:
    """Result of a completed run.

    Attributes:
        run_id: Run identifier
        video_id: Published video ID
        url: Short URL of the published video
    """

    run_id: str
    video_id: str
    url: str


@dataclass
class PipelineRun:
    """Ephemeral state of one transfer-and-publish run.

    Attributes:
        subject_id: Subject id from the request
        run_id: Unique run identifier
        object_key: Staged object key, once allocated
        artifact: Local artifact, once allocated
        video_id: Published video ID on success
        error: Classified error on failure
        cleanup_errors: Failures recorded while releasing resources
    """

    subject_id: str | None
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    object_key: str | None = None
    artifact: "LocalArtifact | None" = None
    video_id: str | None = None
    error: ReelayError | None = None
    cleanup_errors: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    completed_at: datetime | None = None
    machine: StateMachine = field(default_factory=create_run_state_machine, repr=False)

    @property
    def state(self) -> RunState:
        """Current run state."""
        return self.machine.current

    def advance(self, target: RunState) -> None:
        """Move the run to the next state."""
        self.machine.transition(target)


__all__ = [
    "PipelineRun",
    "PrivacyStatus",
    "PublishMetadata",
    "PublishOutcome",
    "PublishRequest",
    "RunState",
]
