"""Request and response schemas for the HTTP surface."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.core.config import PublishDefaults
from app.models.publish import PrivacyStatus, PublishMetadata, PublishRequest


class UploadRequest(BaseModel):
    """Body of ``POST /upload``.

    ``video_url`` is optional at the schema level so a missing URL is
    reported as a validation failure of the run rather than a 422.
    """

    video_url: str | None = Field(default=None, description="URL of the source video")
    title: str = Field(default="", description="Video title")
    description: str = Field(default="", description="Video description")
    tags: list[str] = Field(default_factory=list, description="Video tags")
    category_id: str | None = Field(default=None, description="YouTube category ID")
    privacy_status: Literal["public", "private", "unlisted"] | None = Field(
        default=None, description="Privacy setting"
    )
    publish_at: datetime | None = Field(default=None, description="Scheduled publish time")

    def to_publish_request(self, defaults: PublishDefaults) -> PublishRequest:
        """Build the pipeline request, filling omitted metadata from defaults."""
        return PublishRequest(
            video_url=self.video_url,
            metadata=PublishMetadata(
                title=self.title,
                description=self.description,
                tags=list(self.tags),
                category_id=self.category_id or defaults.category_id,
                privacy_status=PrivacyStatus(self.privacy_status or defaults.privacy_status),
                publish_at=self.publish_at,
            ),
        )


class UploadResponse(BaseModel):
    """Body of a successful ``POST /upload``."""

    video_id: str = Field(serialization_alias="videoId")
    message: str = "Video uploaded successfully"
    url: str


class AuthCallbackResponse(BaseModel):
    """Body of a successful ``GET /auth/callback``."""

    message: str = "Authentication successful"
    user_id: str = Field(serialization_alias="userId")


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str
    details: object | None = None


__all__ = [
    "AuthCallbackResponse",
    "ErrorResponse",
    "UploadRequest",
    "UploadResponse",
]
