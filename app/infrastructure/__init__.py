"""Infrastructure layer components.

This module provides infrastructure components: the shared HTTP client,
S3-compatible object storage, and Google OAuth / YouTube Data API clients.
"""

from app.infrastructure.http_client import HTTPClient
from app.infrastructure.object_storage import LocalArtifact, ObjectStager
from app.infrastructure.youtube_api import YouTubePublishClient
from app.infrastructure.youtube_auth import YouTubeAuthClient

__all__ = [
    "HTTPClient",
    "LocalArtifact",
    "ObjectStager",
    "YouTubeAuthClient",
    "YouTubePublishClient",
]
