"""YouTube Data API publish client.

This module creates videos on a user's channel through the Data API's
resumable upload protocol, using delegated credentials from the credential
store. Calls are made once; failures are classified, never retried.
"""

import asyncio
import json
import time
from typing import Any

from google.auth.exceptions import RefreshError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import AuthExpiredError, PublishError, QuotaExceededError, ReelayError
from app.core.logging import get_logger
from app.infrastructure.object_storage import LocalArtifact
from app.infrastructure.youtube_auth import YouTubeAuthClient
from app.models.credential import CredentialRecord
from app.models.publish import PublishMetadata

logger = get_logger(__name__)

# Resumable upload chunk size (8MB)
DEFAULT_CHUNK_SIZE = 8 * 1024 * 1024

# Error reasons that mean the daily quota is spent
QUOTA_REASONS = frozenset({"quotaExceeded", "dailyLimitExceeded", "rateLimitExceeded"})


def build_video_body(metadata: PublishMetadata) -> dict[str, Any]:
    """Build request body for videos.insert.

    Args:
        metadata: Video metadata

    Returns:
        Request body dictionary
    """
    body: dict[str, Any] = {
        "snippet": {
            "title": metadata.title[:100],  # YouTube limit
            "description": metadata.description[:5000],  # YouTube limit
            "tags": list(metadata.tags),
            "categoryId": metadata.category_id,
        },
        "status": {
            "privacyStatus": str(getattr(metadata.privacy_status, "value", metadata.privacy_status)),
        },
    }

    if metadata.publish_at:
        body["status"]["publishAt"] = metadata.publish_at.isoformat()

    return body


def _error_payload(error: HttpError) -> Any:
    content = error.content
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    try:
        return json.loads(content)
    except (TypeError, ValueError):
        return content or None


def _error_reason(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    errors = payload.get("error", {}).get("errors") or []
    if errors and isinstance(errors[0], dict):
        return errors[0].get("reason")
    return None


def classify_http_error(error: HttpError, subject_id: str | None = None) -> Exception:
    """Map a Data API error to the pipeline's error taxonomy.

    Args:
        error: Error raised by the API client
        subject_id: Subject the call was made for

    Returns:
        QuotaExceededError, AuthExpiredError or PublishError
    """
    status = error.resp.status
    payload = _error_payload(error)
    reason = _error_reason(payload)

    if status == 403 and (reason in QUOTA_REASONS or "quotaExceeded" in str(payload)):
        return QuotaExceededError(details=payload)
    if status == 401:
        return AuthExpiredError(token_type="access", user_id=subject_id, details=payload)
    return PublishError(
        f"YouTube API responded with HTTP {status}",
        status_code=status,
        error_reason=reason,
        details=payload,
    )


class YouTubePublishClient:
    """Create videos on a user's channel.

    Example:
        >>> client = YouTubePublishClient(auth_client)
        >>> video_id = await client.publish(record, metadata, artifact)
        >>> print(f"https://youtu.be/{video_id}")
    """

    def __init__(
        self,
        auth_client: YouTubeAuthClient,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """Initialize YouTube publish client.

        Args:
            auth_client: Auth client used for delegated credentials
            chunk_size: Upload chunk size in bytes
        """
        self.auth_client = auth_client
        self.chunk_size = chunk_size

        logger.info("YouTubePublishClient initialized", chunk_size=chunk_size)

    async def publish(
        self,
        credential: CredentialRecord,
        metadata: PublishMetadata,
        artifact: LocalArtifact,
    ) -> str:
        """Create a video from a local artifact.

        Refreshes the access token first if it is expired. A token the
        Google client refreshes on its own during the upload is persisted
        before returning.

        Args:
            credential: Delegated credential of the channel owner
            metadata: Video metadata
            artifact: Local file holding the video bytes

        Returns:
            The platform-assigned video ID

        Raises:
            AuthExpiredError: If the grant is invalid or revoked
            QuotaExceededError: If API quota is exceeded
            PublishError: If the platform rejects the call
        """
        creds = await self.auth_client.ensure_fresh(credential)
        issued_token = creds.token
        youtube = await asyncio.to_thread(
            build, "youtube", "v3", credentials=creds, cache_discovery=False
        )

        body = build_video_body(metadata)
        media = MediaFileUpload(
            str(artifact.path),
            chunksize=self.chunk_size,
            resumable=True,
            mimetype="video/*",
        )

        logger.info(
            "Starting video upload",
            subject_id=credential.subject_id,
            title=metadata.title,
            file_size=artifact.size,
        )

        start_time = time.time()
        try:
            request = youtube.videos().insert(
                part="snippet,status",
                body=body,
                media_body=media,
            )
            response = None
            while response is None:
                status, response = await asyncio.to_thread(request.next_chunk)
                if status:
                    progress = int(status.progress() * 100)
                    logger.debug("Upload progress", progress=f"{progress}%")

        except HttpError as e:
            raise classify_http_error(e, credential.subject_id) from e
        except RefreshError as e:
            raise AuthExpiredError(user_id=credential.subject_id, details={"error": str(e)}) from e
        except Exception as e:
            raise PublishError(f"Upload failed: {e}") from e
        finally:
            media.stream().close()

        video_id = response["id"]
        logger.info(
            "Video uploaded successfully",
            video_id=video_id,
            upload_time_seconds=f"{time.time() - start_time:.1f}",
        )

        # The video exists now; a failed token write must not hide its id
        try:
            await self.auth_client.persist_rotated(credential.subject_id, issued_token, creds)
        except (ReelayError, SQLAlchemyError) as e:
            logger.error(
                "Failed to persist rotated access token",
                subject_id=credential.subject_id,
                video_id=video_id,
                error=str(e),
            )
        return video_id


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "YouTubePublishClient",
    "build_video_body",
    "classify_http_error",
]
