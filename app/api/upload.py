"""Publish endpoint.

``POST /upload?userId=<sub>`` runs one transfer-and-publish pipeline run.
Errors raised by the run are rendered by the application's exception
handlers.
"""

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_app_config, get_publish_pipeline
from app.api.schemas import ErrorResponse, UploadRequest, UploadResponse
from app.core.config import Config
from app.services.uploader.pipeline import PublishPipeline

router = APIRouter(tags=["upload"])


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def upload(
    body: UploadRequest,
    user_id: str | None = Query(default=None, alias="userId"),
    pipeline: PublishPipeline = Depends(get_publish_pipeline),
    config: Config = Depends(get_app_config),
) -> UploadResponse:
    """Fetch, stage and publish a remote video on the user's channel."""
    outcome = await pipeline.run(user_id, body.to_publish_request(config.publish_defaults))
    return UploadResponse(video_id=outcome.video_id, url=outcome.url)
