"""FastAPI dependencies backed by the DI container."""

from fastapi import Depends

from app.core.config import Config
from app.core.container import ApplicationContainer, get_container
from app.infrastructure.youtube_auth import YouTubeAuthClient
from app.services.credential_store import CredentialStore
from app.services.uploader.pipeline import PublishPipeline


def get_app_config(container: ApplicationContainer = Depends(get_container)) -> Config:
    return container.config()


def get_credential_store(
    container: ApplicationContainer = Depends(get_container),
) -> CredentialStore:
    return container.credential_store()


def get_youtube_auth(
    container: ApplicationContainer = Depends(get_container),
) -> YouTubeAuthClient:
    return container.youtube_auth()


def get_publish_pipeline(
    container: ApplicationContainer = Depends(get_container),
) -> PublishPipeline:
    """Assemble a pipeline for one request."""
    return container.publish_pipeline()


__all__ = [
    "get_app_config",
    "get_credential_store",
    "get_publish_pipeline",
    "get_youtube_auth",
]
