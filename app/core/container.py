"""Dependency Injection Container.

This module provides a centralized DI container using dependency-injector.
Supports ASP.NET Core-style lifecycles:
- Singleton: One instance for the entire application
- Transient: New instance every time (Factory)

Process-wide clients (database engine, HTTP client, S3 client, OAuth client)
are Singletons created lazily on first use and closed by the application
lifespan. A publish pipeline is assembled per request.

Usage:
    # In FastAPI
    from app.core.container import get_container

    @app.post("/upload")
    async def upload(container: ApplicationContainer = Depends(get_container)):
        pipeline = container.publish_pipeline()
        ...

    # In tests
    with container.credential_store.override(mock_store):
        ...
"""

import inspect
from typing import Any

from dependency_injector import containers, providers
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import Config, get_config
from app.core.database import close_db
from app.core.logging import get_logger

logger = get_logger(__name__)


def track_opened(resource: Any, registry: list) -> Any:
    """Record a process-wide client so shutdown closes only what was created."""
    registry.append(resource)
    return resource


class InfrastructureContainer(containers.DeclarativeContainer):
    """Infrastructure layer dependencies (database, storage, external clients).

    These are Singleton and have explicit startup/shutdown lifecycle.
    """

    global_config = providers.Dependency(instance_of=Config)

    # Clients created so far, in creation order
    opened = providers.Singleton(list)

    # ============================================
    # Database
    # ============================================

    db_engine = providers.Singleton(
        track_opened,
        providers.Factory(
            create_async_engine,
            url=global_config.provided.database_url,
            echo=global_config.provided.database_echo,
            pool_pre_ping=True,
            pool_size=global_config.provided.database_pool_size,
            max_overflow=global_config.provided.database_max_overflow,
        ),
        registry=opened,
    )

    db_session_factory = providers.Singleton(
        async_sessionmaker,
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    # ============================================
    # HTTP Client (remote video sources)
    # ============================================

    http_client = providers.Singleton(
        track_opened,
        providers.Factory(
            "app.infrastructure.http_client.HTTPClient",
            timeout=global_config.provided.fetch_timeout_seconds,
            max_connections=global_config.provided.fetch_max_connections,
        ),
        registry=opened,
    )

    # ============================================
    # Object Storage (S3-compatible)
    # ============================================

    s3_client = providers.Singleton(
        "app.infrastructure.object_storage.create_s3_client",
        config=global_config,
    )

    object_stager = providers.Singleton(
        track_opened,
        providers.Factory(
            "app.infrastructure.object_storage.ObjectStager",
            client=s3_client,
            bucket=global_config.provided.r2_bucket_name,
            key_prefix=global_config.provided.r2_key_prefix,
            artifact_dir=global_config.provided.local_artifact_dir,
        ),
        registry=opened,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Service layer dependencies.

    Stateful clients are Singleton so concurrent runs share one refresh
    lock per subject. The pipeline is Transient (Factory).
    """

    global_config = providers.Dependency(instance_of=Config)
    infrastructure = providers.DependenciesContainer()

    # ============================================
    # Credentials
    # ============================================

    credential_store = providers.Singleton(
        "app.services.credential_store.CredentialStore",
        db_session_factory=infrastructure.db_session_factory,
    )

    youtube_auth = providers.Singleton(
        "app.infrastructure.youtube_auth.YouTubeAuthClient",
        client_id=global_config.provided.google_client_id,
        client_secret=global_config.provided.google_client_secret,
        redirect_uri=global_config.provided.google_redirect_uri,
        credential_store=credential_store,
    )

    # ============================================
    # Transfer and Publish
    # ============================================

    youtube_publisher = providers.Singleton(
        "app.infrastructure.youtube_api.YouTubePublishClient",
        auth_client=youtube_auth,
        chunk_size=global_config.provided.upload_chunk_size,
    )

    remote_fetcher = providers.Factory(
        "app.services.uploader.fetcher.RemoteFetcher",
        http_client=infrastructure.http_client,
    )

    publish_pipeline = providers.Factory(
        "app.services.uploader.pipeline.PublishPipeline",
        credential_store=credential_store,
        fetcher=remote_fetcher,
        stager=infrastructure.object_stager,
        publisher=youtube_publisher,
        run_timeout=global_config.provided.run_timeout_seconds,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Root application container.

    Composes all sub-containers and provides the main entry point.
    """

    # Global Config singleton (environment variables)
    # Uses get_config() to ensure same instance across the app
    config = providers.Singleton(get_config)

    # Sub-containers
    infrastructure = providers.Container(
        InfrastructureContainer,
        global_config=config,
    )

    services = providers.Container(
        ServiceContainer,
        global_config=config,
        infrastructure=infrastructure,
    )

    # ============================================
    # Convenience accessors (shortcuts)
    # ============================================

    # Infrastructure
    db_engine = providers.Singleton(
        lambda engine: engine,
        engine=infrastructure.db_engine,
    )

    http_client = providers.Singleton(
        lambda client: client,
        client=infrastructure.http_client,
    )

    object_stager = providers.Singleton(
        lambda stager: stager,
        stager=infrastructure.object_stager,
    )

    # Services
    credential_store = providers.Singleton(
        lambda svc: svc,
        svc=services.credential_store,
    )

    youtube_auth = providers.Singleton(
        lambda svc: svc,
        svc=services.youtube_auth,
    )

    publish_pipeline = providers.Factory(
        lambda svc: svc,
        svc=services.publish_pipeline,
    )


def create_container() -> ApplicationContainer:
    """Create and configure the application container.

    Returns:
        Configured ApplicationContainer instance
    """
    return ApplicationContainer()


# Global container instance
container = create_container()


# ============================================
# FastAPI Integration
# ============================================


def get_container() -> ApplicationContainer:
    """Get the global container (for FastAPI Depends)."""
    return container


async def shutdown_container(app_container: ApplicationContainer | None = None) -> None:
    """Close the process-wide clients held by the container.

    Only clients that were actually created are closed, newest first. A
    client that fails to close does not keep the others open.

    Args:
        app_container: Container to shut down (global container by default)
    """
    target = app_container or container
    opened = target.infrastructure.opened()

    failures = 0
    for resource in reversed(opened):
        try:
            await _release(resource)
        except Exception as e:
            failures += 1
            logger.warning(
                "Failed to close client",
                client=type(resource).__name__,
                error=str(e),
                exc_info=True,
            )

    opened.clear()
    target.reset_singletons()
    logger.info("Container resources released", failures=failures)


async def _release(resource: Any) -> None:
    if isinstance(resource, AsyncEngine):
        await close_db(resource)
        return
    result = resource.close()
    if inspect.isawaitable(result):
        await result


__all__ = [
    "ApplicationContainer",
    "InfrastructureContainer",
    "ServiceContainer",
    "container",
    "create_container",
    "get_container",
    "shutdown_container",
    "track_opened",
]
