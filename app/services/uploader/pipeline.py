"""Publish pipeline service.

This module provides the PublishPipeline that drives one transfer-and-publish
run through its states:

    idle -> authenticating -> fetching -> staging -> materializing
         -> publishing -> cleaning_up -> completed | failed

Every resource a run acquires (staged object key, local artifact) is
registered on the run's exit stack as soon as it is owned and released on
every exit path, success or failure.
"""

import asyncio
from contextlib import AsyncExitStack
from datetime import UTC, datetime

from structlog.contextvars import bound_contextvars

from app.core.exceptions import (
    InvalidPublishRequestError,
    ReelayError,
    RunTimeoutError,
    UnauthenticatedError,
)
from app.core.logging import get_logger
from app.infrastructure.object_storage import LocalArtifact, ObjectStager
from app.infrastructure.youtube_api import YouTubePublishClient
from app.models.publish import PipelineRun, PublishOutcome, PublishRequest, RunState
from app.services.credential_store import CredentialStore
from app.services.uploader.fetcher import RemoteFetcher, redact_url

logger = get_logger(__name__)

YOUTUBE_SHORT_URL = "https://youtu.be/{video_id}"


class PublishPipeline:
    """Orchestrate a remote video from source URL to published video.

    Runs are independent; the only state shared between concurrent runs is
    the credential store. Nothing is retried.

    Example:
        >>> pipeline = PublishPipeline(
        ...     credential_store=store,
        ...     fetcher=fetcher,
        ...     stager=stager,
        ...     publisher=publish_client,
        ... )
        >>> outcome = await pipeline.run("1234", request)
        >>> print(outcome.url)
    """

    def __init__(
        self,
        credential_store: CredentialStore,
        fetcher: RemoteFetcher,
        stager: ObjectStager,
        publisher: YouTubePublishClient,
        run_timeout: float | None = None,
    ) -> None:
        """Initialize publish pipeline.

        Args:
            credential_store: Source of delegated credentials
            fetcher: Remote source fetcher
            stager: Intermediate object storage
            publisher: Platform publish client
            run_timeout: Bound on the run's working steps, in seconds
        """
        self.credential_store = credential_store
        self.fetcher = fetcher
        self.stager = stager
        self.publisher = publisher
        self.run_timeout = run_timeout

    async def run(self, subject_id: str | None, request: PublishRequest) -> PublishOutcome:
        """Run the pipeline for one request.

        Args:
            subject_id: Subject id carried on the request
            request: Publish request

        Returns:
            PublishOutcome with the published video ID

        Raises:
            ReelayError: The classified error of the step that failed first
        """
        return await self.execute(PipelineRun(subject_id=subject_id), request)

    async def execute(self, run: PipelineRun, request: PublishRequest) -> PublishOutcome:
        """Drive an existing run to a terminal state.

        Args:
            run: Run in the idle state
            request: Publish request

        Returns:
            PublishOutcome with the published video ID
        """
        with bound_contextvars(run_id=run.run_id, subject_id=run.subject_id):
            logger.info("Publish run started", source_url=redact_url(request.video_url))
            self._check_request(run, request)

            stack = AsyncExitStack()
            try:
                run.video_id = await self._execute_bounded(run, request, stack)
            except BaseException as e:
                if isinstance(e, ReelayError):
                    run.error = e
                elif isinstance(e, Exception):
                    logger.error("Unclassified error in publish run", exc_info=e)
                await asyncio.shield(self._finish(run, stack))
                raise

            await asyncio.shield(self._finish(run, stack))
            return PublishOutcome(
                run_id=run.run_id,
                video_id=run.video_id,
                url=YOUTUBE_SHORT_URL.format(video_id=run.video_id),
            )

    def _check_request(self, run: PipelineRun, request: PublishRequest) -> None:
        """Fail the run from idle before any resource is touched."""
        error: ReelayError | None = None
        if not run.subject_id:
            error = UnauthenticatedError()
        elif not request.video_url:
            error = InvalidPublishRequestError("Video URL is required", field="video_url")

        if error is not None:
            run.error = error
            run.advance(RunState.FAILED)
            run.completed_at = datetime.now(tz=UTC)
            logger.warning("Publish run rejected", error=error.message)
            raise error

    async def _execute_bounded(
        self,
        run: PipelineRun,
        request: PublishRequest,
        stack: AsyncExitStack,
    ) -> str:
        try:
            async with asyncio.timeout(self.run_timeout) as scope:
                return await self._execute(run, request, stack)
        except TimeoutError as e:
            if scope.expired():
                raise RunTimeoutError(self.run_timeout, state=run.state.value) from e
            raise

    async def _execute(
        self,
        run: PipelineRun,
        request: PublishRequest,
        stack: AsyncExitStack,
    ) -> str:
        run.advance(RunState.AUTHENTICATING)
        credential = await self.credential_store.get(run.subject_id)

        run.advance(RunState.FETCHING)
        async with self.fetcher.open(request.video_url) as source:
            run.advance(RunState.STAGING)
            key = self.stager.generate_key()
            run.object_key = key
            stack.push_async_callback(self._delete_staged, run, key)
            await self.stager.stage(
                source.stream,
                source.length,
                key=key,
                content_type=source.content_type,
            )

        run.advance(RunState.MATERIALIZING)
        artifact = await self.stager.materialize(key, run_id=run.run_id)
        run.artifact = artifact
        stack.callback(self._release_artifact, run, artifact)

        run.advance(RunState.PUBLISHING)
        return await self.publisher.publish(credential, request.metadata, artifact)

    async def _finish(self, run: PipelineRun, stack: AsyncExitStack) -> None:
        """Release everything the run owns, then settle its final state."""
        run.advance(RunState.CLEANING_UP)
        await stack.aclose()
        run.completed_at = datetime.now(tz=UTC)

        if run.error is None and run.video_id:
            run.advance(RunState.COMPLETED)
            logger.info(
                "Publish run completed",
                video_id=run.video_id,
                cleanup_errors=len(run.cleanup_errors),
            )
        else:
            run.advance(RunState.FAILED)
            logger.error(
                "Publish run failed",
                error=run.error.message if run.error else "aborted",
                error_type=type(run.error).__name__ if run.error else None,
                cleanup_errors=len(run.cleanup_errors),
            )

    async def _delete_staged(self, run: PipelineRun, key: str) -> None:
        try:
            deleted = await self.stager.delete(key)
        except Exception as e:
            logger.warning("Staged object cleanup raised", object_key=key, error=str(e))
            deleted = False
        if not deleted:
            run.cleanup_errors.append(f"staged object not deleted: {key}")

    def _release_artifact(self, run: PipelineRun, artifact: LocalArtifact) -> None:
        try:
            artifact.release()
        except OSError as e:
            logger.warning("Local artifact cleanup failed", path=str(artifact.path), error=str(e))
            run.cleanup_errors.append(f"local artifact not removed: {artifact.path}")


__all__ = ["PublishPipeline", "YOUTUBE_SHORT_URL"]
