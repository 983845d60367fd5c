"""Object storage stager for an S3-compatible bucket.

Stages source streams into durable intermediate storage (Cloudflare R2 or
any S3-compatible service), downloads staged objects into run-local file
artifacts, and deletes staged objects. boto3 is synchronous, so every call
runs in a worker thread.
"""

import asyncio
import io
import os
import tempfile
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import Config
from app.core.exceptions import (
    ConfigNotFoundError,
    FetchError,
    StorageReadError,
    StorageWriteError,
)
from app.core.logging import get_logger
from app.core.types import ByteStream

logger = get_logger(__name__)

# Multipart part size; bounds the bytes held in memory per part
DEFAULT_PART_SIZE = 8 * 1024 * 1024

# Seconds a worker thread waits for the next source chunk
DEFAULT_CHUNK_TIMEOUT = 120.0


def create_s3_client(config: Config) -> Any:
    """Create the process-wide S3 client from configuration.

    Retries are disabled: a failed write leaves the object state unknown and
    must be surfaced, not replayed.

    Raises:
        ConfigNotFoundError: If storage credentials or bucket are missing
    """
    if not config.storage_configured:
        raise ConfigNotFoundError("r2_bucket_name")

    return boto3.client(
        "s3",
        endpoint_url=config.r2_endpoint_url or None,
        region_name=config.r2_region,
        aws_access_key_id=config.r2_access_key_id,
        aws_secret_access_key=config.r2_secret_access_key,
        config=BotoConfig(
            s3={"addressing_style": "path"},
            retries={"total_max_attempts": 1, "mode": "standard"},
            request_checksum_calculation="when_required",
            response_checksum_validation="when_required",
        ),
    )


@dataclass
class LocalArtifact:
    """Run-local file copy of a staged object.

    Attributes:
        path: Location of the file
        size: Size in bytes
        object_key: Staged object the file was read from
    """

    path: Path
    size: int
    object_key: str

    def release(self) -> None:
        """Remove the file. Safe to call more than once."""
        self.path.unlink(missing_ok=True)


class _StreamReader(io.RawIOBase):
    """Blocking file-like view over an async byte stream.

    Read from a worker thread while the event loop that owns the stream
    keeps running.
    """

    def __init__(
        self,
        stream: ByteStream,
        loop: asyncio.AbstractEventLoop,
        chunk_timeout: float = DEFAULT_CHUNK_TIMEOUT,
    ) -> None:
        super().__init__()
        self._stream = stream
        self._loop = loop
        self._chunk_timeout = chunk_timeout
        self._buffer = b""
        self._eof = False
        self.bytes_read = 0
        self.source_error: BaseException | None = None

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        while not self._buffer and not self._eof:
            future = asyncio.run_coroutine_threadsafe(self._next_chunk(), self._loop)
            try:
                chunk = future.result(timeout=self._chunk_timeout)
            except TimeoutError:
                future.cancel()
                self.source_error = FetchError(
                    f"Video source stalled for {self._chunk_timeout}s"
                )
                raise self.source_error from None
            if chunk is None:
                self._eof = True
            else:
                self._buffer = chunk

        if not self._buffer:
            return 0

        n = min(len(b), len(self._buffer))
        b[:n] = self._buffer[:n]
        self._buffer = self._buffer[n:]
        self.bytes_read += n
        return n

    async def _next_chunk(self) -> bytes | None:
        try:
            return await anext(self._stream)
        except StopAsyncIteration:
            return None
        except BaseException as e:
            self.source_error = e
            raise


class ObjectStager:
    """Durable intermediate storage for source bytes.

    Example:
        >>> stager = ObjectStager(s3_client, bucket="videos")
        >>> key = stager.generate_key()
        >>> await stager.stage(source.stream, source.length, key=key)
        >>> artifact = await stager.materialize(key)
        >>> artifact.release()
        >>> await stager.delete(key)
    """

    def __init__(
        self,
        client: Any,
        bucket: str,
        key_prefix: str = "",
        artifact_dir: Path | str | None = None,
        part_size: int = DEFAULT_PART_SIZE,
        chunk_timeout: float = DEFAULT_CHUNK_TIMEOUT,
    ) -> None:
        """Initialize object stager.

        Args:
            client: boto3 S3 client
            bucket: Bucket holding staged objects
            key_prefix: Prefix prepended to generated keys
            artifact_dir: Directory for local artifacts (system temp by default)
            part_size: Multipart part size in bytes
            chunk_timeout: Seconds to wait for each source chunk
        """
        if not bucket:
            raise ConfigNotFoundError("r2_bucket_name")

        self._client = client
        self.bucket = bucket
        self.key_prefix = key_prefix
        self.artifact_dir = Path(artifact_dir) if artifact_dir else Path(tempfile.gettempdir())
        self.chunk_timeout = chunk_timeout
        self._transfer_config = TransferConfig(
            multipart_threshold=part_size,
            multipart_chunksize=part_size,
            max_concurrency=2,
        )

    def generate_key(self) -> str:
        """Allocate a fresh object key (epoch millis plus random suffix)."""
        return f"{self.key_prefix}video_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}.mp4"

    async def stage(
        self,
        stream: ByteStream,
        length: int,
        key: str | None = None,
        content_type: str | None = None,
    ) -> str:
        """Write a stream of known length under a fresh key.

        No retry is attempted. On failure the object state is unknown and
        the caller must delete the key.

        Args:
            stream: Source byte chunks
            length: Declared byte length
            key: Pre-allocated key (generated when omitted)
            content_type: Media type stored with the object

        Returns:
            The object key

        Raises:
            StorageWriteError: On transport or quota failure
            TransferError: If the source stream itself failed
        """
        key = key or self.generate_key()
        reader = _StreamReader(stream, asyncio.get_running_loop(), self.chunk_timeout)
        extra_args = {"ContentType": content_type or "video/mp4"}

        logger.info("Staging object", object_key=key, length=length)
        try:
            await asyncio.to_thread(
                self._client.upload_fileobj,
                reader,
                self.bucket,
                key,
                ExtraArgs=extra_args,
                Config=self._transfer_config,
            )
        except Exception as e:
            if reader.source_error is not None:
                raise reader.source_error from e
            raise StorageWriteError(
                f"Failed to stage object: {e}",
                object_key=key,
                bucket=self.bucket,
                details=_client_error_payload(e),
            ) from e

        if reader.bytes_read != length:
            raise StorageWriteError(
                f"Staged {reader.bytes_read} bytes, expected {length}",
                object_key=key,
                bucket=self.bucket,
            )

        logger.info("Object staged", object_key=key, length=length)
        return key

    async def materialize(self, key: str, run_id: str | None = None) -> LocalArtifact:
        """Download a staged object into an exclusively-owned local file.

        The file handle is closed on every path; a partial file is removed
        when the download does not complete.

        Args:
            key: Staged object key
            run_id: Run identifier, used in the file name

        Returns:
            LocalArtifact for the downloaded bytes

        Raises:
            StorageReadError: If the key is missing or unreadable
        """
        self.artifact_dir.mkdir(parents=True, exist_ok=True)
        fd, raw_path = tempfile.mkstemp(
            prefix=f"reelay_{run_id or 'run'}_",
            suffix=Path(key).suffix,
            dir=self.artifact_dir,
        )
        path = Path(raw_path)
        completed = False
        try:
            with os.fdopen(fd, "wb") as fh:
                await asyncio.to_thread(self._client.download_fileobj, self.bucket, key, fh)
            completed = True
        except (ClientError, BotoCoreError, OSError) as e:
            raise StorageReadError(
                f"Failed to read staged object: {e}",
                object_key=key,
                bucket=self.bucket,
                details=_client_error_payload(e),
            ) from e
        finally:
            if not completed:
                path.unlink(missing_ok=True)

        artifact = LocalArtifact(path=path, size=path.stat().st_size, object_key=key)
        logger.info("Object materialized", object_key=key, path=str(path), size=artifact.size)
        return artifact

    async def delete(self, key: str) -> bool:
        """Remove a staged object, best-effort.

        Deleting a missing key succeeds.

        Returns:
            True if the store acknowledged the delete
        """
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.warning("Failed to delete staged object", object_key=key, error=str(e))
            return False

        logger.info("Staged object deleted", object_key=key)
        return True

    def close(self) -> None:
        """Close the underlying client's connection pool."""
        close = getattr(self._client, "close", None)
        if callable(close):
            close()


def _client_error_payload(error: Exception) -> dict[str, Any] | None:
    if isinstance(error, ClientError):
        return error.response.get("Error")
    return None


__all__ = [
    "LocalArtifact",
    "ObjectStager",
    "create_s3_client",
]
