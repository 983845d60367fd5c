"""Remote source fetcher.

Opens a forward-only read stream against an arbitrary source URL. A source
is only accepted when it declares an explicit Content-Length, since staging
must declare the object size before the transfer begins.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from urllib.parse import urlsplit

import httpx

from app.core.exceptions import FetchError, LengthUnknownError
from app.core.logging import get_logger
from app.core.types import ByteStream
from app.infrastructure.http_client import HTTPClient

logger = get_logger(__name__)

# Upper bound on the error body echoed back as details
MAX_ERROR_BODY = 500


@dataclass
class SourceStream:
    """An opened remote source.

    Attributes:
        url: Source URL
        length: Declared byte length
        content_type: Declared media type, if any
        stream: Byte chunks, consumable exactly once
    """

    url: str
    length: int
    content_type: str | None
    stream: ByteStream


def redact_url(url: str | None) -> str | None:
    """Drop userinfo, query and fragment, which may carry presigned credentials."""
    if not url:
        return url
    parts = urlsplit(url)
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return f"{parts.scheme}://{host}{parts.path}"


def parse_content_length(value: str | None) -> int | None:
    """Parse a Content-Length header value.

    Returns:
        Non-negative length, or None if absent or unparseable
    """
    if value is None:
        return None
    value = value.strip()
    if not value.isdigit():
        return None
    return int(value)


class RemoteFetcher:
    """Open remote sources for staging.

    Example:
        >>> fetcher = RemoteFetcher(http_client)
        >>> async with fetcher.open("https://example.com/a.mp4") as source:
        ...     key = await stager.stage(source.stream, source.length)
    """

    def __init__(self, http_client: HTTPClient) -> None:
        self.http_client = http_client

    @asynccontextmanager
    async def open(self, url: str) -> AsyncIterator[SourceStream]:
        """Open a read stream against url.

        The underlying response is closed when the context exits.

        Args:
            url: Source URL

        Yields:
            SourceStream with declared length

        Raises:
            LengthUnknownError: If the response declares no length
            FetchError: On transport failure or non-success status
        """
        source_url = redact_url(url)
        try:
            async with self.http_client.stream(
                "GET", url, headers={"Accept-Encoding": "identity"}
            ) as response:
                if not response.is_success:
                    body = await _read_error_body(response)
                    raise FetchError(
                        f"Video source responded with HTTP {response.status_code}",
                        source_url=source_url,
                        status_code=response.status_code,
                        details={"status": response.status_code, "body": body},
                    )

                length = parse_content_length(response.headers.get("content-length"))
                if length is None:
                    raise LengthUnknownError(source_url=source_url)

                logger.info("Source opened", source_url=source_url, length=length)
                yield SourceStream(
                    url=url,
                    length=length,
                    content_type=response.headers.get("content-type"),
                    stream=_counted_chunks(response, source_url, length),
                )
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch video source: {e}", source_url=source_url) from e


async def _read_error_body(response: httpx.Response) -> str:
    try:
        await response.aread()
    except httpx.HTTPError:
        return ""
    return response.text[:MAX_ERROR_BODY]


async def _counted_chunks(response: httpx.Response, source_url: str, length: int) -> ByteStream:
    """Yield raw body chunks and enforce the declared length."""
    received = 0
    try:
        async for chunk in response.aiter_raw():
            received += len(chunk)
            if received > length:
                raise FetchError(
                    f"Video source sent more than the declared {length} bytes",
                    source_url=source_url,
                )
            yield chunk
    except httpx.HTTPError as e:
        raise FetchError(f"Video source stream failed: {e}", source_url=source_url) from e

    if received != length:
        raise FetchError(
            f"Video source ended after {received} of {length} bytes",
            source_url=source_url,
        )


__all__ = [
    "RemoteFetcher",
    "SourceStream",
    "parse_content_length",
    "redact_url",
]
