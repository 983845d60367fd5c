"""Transfer-and-publish services.

This module provides services for moving a remote video onto YouTube:
- RemoteFetcher: Open a length-declared source stream
- PublishPipeline: Run orchestration with unconditional cleanup
"""

from app.services.uploader.fetcher import RemoteFetcher, SourceStream
from app.services.uploader.pipeline import PublishPipeline

__all__ = [
    "PublishPipeline",
    "RemoteFetcher",
    "SourceStream",
]
