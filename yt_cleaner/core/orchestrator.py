"""Transcript acquisition: source fallback plus concurrent metadata lookup.

WHY: Neither upstream is reliable on its own. The managed proxy is the
better source when a key is available, but its failures are often about
the key (quota, auth) rather than the video, and in those cases YouTube
itself may still serve captions. Conversely, when the proxy says the
video has no transcript, asking YouTube again only wastes the user's time.

HOW: acquire() fires two coroutines at once with asyncio.gather: cue
acquisition (primary source, then fallback) and the metadata lookup. The
metadata lookup cannot fail from the caller's point of view, so gather
never cancels cue acquisition because of it, and a cue failure is raised
only after both have settled.

RULES:
- Primary is tried only when both a primary source and a credential exist
  (request credential first, then the server-configured one)
- Primary failure with a definitive kind propagates; any other failure
  falls through to the fallback exactly once
- Fallback failure is always terminal
- Primary's incidental metadata is ignored; the fallback's is used only
  when the independent lookup produced nothing
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from yt_cleaner.adapters.base import TranscriptSource
from yt_cleaner.core.errors import TranscriptFetchError
from yt_cleaner.core.models import CaptionCue, FetchResult, RequestSession, VideoMetadata

logger = logging.getLogger(__name__)

MetadataLookup = Callable[[str], Awaitable[Optional[VideoMetadata]]]


@dataclass
class Acquisition:
    """Cues and best-known metadata for one request."""

    cues: List[CaptionCue]
    metadata: Optional[VideoMetadata]
    source: str


class AcquisitionOrchestrator:
    """Selects transcript sources in priority order for one request.

    Sources are owned by the caller (entered as async context managers
    around the orchestrator's lifetime); the orchestrator only calls them.
    """

    def __init__(
        self,
        fallback: TranscriptSource,
        primary: Optional[TranscriptSource] = None,
        server_credential: Optional[str] = None,
        metadata_lookup: Optional[MetadataLookup] = None,
    ) -> None:
        self._fallback = fallback
        self._primary = primary
        self._server_credential = server_credential
        self._metadata_lookup = metadata_lookup

    async def acquire(self, session: RequestSession) -> Acquisition:
        """Fetch cues and metadata for the session's video concurrently.

        Raises:
            TranscriptFetchError: when no source could produce cues.
        """
        result, metadata = await asyncio.gather(
            self.fetch_cues(session),
            self._lookup_metadata(session.video_id),
            return_exceptions=True,
        )
        if isinstance(result, BaseException):
            raise result
        if isinstance(metadata, BaseException):
            metadata = None
        return Acquisition(
            cues=result.cues,
            metadata=metadata or result.metadata,
            source=result.source,
        )

    async def fetch_cues(self, session: RequestSession) -> FetchResult:
        """Try the primary source, then the fallback, per the fallback rules."""
        credential = session.provider_credential or self._server_credential

        if self._primary is not None and credential:
            try:
                result = await self._primary.fetch(session.video_id, credential)
            except TranscriptFetchError as exc:
                if exc.definitive:
                    raise
                logger.warning(
                    "Primary source %s failed for %s (%s), falling back to %s",
                    self._primary.name, session.video_id, exc.kind.value,
                    self._fallback.name,
                )
            else:
                return FetchResult(cues=result.cues, source=result.source)

        return await self._fallback.fetch(session.video_id)

    async def _lookup_metadata(self, video_id: str) -> Optional[VideoMetadata]:
        if self._metadata_lookup is None:
            return None
        try:
            return await self._metadata_lookup(video_id)
        except Exception:
            logger.debug("Metadata lookup failed for %s", video_id, exc_info=True)
            return None
