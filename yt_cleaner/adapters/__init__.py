"""Caption source adapters: Supadata proxy, direct YouTube, metadata lookup.

WHY: Captions can come from a paid transcript proxy or straight from
YouTube's player endpoint. Both must look the same to the orchestrator.

HOW: Each source subclasses TranscriptSource, owns an httpx.AsyncClient
for the duration of an ``async with`` block, and returns a FetchResult or
raises TranscriptFetchError.

RULES:
- All upstream HTTP calls go through these adapters
- Upstream failures are classified into FetchErrorKind, never leaked raw
"""

from yt_cleaner.adapters.base import TranscriptSource
from yt_cleaner.adapters.metadata import fetch_video_metadata
from yt_cleaner.adapters.supadata import SupadataSource
from yt_cleaner.adapters.youtube import YouTubeDirectSource

__all__ = [
    "SupadataSource",
    "TranscriptSource",
    "YouTubeDirectSource",
    "fetch_video_metadata",
]
