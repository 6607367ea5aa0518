"""Best-effort video title and duration lookup.

WHY: The client shows the video's title and length above the transcript
while the rewrite runs. That is nice to have and nothing more, so a
failed lookup must never cost the user their transcript.

HOW: Two public endpoints, cheapest-to-most-reliable:
  1. The InnerTube player endpoint as the Android client (title + length).
  2. oEmbed, which only knows the title but is almost never blocked.
fetch_video_metadata() swallows every failure and returns None.

RULES:
- Never raises (except CancelledError, which must propagate)
- Empty titles count as failures and trigger the next endpoint
- oEmbed metadata has duration_s = 0
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from yt_cleaner.adapters.youtube import (
    android_player_payload,
    android_user_agent,
    metadata_from_player,
)
from yt_cleaner.config import ANDROID_CLIENT_VERSION, HTTP_TIMEOUT_S, YOUTUBE_BASE_URL
from yt_cleaner.core.models import VideoMetadata

logger = logging.getLogger(__name__)


async def fetch_video_metadata(
    video_id: str,
    base_url: str = YOUTUBE_BASE_URL,
    client_version: str = ANDROID_CLIENT_VERSION,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[VideoMetadata]:
    """Look up a video's title and duration, or return None."""
    kwargs = {"base_url": base_url, "timeout": httpx.Timeout(HTTP_TIMEOUT_S, connect=10.0)}
    if transport is not None:
        kwargs["transport"] = transport

    async with httpx.AsyncClient(**kwargs) as client:
        try:
            metadata = await _from_player(client, video_id, client_version)
            if metadata is not None:
                return metadata
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Player metadata lookup failed for %s: %s", video_id, exc)

        try:
            return await _from_oembed(client, video_id)
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("oEmbed metadata lookup failed for %s: %s", video_id, exc)
            return None


async def _from_player(
    client: httpx.AsyncClient,
    video_id: str,
    client_version: str,
) -> Optional[VideoMetadata]:
    resp = await client.post(
        "/youtubei/v1/player",
        params={"prettyPrint": "false"},
        json=android_player_payload(video_id, client_version),
        headers={"User-Agent": android_user_agent(client_version)},
    )
    resp.raise_for_status()
    data = resp.json()
    if not isinstance(data, dict):
        return None
    return metadata_from_player(data)


async def _from_oembed(client: httpx.AsyncClient, video_id: str) -> Optional[VideoMetadata]:
    resp = await client.get(
        "/oembed",
        params={
            "url": "https://www.youtube.com/watch?v={}".format(video_id),
            "format": "json",
        },
    )
    resp.raise_for_status()
    data = resp.json()
    title = str(data.get("title") or "").strip() if isinstance(data, dict) else ""
    if not title:
        return None
    return VideoMetadata(title=title, duration_s=0)
