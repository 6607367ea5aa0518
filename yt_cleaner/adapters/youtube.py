"""Fallback transcript source that reads caption tracks from YouTube directly.

WHY: When no transcript proxy key is available, or the proxy fails for a
reason that says nothing about the video itself, captions can still be
read from YouTube. Desktop web clients get throttled and challenged far
more often than the mobile app, so the caption track listing is requested
as the Android client.

HOW: Three requests:
  1. GET the public watch page to read the InnerTube API key. EU visitors
     may get a consent interstitial first; its form token is turned into a
     CONSENT cookie and the page is fetched once more.
  2. POST /youtubei/v1/player as the ANDROID client. The response carries
     the playability status, the caption track list, and video details.
  3. GET the chosen track's baseUrl and parse the <text> entries.

RULES:
- Body containing the reCAPTCHA marker, or a playability reason mentioning
  bots → ACCESS_BLOCKED
- HTTP 429 from YouTube → TOO_MANY_REQUESTS
- Tracks whose baseUrl carries exp=xpe need a proof-of-origin token we
  cannot mint; they are discarded, and if none remain → VERIFICATION_REQUIRED
- Track priority: manual English > any English > any manual > first
- Caption XML is parsed with ElementTree; text is HTML-entity-decoded once
  more (HTML escaping under the XML escaping) and stripped of inline tags
- Unparseable caption XML → PROVIDER_TRANSIENT
- videoDetails title/lengthSeconds are returned as incidental metadata
- Network failures map to PROVIDER_TRANSIENT
"""

from __future__ import annotations

import html
import logging
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

import httpx

from yt_cleaner.adapters.base import TranscriptSource
from yt_cleaner.config import ANDROID_CLIENT_VERSION, YOUTUBE_BASE_URL
from yt_cleaner.core.errors import FetchErrorKind, TranscriptFetchError
from yt_cleaner.core.models import CaptionCue, FetchResult, VideoMetadata

logger = logging.getLogger(__name__)

_DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
_RECAPTCHA_MARKER = 'class="g-recaptcha"'
_CONSENT_FORM_MARKER = 'action="https://consent.youtube.com/s"'
_PO_TOKEN_MARKER = "exp=xpe"

_API_KEY_RE = re.compile(r'"INNERTUBE_API_KEY":\s*"([a-zA-Z0-9_-]+)"')
_CONSENT_VALUE_RE = re.compile(r'name="v" value="(.*?)"')
_TAG_RE = re.compile(r"<[^>]*>")
_FMT_PARAM_RE = re.compile(r"&fmt=[^&]*")


def android_user_agent(client_version: str = ANDROID_CLIENT_VERSION) -> str:
    return "com.google.android.youtube/{} (Linux; U; Android 11) gzip".format(
        client_version
    )


def android_player_payload(
    video_id: str,
    client_version: str = ANDROID_CLIENT_VERSION,
) -> Dict[str, Any]:
    """Request body for /youtubei/v1/player impersonating the Android app."""
    return {
        "context": {
            "client": {
                "clientName": "ANDROID",
                "clientVersion": client_version,
                "hl": "en",
            }
        },
        "videoId": video_id,
    }


class YouTubeDirectSource(TranscriptSource):
    """Transcript source reading caption tracks straight from YouTube.

    RULES:
    - Use as: async with YouTubeDirectSource() as source: ...
    - credential is ignored
    - Every failure is terminal for the orchestrator (no further fallback)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client_version: str = ANDROID_CLIENT_VERSION,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url=base_url or YOUTUBE_BASE_URL,
            headers={
                "User-Agent": _DESKTOP_USER_AGENT,
                "Accept-Language": "en-US,en;q=0.9",
            },
            transport=transport,
        )
        self._client_version = client_version

    @property
    def name(self) -> str:
        return "youtube"

    async def fetch(
        self,
        video_id: str,
        credential: Optional[str] = None,
    ) -> FetchResult:
        try:
            page = await self._fetch_watch_page(video_id)
            api_key = self._extract_api_key(page, video_id)
            player = await self._fetch_player(video_id, api_key)
            track = self._select_track(player, video_id)
            cues = await self._fetch_track(track, video_id)
        except httpx.HTTPError as exc:
            raise self._error(
                FetchErrorKind.PROVIDER_TRANSIENT, video_id, str(exc)
            ) from exc

        if not cues:
            raise self._error(
                FetchErrorKind.TRANSCRIPTS_NOT_AVAILABLE, video_id, "caption track is empty"
            )

        return FetchResult(
            cues=cues,
            metadata=metadata_from_player(player),
            source=self.name,
        )

    # ------------------------------------------------------------------
    # Step 1: Watch page
    # ------------------------------------------------------------------

    async def _fetch_watch_page(self, video_id: str) -> str:
        """Fetch the watch page, passing the consent interstitial if shown."""
        page = await self._get_page(video_id)
        if _CONSENT_FORM_MARKER not in page:
            return page

        match = _CONSENT_VALUE_RE.search(page)
        if not match:
            raise self._error(
                FetchErrorKind.PROVIDER_TRANSIENT, video_id, "consent form without token"
            )
        client = self._ensure_client()
        client.cookies.set("CONSENT", "YES+" + match.group(1), domain=".youtube.com")
        logger.debug("Accepted consent interstitial for %s", video_id)

        page = await self._get_page(video_id)
        if _CONSENT_FORM_MARKER in page:
            raise self._error(
                FetchErrorKind.PROVIDER_TRANSIENT, video_id, "consent cookie rejected"
            )
        return page

    async def _get_page(self, video_id: str) -> str:
        client = self._ensure_client()
        resp = await client.get("/watch", params={"v": video_id})
        if resp.status_code == 429:
            raise self._error(FetchErrorKind.TOO_MANY_REQUESTS, video_id, "watch page 429")
        resp.raise_for_status()

        page = resp.text
        if _RECAPTCHA_MARKER in page:
            raise self._error(FetchErrorKind.ACCESS_BLOCKED, video_id, "reCAPTCHA page")
        return page

    def _extract_api_key(self, page: str, video_id: str) -> str:
        match = _API_KEY_RE.search(page)
        if match:
            return match.group(1)
        if "This video is unavailable" in page or '"status":"ERROR"' in page:
            raise self._error(FetchErrorKind.VIDEO_UNAVAILABLE, video_id, "watch page")
        raise self._error(
            FetchErrorKind.PROVIDER_TRANSIENT, video_id, "no InnerTube API key on watch page"
        )

    # ------------------------------------------------------------------
    # Step 2: Player response (caption track listing)
    # ------------------------------------------------------------------

    async def _fetch_player(self, video_id: str, api_key: str) -> Dict[str, Any]:
        client = self._ensure_client()
        resp = await client.post(
            "/youtubei/v1/player",
            params={"key": api_key, "prettyPrint": "false"},
            json=android_player_payload(video_id, self._client_version),
            headers={"User-Agent": android_user_agent(self._client_version)},
        )
        if resp.status_code == 429:
            raise self._error(FetchErrorKind.TOO_MANY_REQUESTS, video_id, "player 429")
        resp.raise_for_status()

        try:
            player = resp.json()
        except ValueError:
            player = None
        if not isinstance(player, dict):
            raise self._error(
                FetchErrorKind.PROVIDER_TRANSIENT, video_id, "player response is not JSON"
            )

        self._check_playability(player, video_id)
        return player

    def _check_playability(self, player: Dict[str, Any], video_id: str) -> None:
        playability = player.get("playabilityStatus") or {}
        status = playability.get("status", "OK")
        if status == "OK":
            return

        reason = str(playability.get("reason") or "")
        if "bot" in reason.lower():
            raise self._error(FetchErrorKind.ACCESS_BLOCKED, video_id, reason)
        raise self._error(
            FetchErrorKind.VIDEO_UNAVAILABLE,
            video_id,
            "{}: {}".format(status, reason) if reason else status,
        )

    def _select_track(self, player: Dict[str, Any], video_id: str) -> Dict[str, Any]:
        renderer = (player.get("captions") or {}).get("playerCaptionsTracklistRenderer")
        if renderer is None:
            raise self._error(FetchErrorKind.TRANSCRIPTS_DISABLED, video_id)

        tracks = renderer.get("captionTracks") or []
        if not tracks:
            raise self._error(FetchErrorKind.TRANSCRIPTS_NOT_AVAILABLE, video_id)

        usable = [t for t in tracks if _PO_TOKEN_MARKER not in t.get("baseUrl", "")]
        if not usable:
            raise self._error(
                FetchErrorKind.VERIFICATION_REQUIRED,
                video_id,
                "all {} tracks need a PO token".format(len(tracks)),
            )

        return select_track(usable)

    # ------------------------------------------------------------------
    # Step 3: Caption track
    # ------------------------------------------------------------------

    async def _fetch_track(self, track: Dict[str, Any], video_id: str) -> List[CaptionCue]:
        url = _FMT_PARAM_RE.sub("", track.get("baseUrl", ""))
        if not url:
            raise self._error(
                FetchErrorKind.TRANSCRIPTS_NOT_AVAILABLE, video_id, "track without baseUrl"
            )

        client = self._ensure_client()
        resp = await client.get(url)
        if resp.status_code == 429:
            raise self._error(FetchErrorKind.TOO_MANY_REQUESTS, video_id, "timedtext 429")
        resp.raise_for_status()
        if not resp.text.strip():
            return []
        try:
            return parse_caption_xml(resp.text)
        except ET.ParseError as exc:
            raise self._error(
                FetchErrorKind.PROVIDER_TRANSIENT, video_id, "caption XML: {}".format(exc)
            ) from exc

    def _error(
        self,
        kind: FetchErrorKind,
        video_id: str,
        detail: Optional[str] = None,
    ) -> TranscriptFetchError:
        return TranscriptFetchError(kind, video_id, self.name, detail)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def select_track(tracks: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Pick the caption track to read from a non-empty track list.

    RULES:
    - manual (kind != "asr") English first
    - then any English (auto-generated included)
    - then any manual track
    - then the first track
    """

    def is_english(track: Dict[str, Any]) -> bool:
        return str(track.get("languageCode", "")).lower().startswith("en")

    def is_manual(track: Dict[str, Any]) -> bool:
        return track.get("kind") != "asr"

    for predicate in (
        lambda t: is_english(t) and is_manual(t),
        is_english,
        is_manual,
    ):
        for track in tracks:
            if predicate(track):
                return track
    return tracks[0]


def parse_caption_xml(document: str) -> List[CaptionCue]:
    """Parse a timedtext (srv1) XML document into caption cues.

    Raises:
        ET.ParseError: if the document is not well-formed XML.
    """
    root = ET.fromstring(document.encode("utf-8"))
    cues: List[CaptionCue] = []
    for element in root.iter("text"):
        text = html.unescape("".join(element.itertext()))
        text = _TAG_RE.sub("", text).strip()
        if not text:
            continue
        cues.append(CaptionCue(
            text=text,
            offset_s=_to_float(element.get("start")),
            duration_s=_to_float(element.get("dur")),
        ))
    return cues


def metadata_from_player(player: Dict[str, Any]) -> Optional[VideoMetadata]:
    """Read title and length from a player response's videoDetails."""
    details = player.get("videoDetails") or {}
    title = str(details.get("title") or "").strip()
    if not title:
        return None
    try:
        duration = int(details.get("lengthSeconds") or 0)
    except (TypeError, ValueError):
        duration = 0
    return VideoMetadata(title=title, duration_s=duration)


def _to_float(value: Optional[str]) -> float:
    try:
        return float(value) if value is not None else 0.0
    except ValueError:
        return 0.0
