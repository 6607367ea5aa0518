"""Primary transcript source backed by the Supadata transcript proxy.

WHY: Fetching captions straight from YouTube is increasingly blocked for
datacenter IPs. Supadata fetches them through its own managed proxies,
authenticated by an API key that either the caller supplies with the
request or the server has configured.

HOW: One GET to /transcript with the video URL. Supadata either answers
immediately (HTTP 200 with the transcript) or accepts the work as an
asynchronous job (HTTP 202 with a jobId). Jobs are polled at a fixed
interval for a bounded number of attempts. The transcript ``content`` is
either a list of timed segments (offset/duration in milliseconds) or one
plain string; both are normalised into CaptionCue lists.

RULES:
- Credential goes in the x-api-key header; a missing credential is transient
- Fixed-interval polling: SUPADATA_POLL_INTERVAL_S, SUPADATA_POLL_MAX_ATTEMPTS
- Poll budget exhausted → TRANSCRIPTS_NOT_AVAILABLE
- Plain-string content → one cue at offset 0 (no real timing)
- Segment offsets/durations are milliseconds → converted to seconds
- Provider-reported "no transcript" / "video not found" are definitive kinds;
  auth, quota, 5xx, network and malformed responses are PROVIDER_TRANSIENT
- Incidental metadata is never produced by this source
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from yt_cleaner.adapters.base import TranscriptSource
from yt_cleaner.config import (
    SUPADATA_BASE_URL,
    SUPADATA_POLL_INTERVAL_S,
    SUPADATA_POLL_MAX_ATTEMPTS,
)
from yt_cleaner.core.errors import FetchErrorKind, TranscriptFetchError
from yt_cleaner.core.models import CaptionCue, FetchResult

logger = logging.getLogger(__name__)

# Job states that mean "keep polling".
_PENDING_JOB_STATUSES = frozenset({"queued", "active", "pending", "processing"})

# Supadata error codes that are facts about the video, not about us.
_ERROR_CODE_KINDS: Dict[str, FetchErrorKind] = {
    "transcript-unavailable": FetchErrorKind.TRANSCRIPTS_NOT_AVAILABLE,
    "video-not-found": FetchErrorKind.VIDEO_UNAVAILABLE,
    "not-found": FetchErrorKind.VIDEO_UNAVAILABLE,
}


class SupadataSource(TranscriptSource):
    """Transcript source using Supadata's managed transcript API.

    RULES:
    - Use as: async with SupadataSource() as source: ...
    - fetch() needs a credential; the orchestrator supplies one
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        poll_interval_s: float = SUPADATA_POLL_INTERVAL_S,
        poll_max_attempts: int = SUPADATA_POLL_MAX_ATTEMPTS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url=base_url or SUPADATA_BASE_URL,
            headers={"Accept": "application/json"},
            transport=transport,
        )
        self._poll_interval_s = poll_interval_s
        self._poll_max_attempts = poll_max_attempts

    @property
    def name(self) -> str:
        return "supadata"

    async def fetch(
        self,
        video_id: str,
        credential: Optional[str] = None,
    ) -> FetchResult:
        if not credential:
            raise self._error(
                FetchErrorKind.PROVIDER_TRANSIENT, video_id, "no API key configured"
            )

        headers = {"x-api-key": credential}
        params = {
            "url": "https://www.youtube.com/watch?v={}".format(video_id),
            "text": "false",
        }
        status_code, payload = await self._get_json(
            "/transcript", video_id, headers=headers, params=params
        )

        job_id = payload.get("jobId")
        if status_code == 202 or (job_id and "content" not in payload):
            if not job_id:
                raise self._error(
                    FetchErrorKind.PROVIDER_TRANSIENT,
                    video_id,
                    "job accepted without a jobId",
                )
            payload = await self._poll_job(str(job_id), video_id, headers)
        elif status_code >= 400:
            raise self._classify(status_code, payload, video_id)

        cues = normalize_content(payload.get("content"))
        if not cues:
            raise self._error(
                FetchErrorKind.TRANSCRIPTS_NOT_AVAILABLE, video_id, "empty content"
            )
        return FetchResult(cues=cues, source=self.name)

    async def _poll_job(
        self,
        job_id: str,
        video_id: str,
        headers: Dict[str, str],
    ) -> Dict[str, Any]:
        """Poll a Supadata transcript job until it completes or fails.

        WHY: Long or uncaptioned videos are transcribed asynchronously by
        Supadata; the first response only carries a job handle.

        HOW: Fixed-interval polling of GET /transcript/{jobId}. A
        cancelled request interrupts the sleep, so no poll loop outlives
        its request.

        RULES:
        - "completed" → return the job payload
        - "failed" → classify the job's error
        - still pending after the last attempt → TRANSCRIPTS_NOT_AVAILABLE
        """
        for attempt in range(1, self._poll_max_attempts + 1):
            await asyncio.sleep(self._poll_interval_s)

            status_code, payload = await self._get_json(
                "/transcript/{}".format(job_id), video_id, headers=headers
            )
            if status_code >= 400:
                raise self._classify(status_code, payload, video_id)

            status = str(payload.get("status", "")).strip().lower()
            if status == "completed" or (not status and "content" in payload):
                return payload
            if status == "failed":
                raise self._classify(status_code, payload, video_id)
            if status not in _PENDING_JOB_STATUSES:
                raise self._error(
                    FetchErrorKind.PROVIDER_TRANSIENT,
                    video_id,
                    "unexpected job status {!r}".format(status),
                )
            logger.debug(
                "Supadata job %s for %s still %s (attempt %d/%d)",
                job_id, video_id, status, attempt, self._poll_max_attempts,
            )

        raise self._error(
            FetchErrorKind.TRANSCRIPTS_NOT_AVAILABLE,
            video_id,
            "job {} did not finish after {} polls".format(job_id, self._poll_max_attempts),
        )

    async def _get_json(
        self,
        path: str,
        video_id: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Tuple[int, Dict[str, Any]]:
        client = self._ensure_client()
        try:
            resp = await client.get(path, headers=headers, params=params)
        except httpx.HTTPError as exc:
            raise self._error(
                FetchErrorKind.PROVIDER_TRANSIENT, video_id, str(exc)
            ) from exc

        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        return resp.status_code, payload

    def _classify(
        self,
        status_code: int,
        payload: Dict[str, Any],
        video_id: str,
    ) -> TranscriptFetchError:
        """Map a Supadata error response onto a FetchErrorKind."""
        code = str(payload.get("error") or "").strip().lower()
        message = str(payload.get("message") or payload.get("details") or "")
        detail = "HTTP {} {} {}".format(status_code, code, message).strip()

        kind = _ERROR_CODE_KINDS.get(code)
        if kind is None and status_code == 404:
            kind = FetchErrorKind.TRANSCRIPTS_NOT_AVAILABLE
        if kind is None and "transcript unavailable" in message.lower():
            kind = FetchErrorKind.TRANSCRIPTS_NOT_AVAILABLE
        if kind is None:
            kind = FetchErrorKind.PROVIDER_TRANSIENT
        return self._error(kind, video_id, detail)

    def _error(
        self,
        kind: FetchErrorKind,
        video_id: str,
        detail: Optional[str] = None,
    ) -> TranscriptFetchError:
        return TranscriptFetchError(kind, video_id, self.name, detail)


def normalize_content(content: Any) -> List[CaptionCue]:
    """Normalise Supadata ``content`` into caption cues.

    RULES:
    - str → a single untimed cue (empty string → no cues)
    - list of {text, offset, duration} (milliseconds) → one cue per entry
    - entries without text are skipped; anything else → no cues
    """
    if isinstance(content, str):
        text = content.strip()
        return [CaptionCue(text=text)] if text else []

    if not isinstance(content, list):
        return []

    cues: List[CaptionCue] = []
    for segment in content:
        if not isinstance(segment, dict):
            continue
        text = segment.get("text")
        if not isinstance(text, str) or not text.strip():
            continue
        cues.append(CaptionCue(
            text=text,
            offset_s=_ms_to_s(segment.get("offset")),
            duration_s=_ms_to_s(segment.get("duration")),
        ))
    return cues


def _ms_to_s(value: Any) -> float:
    try:
        return max(0.0, float(value) / 1000.0)
    except (TypeError, ValueError):
        return 0.0
