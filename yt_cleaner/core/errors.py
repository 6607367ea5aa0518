"""Transcript acquisition error taxonomy and user-facing messages.

WHY: The orchestrator has to decide, for every failed fetch, whether to
try the next source or give up, and the endpoint has to turn every
terminal failure into prose a viewer can act on. Both decisions are
driven by *what kind* of failure happened, not by which library raised it.

HOW: FetchErrorKind is a closed enum of failure kinds. Every source
raises TranscriptFetchError tagged with one kind plus the video id and
the provider name. USER_MESSAGES maps every kind to its message; a test
asserts that the mapping is total.

RULES:
- Sources never leak httpx or parsing exceptions; they wrap them in
  TranscriptFetchError with an appropriate kind
- DEFINITIVE_KINDS are provider-reported facts about the video; they stop
  the orchestrator from trying the fallback source
- Messages never include raw upstream error text
"""

from __future__ import annotations

import enum
from typing import Optional


class FetchErrorKind(str, enum.Enum):
    """Closed set of transcript acquisition failures."""

    VIDEO_UNAVAILABLE = "video_unavailable"
    TRANSCRIPTS_DISABLED = "transcripts_disabled"
    TRANSCRIPTS_NOT_AVAILABLE = "transcripts_not_available"
    PROVIDER_TRANSIENT = "provider_transient"
    ACCESS_BLOCKED = "access_blocked"
    VERIFICATION_REQUIRED = "verification_required"
    TOO_MANY_REQUESTS = "too_many_requests"


DEFINITIVE_KINDS = frozenset({
    FetchErrorKind.VIDEO_UNAVAILABLE,
    FetchErrorKind.TRANSCRIPTS_NOT_AVAILABLE,
})
"""Kinds that end acquisition even when a fallback source is available."""

_PROVIDER_KEY_HINT = (
    " Adding a Supadata API key usually gets around this."
)

USER_MESSAGES: dict[FetchErrorKind, str] = {
    FetchErrorKind.VIDEO_UNAVAILABLE: (
        "This video is unavailable (it may be private, deleted, or region-locked)."
    ),
    FetchErrorKind.TRANSCRIPTS_DISABLED: (
        "Transcripts are disabled for this video. The creator has turned off captions."
    ),
    FetchErrorKind.TRANSCRIPTS_NOT_AVAILABLE: (
        "No transcript is available for this video. "
        "It may not have auto-generated captions yet."
    ),
    FetchErrorKind.PROVIDER_TRANSIENT: (
        "Could not fetch the transcript right now. Please try again in a moment."
    ),
    FetchErrorKind.ACCESS_BLOCKED: (
        "YouTube is blocking transcript requests from this server." + _PROVIDER_KEY_HINT
    ),
    FetchErrorKind.VERIFICATION_REQUIRED: (
        "YouTube requires an extra verification step for this video's captions, "
        "which this server cannot complete." + _PROVIDER_KEY_HINT
    ),
    FetchErrorKind.TOO_MANY_REQUESTS: (
        "Too many requests to YouTube. Please wait a moment and try again."
    ),
}


class TranscriptFetchError(Exception):
    """Raised by a transcript source when it cannot produce captions.

    RULES:
    - kind is always set; it drives fallback decisions and user messaging
    - detail is for logs only and never shown to users
    """

    def __init__(
        self,
        kind: FetchErrorKind,
        video_id: str,
        provider: str,
        detail: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.video_id = video_id
        self.provider = provider
        self.detail = detail
        message = "{} failed for {}: {}".format(provider, video_id, kind.value)
        if detail:
            message = "{} ({})".format(message, detail)
        super().__init__(message)

    @property
    def definitive(self) -> bool:
        return self.kind in DEFINITIVE_KINDS

    @property
    def user_message(self) -> str:
        return user_message(self.kind)


def user_message(kind: FetchErrorKind) -> str:
    """Return the end-user message for an acquisition failure kind."""
    return USER_MESSAGES[kind]
