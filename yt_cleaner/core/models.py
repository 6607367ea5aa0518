"""Dataclasses for captions, metadata, and per-request pipeline state.

WHY: Two very different upstream sources (a managed transcript proxy and
YouTube's own caption tracks) must hand the rest of the pipeline the same
shapes. The assembler, chunker, and rewriter never see provider JSON or
XML; they see these types.

HOW: Frozen dataclasses for values that are produced once and only read
afterwards (cues, metadata, assembled text, cleaned chunks), and a plain
dataclass for the mutable per-request session.

RULES:
- All times are float seconds (sources reporting milliseconds convert)
- CaptionCue order is the source's caption order; never re-sorted
- VideoMetadata is purely descriptive and may be absent
- RawText.has_timecodes is True only when markers were actually inserted
- A RequestSession belongs to exactly one request and is never shared
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class CaptionCue:
    """One timed caption entry as reported by a transcript source.

    RULES:
    - text: raw caption text; may contain newlines (the assembler flattens them)
    - offset_s: start of the cue in seconds from the start of the video
    - duration_s: cue length in seconds; 0.0 when the source gives no timing
    """

    text: str
    offset_s: float = 0.0
    duration_s: float = 0.0


@dataclass(frozen=True)
class VideoMetadata:
    """Title and length of a video, used only for display."""

    title: str
    duration_s: int = 0


@dataclass
class FetchResult:
    """What a transcript source returns for one video.

    RULES:
    - cues: ordered caption cues, possibly a single untimed blob
    - metadata: set only when the source learned it as a side effect
    - source: name of the source that produced the cues (for logging)
    """

    cues: list[CaptionCue]
    metadata: Optional[VideoMetadata] = None
    source: str = ""


@dataclass(frozen=True)
class RawText:
    """Caption cues merged into a single text stream."""

    text: str
    has_timecodes: bool


@dataclass(frozen=True)
class CleanedChunk:
    """The rewritten form of the chunk at the same index."""

    index: int
    text: str


@dataclass
class RequestSession:
    """Ephemeral state threading one request through the pipeline.

    WHY: The video id, the caller's optional proxy credential, and the
    cancellation signal travel together from the endpoint down to the
    adapters. Keeping them in one object makes ownership explicit: the
    session is created by the endpoint and dies with the stream.

    RULES:
    - provider_credential is the caller-supplied transcript proxy key, if any
    - cancel_event is set when the client disconnects or the budget runs out
    """

    video_id: str
    provider_credential: Optional[str] = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()
