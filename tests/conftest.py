"""Shared test fixtures for the yt_cleaner test suite.

WHY: Several test modules need the same canned YouTube responses, scripted
transcript sources, and a rewriter that does not call the real model.
Centralizing them here keeps each test focused on one behaviour.

HOW: Plain fixtures return sample documents; factory fixtures return small
fake classes that record how they were called.

RULES:
- No test talks to a real upstream (YouTube, Supadata, Anthropic)
- Async code is driven with asyncio.run() inside synchronous tests
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from yt_cleaner.adapters.base import TranscriptSource
from yt_cleaner.core.models import CaptionCue, FetchResult


# ---------------------------------------------------------------------------
# Canned YouTube documents
# ---------------------------------------------------------------------------

WATCH_PAGE = (
    "<html><head><script>"
    'ytcfg.set({"INNERTUBE_API_KEY": "AIzaTestKey_123", "HL": "en"});'
    "</script></head><body>video</body></html>"
)

CAPTION_XML = (
    '<?xml version="1.0" encoding="utf-8" ?><transcript>'
    '<text start="0.0" dur="2.5">hello</text>'
    '<text start="2.5" dur="1.5">world &amp;amp; friends</text>'
    '<text start="65.2" dur="3.0">it&amp;#39;s later</text>'
    "</transcript>"
)


def make_player(
    tracks: Optional[List[Dict[str, Any]]] = None,
    status: str = "OK",
    reason: str = "",
    title: str = "Test Video",
    length_seconds: str = "125",
    captions: bool = True,
) -> Dict[str, Any]:
    """Build an InnerTube player response."""
    player: Dict[str, Any] = {
        "playabilityStatus": {"status": status},
        "videoDetails": {"title": title, "lengthSeconds": length_seconds},
    }
    if reason:
        player["playabilityStatus"]["reason"] = reason
    if captions:
        player["captions"] = {
            "playerCaptionsTracklistRenderer": {"captionTracks": tracks or []}
        }
    return player


def make_track(
    language: str = "en",
    kind: Optional[str] = None,
    base_url: str = "https://www.youtube.com/api/timedtext?v=abc123&lang=en",
) -> Dict[str, Any]:
    track: Dict[str, Any] = {"languageCode": language, "baseUrl": base_url}
    if kind:
        track["kind"] = kind
    return track


@pytest.fixture
def watch_page() -> str:
    return WATCH_PAGE


@pytest.fixture
def caption_xml() -> str:
    return CAPTION_XML


@pytest.fixture
def player_factory():
    return make_player


@pytest.fixture
def track_factory():
    return make_track


# ---------------------------------------------------------------------------
# Scripted collaborators
# ---------------------------------------------------------------------------


class ScriptedSource(TranscriptSource):
    """TranscriptSource that returns a fixed result or raises a fixed error."""

    def __init__(
        self,
        name: str = "scripted",
        result: Optional[FetchResult] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        super().__init__()
        self._name = name
        self._result = result
        self._error = error
        self.calls: List[Dict[str, Any]] = []

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self, video_id: str, credential: Optional[str] = None) -> FetchResult:
        self.calls.append({"video_id": video_id, "credential": credential})
        if self._error is not None:
            raise self._error
        assert self._result is not None
        return self._result


class EchoRewriter:
    """Rewriter that returns the chunk unchanged and records every call."""

    def __init__(self, fail_on: Optional[int] = None, error: Optional[BaseException] = None):
        self.calls: List[Dict[str, Any]] = []
        self._fail_on = fail_on
        self._error = error or RuntimeError("boom")

    async def rewrite(self, chunk: str, index: int, total: int, has_timecodes: bool) -> str:
        self.calls.append({
            "chunk": chunk,
            "index": index,
            "total": total,
            "has_timecodes": has_timecodes,
        })
        if self._fail_on == index:
            raise self._error
        return chunk


@pytest.fixture
def scripted_source():
    return ScriptedSource


@pytest.fixture
def echo_rewriter():
    return EchoRewriter


@pytest.fixture
def timed_cues() -> List[CaptionCue]:
    """The cues of the abc123 walkthrough: two in the first minute, one after."""
    return [
        CaptionCue(text="hello", offset_s=0.0, duration_s=2.0),
        CaptionCue(text="world", offset_s=2.0, duration_s=2.0),
        CaptionCue(text="more text", offset_s=65.0, duration_s=3.0),
    ]
