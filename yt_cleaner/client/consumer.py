"""Reference consumer for the transcript event stream.

WHY: The stream protocol only works if the client holds up its end:
chunks must be placed by index (not arrival order), the live transcript
must show only chunks that have arrived, and a stream that simply stops,
because the server hit its time limit or the network dropped, must be
reported as cut off rather than treated as success. This module is that
contract in code, used by the CLI and by the end-to-end tests.

HOW: SSEDecoder turns raw text from the response body into event dicts.
TranscriptAssembly keeps one optional slot per chunk and projects the
filled slots, in index order, into the transcript. StreamConsumer folds
events into a ConsumerState and finish() flags the cut-off case.
TranscriptClient posts to the API with httpx, streams the response into
a StreamConsumer, and cancels its previous submission before starting a
new one.

RULES:
- Only "data: " lines are events; blank or unparseable payloads are skipped
- Slots are filled by chunk index; joined with a blank line
- done or error marks the stream complete; anything else at EOF is a cut-off
- A new submit() cancels the in-flight one and releases its connection
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

from yt_cleaner.config import API_URL
from yt_cleaner.core.models import VideoMetadata

logger = logging.getLogger(__name__)

CUT_OFF_MESSAGE = (
    "The request was cut off before finishing. The video may be too long for "
    "the server's time limit. Try a shorter video, or try again."
)
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."

_DATA_PREFIX = "data: "


class SSEDecoder:
    """Incremental decoder for ``data: <json>`` lines."""

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, text: str) -> List[Dict[str, Any]]:
        """Add received text; return the events completed by it."""
        self._buffer += text
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return [event for event in map(_parse_line, lines) if event is not None]

    def flush(self) -> List[Dict[str, Any]]:
        """Decode whatever is left in the buffer at end of stream."""
        rest, self._buffer = self._buffer, ""
        event = _parse_line(rest)
        return [event] if event is not None else []


def _parse_line(line: str) -> Optional[Dict[str, Any]]:
    if not line.startswith(_DATA_PREFIX):
        return None
    raw = line[len(_DATA_PREFIX):].strip()
    if not raw:
        return None
    try:
        event = json.loads(raw)
    except ValueError:
        return None
    return event if isinstance(event, dict) else None


def iter_events(chunks: Iterable[str]) -> List[Dict[str, Any]]:
    """Decode a complete sequence of received text pieces into events."""
    decoder = SSEDecoder()
    events: List[Dict[str, Any]] = []
    for piece in chunks:
        events.extend(decoder.feed(piece))
    events.extend(decoder.flush())
    return events


class TranscriptAssembly:
    """Fixed-size optional-slot array of cleaned chunks.

    RULES:
    - resize() is called with info.totalChunks; add() grows the array if an
      index beyond it arrives
    - text joins filled slots in index order with a blank line
    """

    def __init__(self, size: int = 0) -> None:
        self._slots: List[Optional[str]] = [None] * size

    def resize(self, size: int) -> None:
        if size > len(self._slots):
            self._slots.extend([None] * (size - len(self._slots)))

    def add(self, index: int, text: str) -> None:
        if index < 0:
            raise ValueError("chunk index must be non-negative, got {}".format(index))
        self.resize(index + 1)
        self._slots[index] = text

    @property
    def received(self) -> int:
        return sum(1 for slot in self._slots if slot is not None)

    @property
    def text(self) -> str:
        return "\n\n".join(slot for slot in self._slots if slot)


class StreamStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


@dataclass
class ConsumerState:
    """What a client would render at this point of the stream."""

    status: StreamStatus = StreamStatus.IDLE
    message: str = ""
    current: int = 0
    total: int = 0
    has_timecodes: bool = False
    metadata: Optional[VideoMetadata] = None
    transcript: str = ""
    completed: bool = False
    assembly: TranscriptAssembly = field(default_factory=TranscriptAssembly, repr=False)


class StreamConsumer:
    """Folds stream events into a ConsumerState."""

    def __init__(self) -> None:
        self.state = ConsumerState(status=StreamStatus.LOADING, message="Fetching transcript...")

    def feed(self, event: Dict[str, Any]) -> ConsumerState:
        state = self.state
        kind = event.get("type")

        if kind == "status":
            state.status = StreamStatus.LOADING
            state.message = str(event.get("message", ""))
        elif kind == "meta":
            state.metadata = VideoMetadata(
                title=str(event.get("title", "")),
                duration_s=int(event.get("durationSeconds") or 0),
            )
        elif kind == "info":
            state.has_timecodes = bool(event.get("hasTimecodes"))
            state.status = StreamStatus.PROCESSING
            state.current = 0
            state.total = int(event.get("totalChunks") or 0)
            state.assembly.resize(state.total)
        elif kind == "progress":
            state.status = StreamStatus.PROCESSING
            state.current = int(event.get("current") or 0)
            state.total = int(event.get("total") or 0)
        elif kind == "chunk":
            state.assembly.add(int(event.get("index", 0)), str(event.get("text", "")))
            state.transcript = state.assembly.text
        elif kind == "done":
            state.status = StreamStatus.DONE
            state.message = ""
            state.completed = True
        elif kind == "error":
            state.status = StreamStatus.ERROR
            state.message = str(event.get("message", ""))
            state.completed = True
        return state

    def fail(self, message: str) -> ConsumerState:
        self.state.status = StreamStatus.ERROR
        self.state.message = message
        self.state.completed = True
        return self.state

    def finish(self) -> ConsumerState:
        """Mark the end of the transport; flag a cut-off if nothing terminal arrived."""
        if not self.state.completed:
            self.fail(CUT_OFF_MESSAGE)
        return self.state


def consume_events(events: Iterable[Dict[str, Any]]) -> ConsumerState:
    """Feed a finished event sequence through a StreamConsumer."""
    consumer = StreamConsumer()
    for event in events:
        consumer.feed(event)
    return consumer.finish()


def format_duration(seconds: int) -> str:
    """Short human form of a video length: "1h 2m", "5m", "42s", or ""."""
    if not seconds or seconds <= 0:
        return ""
    hours, remainder = divmod(int(seconds), 3600)
    minutes = remainder // 60
    if hours:
        return "{}h {}m".format(hours, minutes)
    if minutes:
        return "{}m".format(minutes)
    return "{}s".format(int(seconds))


class TranscriptClient:
    """Async client for POST /api/transcript.

    RULES:
    - Use as: async with TranscriptClient() as client: ...
    - submit() cancels the previous in-flight submission first
    - on_update, when given, is called with the state after every event
    """

    def __init__(
        self,
        base_url: str = API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 330.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None
        self._current: Optional[asyncio.Task] = None

    async def __aenter__(self) -> TranscriptClient:
        kwargs: Dict[str, Any] = {
            "base_url": self._base_url,
            "timeout": httpx.Timeout(self._timeout, connect=10.0),
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        self._client = httpx.AsyncClient(**kwargs)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.cancel()
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "TranscriptClient must be used as an async context manager: "
                "async with TranscriptClient() as client: ..."
            )
        return self._client

    async def cancel(self) -> None:
        """Cancel the in-flight submission, if any, and wait for it to unwind."""
        task, self._current = self._current, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def submit(
        self,
        url: str,
        provider_credential: Optional[str] = None,
        on_update: Optional[Callable[[ConsumerState], None]] = None,
    ) -> asyncio.Task:
        """Start streaming ``url`` after cancelling any previous submission."""
        await self.cancel()
        self._current = asyncio.create_task(
            self.stream(url, provider_credential, on_update)
        )
        return self._current

    async def stream(
        self,
        url: str,
        provider_credential: Optional[str] = None,
        on_update: Optional[Callable[[ConsumerState], None]] = None,
    ) -> ConsumerState:
        """POST the URL and consume the event stream to completion."""
        client = self._ensure_client()
        consumer = StreamConsumer()
        body: Dict[str, Any] = {"url": url.strip()}
        if provider_credential and provider_credential.strip():
            body["providerCredential"] = provider_credential.strip()

        try:
            async with client.stream("POST", "/api/transcript", json=body) as resp:
                if resp.status_code >= 400:
                    await resp.aread()
                    return consumer.fail(_error_from_response(resp))

                decoder = SSEDecoder()
                async for text in resp.aiter_text():
                    for event in decoder.feed(text):
                        state = consumer.feed(event)
                        if on_update:
                            on_update(state)
                for event in decoder.flush():
                    state = consumer.feed(event)
                    if on_update:
                        on_update(state)
        except httpx.HTTPError as exc:
            logger.debug("Transcript stream failed: %s", exc)
            if not consumer.state.completed:
                return consumer.fail(NETWORK_ERROR_MESSAGE)

        return consumer.finish()


def _error_from_response(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = {}
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return "Server error ({})".format(resp.status_code)
