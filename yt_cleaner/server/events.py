"""Stream event models and the single-producer event channel.

WHY: The client renders a live transcript while chunks are still being
rewritten, so the server pushes one small JSON event per pipeline step
instead of a single response at the end. The pipeline should not care
about HTTP framing, and the endpoint should not care about pipeline
logic; a channel between them keeps both sides simple and makes "the
stream ended without a terminal event" an observable condition.

HOW: Each event type is a Pydantic model with a literal ``type`` field and
camelCase aliases on the wire. encode_event() frames one event as
``data: <json>\\n\\n``. EventChannel wraps an asyncio.Queue: the pipeline
sends events, the endpoint iterates encoded frames until the channel is
closed.

RULES:
- Wire order: status* → meta? → info → (progress → chunk)×N → done | error
- error may be sent at any point and is terminal, like done
- Nothing can be sent after a terminal event or after close()
- Field names are snake_case in Python, camelCase on the wire
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Event(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StatusEvent(_Event):
    type: Literal["status"] = "status"
    message: str = Field(description="Human-readable phase description.")


class MetaEvent(_Event):
    type: Literal["meta"] = "meta"
    title: str = Field(description="Video title.")
    duration_seconds: int = Field(description="Video length in seconds (0 if unknown).")


class InfoEvent(_Event):
    type: Literal["info"] = "info"
    total_chunks: int = Field(description="Number of chunks that will be rewritten.")
    word_count: int = Field(description="Words in the assembled transcript.")
    has_timecodes: bool = Field(description="Whether timecode markers were inserted.")


class ProgressEvent(_Event):
    type: Literal["progress"] = "progress"
    current: int = Field(description="1-based number of the chunk about to be rewritten.")
    total: int = Field(description="Total number of chunks.")


class ChunkEvent(_Event):
    type: Literal["chunk"] = "chunk"
    index: int = Field(description="0-based chunk index; use it for reassembly.")
    text: str = Field(description="Cleaned chunk text.")


class DoneEvent(_Event):
    type: Literal["done"] = "done"


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    message: str = Field(description="End-user-safe error description.")


StreamEvent = Union[
    StatusEvent,
    MetaEvent,
    InfoEvent,
    ProgressEvent,
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
]

TERMINAL_EVENT_TYPES = frozenset({"done", "error"})


def encode_event(event: StreamEvent) -> bytes:
    """Frame an event as one ``data: <json>\\n\\n`` text-stream record."""
    payload = event.model_dump_json(by_alias=True)
    return "data: {}\n\n".format(payload).encode("utf-8")


class ChannelClosedError(RuntimeError):
    """Raised when sending on a channel that is closed or already terminated."""


class EventChannel:
    """Single-producer, single-consumer queue of stream events.

    WHY: The pipeline runs as its own task and must hand events to the
    HTTP response as soon as they exist. A queue decouples the two, and
    the channel remembers whether a terminal event went through so tests
    and the endpoint can tell a clean finish from a cut-off one.

    HOW: send() enqueues events; close() enqueues a sentinel. Iterating the
    channel yields encoded frames until the sentinel arrives.

    RULES:
    - send() after done/error or after close() raises ChannelClosedError
    - close() is idempotent
    - terminated is True once done or error has been sent
    """

    _CLOSED = object()

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._terminal_type: Optional[str] = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def terminated(self) -> bool:
        return self._terminal_type is not None

    @property
    def terminal_type(self) -> Optional[str]:
        return self._terminal_type

    def send(self, event: StreamEvent) -> None:
        if self._closed or self.terminated:
            raise ChannelClosedError(
                "Cannot send {!r} event: channel already {}".format(
                    event.type, "closed" if self._closed else "terminated"
                )
            )
        if event.type in TERMINAL_EVENT_TYPES:
            self._terminal_type = event.type
        self._queue.put_nowait(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(self._CLOSED)

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield events in send order until the channel is closed."""
        while True:
            item = await self._queue.get()
            if item is self._CLOSED:
                return
            yield item

    async def frames(self) -> AsyncIterator[bytes]:
        """Yield encoded frames in send order until the channel is closed."""
        async for event in self.events():
            yield encode_event(event)
