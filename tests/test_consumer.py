"""Tests for the stream consumer: decoding, reassembly, cut-off detection.

WHY: A client that appends chunks in arrival order, or that treats a
silently ended stream as success, shows users a wrong or truncated
transcript without any warning.

HOW: Decoder and state-machine tests feed events directly. TranscriptClient
tests serve a canned event stream through httpx.MockTransport.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from yt_cleaner.client.consumer import (
    CUT_OFF_MESSAGE,
    NETWORK_ERROR_MESSAGE,
    SSEDecoder,
    StreamConsumer,
    StreamStatus,
    TranscriptAssembly,
    TranscriptClient,
    consume_events,
    format_duration,
    iter_events,
)
from yt_cleaner.core.models import VideoMetadata


def _frame(payload) -> str:
    return "data: {}\n\n".format(json.dumps(payload))


class TestSSEDecoder:

    def test_split_across_reads(self):
        decoder = SSEDecoder()
        assert decoder.feed('data: {"type":"st') == []
        assert decoder.feed('atus","message":"hi"}\n\ndata: {"type":"done"}') == [
            {"type": "status", "message": "hi"},
        ]
        assert decoder.flush() == [{"type": "done"}]

    def test_skips_noise(self):
        events = iter_events([
            ": comment\n",
            "data: \n",
            "data: not json\n",
            "event: ignored\n",
            "data: [1, 2]\n",
            _frame({"type": "done"}),
        ])
        assert events == [{"type": "done"}]


class TestTranscriptAssembly:

    def test_reverse_order_matches_forward_order(self):
        forward = TranscriptAssembly(3)
        backward = TranscriptAssembly(3)
        for i, text in enumerate(["a", "b", "c"]):
            forward.add(i, text)
        for i, text in reversed(list(enumerate(["a", "b", "c"]))):
            backward.add(i, text)
        assert forward.text == backward.text == "a\n\nb\n\nc"

    def test_only_present_slots(self):
        assembly = TranscriptAssembly(3)
        assembly.add(2, "third")
        assert assembly.text == "third"
        assembly.add(0, "first")
        assert assembly.text == "first\n\nthird"
        assert assembly.received == 2

    def test_grows_for_unexpected_index(self):
        assembly = TranscriptAssembly(1)
        assembly.add(3, "late")
        assert assembly.text == "late"

    def test_rejects_negative_index(self):
        with pytest.raises(ValueError):
            TranscriptAssembly(1).add(-1, "x")


class TestStreamConsumer:

    def test_complete_stream(self):
        state = consume_events([
            {"type": "status", "message": "Fetching transcript..."},
            {"type": "meta", "title": "Demo", "durationSeconds": 125},
            {"type": "info", "totalChunks": 2, "wordCount": 10, "hasTimecodes": True},
            {"type": "progress", "current": 1, "total": 2},
            {"type": "chunk", "index": 1, "text": "second"},
            {"type": "progress", "current": 2, "total": 2},
            {"type": "chunk", "index": 0, "text": "first"},
            {"type": "done"},
        ])
        assert state.status == StreamStatus.DONE
        assert state.transcript == "first\n\nsecond"
        assert state.metadata == VideoMetadata(title="Demo", duration_s=125)
        assert state.has_timecodes is True
        assert (state.current, state.total) == (2, 2)

    def test_cut_off_after_info(self):
        state = consume_events([
            {"type": "status", "message": "Fetching transcript..."},
            {"type": "info", "totalChunks": 3, "wordCount": 9000, "hasTimecodes": False},
            {"type": "progress", "current": 1, "total": 3},
            {"type": "chunk", "index": 0, "text": "partial"},
        ])
        assert state.status == StreamStatus.ERROR
        assert state.message == CUT_OFF_MESSAGE
        assert state.transcript == "partial"

    def test_error_event_is_not_a_cut_off(self):
        state = consume_events([{"type": "error", "message": "Transcripts are disabled."}])
        assert state.status == StreamStatus.ERROR
        assert state.message == "Transcripts are disabled."

    def test_finish_after_done_keeps_done(self):
        consumer = StreamConsumer()
        consumer.feed({"type": "done"})
        assert consumer.finish().status == StreamStatus.DONE


class TestFormatDuration:

    @pytest.mark.parametrize("seconds, expected", [
        (0, ""),
        (42, "42s"),
        (300, "5m"),
        (3725, "1h 2m"),
        (3600, "1h 0m"),
    ])
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestTranscriptClient:

    def _stream(self, handler, url="https://youtu.be/abc123", credential=None):
        updates = []

        async def _run():
            async with TranscriptClient(
                base_url="http://api.test", transport=httpx.MockTransport(handler),
            ) as client:
                return await client.stream(url, credential, on_update=updates.append)

        return asyncio.run(_run()), updates

    def test_streams_to_done(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.read())
            body = "".join([
                _frame({"type": "status", "message": "Fetching transcript..."}),
                _frame({"type": "info", "totalChunks": 1, "wordCount": 2, "hasTimecodes": False}),
                _frame({"type": "progress", "current": 1, "total": 1}),
                _frame({"type": "chunk", "index": 0, "text": "Hello there."}),
                _frame({"type": "done"}),
            ])
            return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})

        state, updates = self._stream(handler, credential=" sd_key ")

        assert seen == {
            "path": "/api/transcript",
            "body": {"url": "https://youtu.be/abc123", "providerCredential": "sd_key"},
        }
        assert state.status == StreamStatus.DONE
        assert state.transcript == "Hello there."
        assert len(updates) == 5

    def test_unterminated_last_frame_reports_update(self):
        def handler(request):
            body = _frame({"type": "status", "message": "Fetching transcript..."}) + 'data: {"type": "done"}'
            return httpx.Response(200, text=body)

        state, updates = self._stream(handler)
        assert state.status == StreamStatus.DONE
        assert len(updates) == 2
        assert updates[-1].status == StreamStatus.DONE

    def test_truncated_stream_is_cut_off(self):
        def handler(request):
            body = _frame({"type": "info", "totalChunks": 2, "wordCount": 4, "hasTimecodes": False})
            return httpx.Response(200, text=body)

        state, _ = self._stream(handler)
        assert state.message == CUT_OFF_MESSAGE

    def test_error_body(self):
        def handler(request):
            return httpx.Response(400, json={"error": "URL is required"})

        state, _ = self._stream(handler)
        assert state.status == StreamStatus.ERROR
        assert state.message == "URL is required"

    def test_error_without_json(self):
        def handler(request):
            return httpx.Response(502, text="bad gateway")

        state, _ = self._stream(handler)
        assert state.message == "Server error (502)"

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        state, _ = self._stream(handler)
        assert state.message == NETWORK_ERROR_MESSAGE

    def test_submit_cancels_previous(self):
        async def _run():
            gate = asyncio.Event()

            async def slow_handler(request: httpx.Request) -> httpx.Response:
                if json.loads(request.read())["url"].endswith("first"):
                    await gate.wait()
                return httpx.Response(200, text=_frame({"type": "done"}))

            async with TranscriptClient(
                base_url="http://api.test", transport=httpx.MockTransport(slow_handler),
            ) as client:
                first = await client.submit("https://youtu.be/first")
                await asyncio.sleep(0)
                second = await client.submit("https://youtu.be/second")
                state = await second
                return first, state

        first, state = asyncio.run(_run())
        assert first.cancelled()
        assert state.status == StreamStatus.DONE
