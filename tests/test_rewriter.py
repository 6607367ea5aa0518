"""Tests for prompt construction, chunk rewriting, and error descriptions."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from yt_cleaner.core.rewriter import (
    ChunkPosition,
    ChunkRewriter,
    build_prompt,
    chunk_position,
    describe_rewrite_error,
)

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _status_error(cls, status: int):
    return cls("error", response=httpx.Response(status, request=_REQUEST), body=None)


def _fake_client(*content):
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=SimpleNamespace(content=list(content)))
    client.close = AsyncMock()
    return client


class TestChunkPosition:

    @pytest.mark.parametrize("index, total, expected", [
        (0, 1, ChunkPosition.FIRST),
        (0, 3, ChunkPosition.FIRST),
        (1, 3, ChunkPosition.MIDDLE),
        (2, 3, ChunkPosition.LAST),
        (1, 2, ChunkPosition.LAST),
    ])
    def test_position(self, index, total, expected):
        assert chunk_position(index, total) == expected


class TestBuildPrompt:

    def test_contains_chunk_and_context_note(self):
        prompt = build_prompt("the raw words", ChunkPosition.MIDDLE, has_timecodes=False)
        assert prompt.startswith("This is a middle section of a longer transcript.")
        assert prompt.endswith("Transcript to clean:\nthe raw words")

    def test_timecode_instruction_only_with_markers(self):
        with_markers = build_prompt("x", ChunkPosition.FIRST, has_timecodes=True)
        without = build_prompt("x", ChunkPosition.FIRST, has_timecodes=False)
        assert "timecode marker" in with_markers
        assert "timecode marker" not in without

    @pytest.mark.parametrize("has_timecodes", [True, False])
    def test_speaker_rule_always_present(self, has_timecodes):
        prompt = build_prompt("x", ChunkPosition.LAST, has_timecodes)
        assert '"Speaker 1:"' in prompt
        assert "only one speaker" in prompt

    def test_instructions_are_numbered(self):
        prompt = build_prompt("x", ChunkPosition.FIRST, has_timecodes=True)
        assert "\n1. Fix punctuation" in prompt
        assert "\n7. Return ONLY" in prompt


class TestChunkRewriter:

    def test_returns_trimmed_text(self):
        client = _fake_client(SimpleNamespace(type="text", text="  Clean text.\n"))
        rewriter = ChunkRewriter(client=client, model="test-model", max_tokens=123)

        result = asyncio.run(rewriter.rewrite("raw text", 0, 1, False))

        assert result == "Clean text."
        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["max_tokens"] == 123
        assert kwargs["messages"][0]["role"] == "user"
        assert "raw text" in kwargs["messages"][0]["content"]

    def test_non_text_block_keeps_original(self):
        client = _fake_client(SimpleNamespace(type="tool_use", id="t1"))
        rewriter = ChunkRewriter(client=client)
        assert asyncio.run(rewriter.rewrite("keep me", 1, 3, True)) == "keep me"

    def test_empty_content_keeps_original(self):
        rewriter = ChunkRewriter(client=_fake_client())
        assert asyncio.run(rewriter.rewrite("keep me", 0, 1, False)) == "keep me"

    def test_sdk_errors_propagate(self):
        client = MagicMock()
        client.messages.create = AsyncMock(side_effect=_status_error(anthropic.RateLimitError, 429))
        rewriter = ChunkRewriter(client=client)
        with pytest.raises(anthropic.RateLimitError):
            asyncio.run(rewriter.rewrite("x", 0, 1, False))

    def test_injected_client_is_not_closed(self):
        client = _fake_client()

        async def _run():
            async with ChunkRewriter(client=client):
                pass

        asyncio.run(_run())
        client.close.assert_not_awaited()


class TestDescribeRewriteError:

    def test_rate_limit(self):
        message = describe_rewrite_error(_status_error(anthropic.RateLimitError, 429))
        assert "too many requests" in message

    def test_authentication(self):
        message = describe_rewrite_error(_status_error(anthropic.AuthenticationError, 401))
        assert "credentials were rejected" in message

    def test_overloaded(self):
        message = describe_rewrite_error(_status_error(anthropic.APIStatusError, 529))
        assert "overloaded" in message

    def test_server_error(self):
        message = describe_rewrite_error(_status_error(anthropic.InternalServerError, 500))
        assert "internal error" in message

    def test_connection(self):
        message = describe_rewrite_error(anthropic.APIConnectionError(request=_REQUEST))
        assert "Lost the connection" in message

    def test_anything_else_carries_raw_text(self):
        message = describe_rewrite_error(ValueError("weird"))
        assert message == "Something went wrong while cleaning the transcript: weird"
