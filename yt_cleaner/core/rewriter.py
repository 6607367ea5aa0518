"""Per-chunk transcript cleanup through the Anthropic Messages API.

WHY: Raw captions have no punctuation, no paragraphs, and plenty of
"um"s. A language model turns each chunk into readable prose. Because a
long video is split into several chunks, each request is told where its
chunk sits (beginning, middle, end) so openings and closings read right.

HOW: build_prompt() assembles a fixed instruction list. The timecode
preservation instruction is included only when markers were inserted;
the speaker labelling rule is always included. ChunkRewriter sends
one request per chunk and returns the first text block, trimmed. A
response without a text block returns the chunk untouched, so a chunk is
never lost. describe_rewrite_error() turns SDK exceptions into messages
for the end user.

RULES:
- Single-chunk transcripts are treated as the beginning
- Speaker labels ("Speaker 1:", ...) only for two or more confidently
  distinguished voices, never for one
- Non-text response → original chunk, unchanged
- SDK exceptions propagate; the pipeline maps them with describe_rewrite_error
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Optional

import anthropic

from yt_cleaner.config import ANTHROPIC_MAX_TOKENS, ANTHROPIC_MODEL

logger = logging.getLogger(__name__)

FILLER_WORDS = (
    "um",
    "uh",
    "like (when used as filler)",
    "you know",
    "basically",
    "literally",
    "right (when used as filler)",
    "so (when used as sentence starter filler)",
    "okay (when used as filler)",
)

# HTTP status Anthropic uses for "overloaded".
_OVERLOADED_STATUS = 529


class ChunkPosition(str, enum.Enum):
    FIRST = "first"
    MIDDLE = "middle"
    LAST = "last"


_CONTEXT_NOTES = {
    ChunkPosition.FIRST: "This is the beginning of a transcript. ",
    ChunkPosition.MIDDLE: "This is a middle section of a longer transcript. ",
    ChunkPosition.LAST: "This is the final section of a transcript. ",
}


def chunk_position(index: int, total: int) -> ChunkPosition:
    """Position of chunk ``index`` among ``total`` chunks."""
    if index == 0:
        return ChunkPosition.FIRST
    if index == total - 1:
        return ChunkPosition.LAST
    return ChunkPosition.MIDDLE


def build_prompt(chunk: str, position: ChunkPosition, has_timecodes: bool) -> str:
    """Build the cleanup instructions for one chunk."""
    instructions = [
        "Fix punctuation and capitalization so it reads like natural prose",
        "Remove filler words: {}".format(", ".join(FILLER_WORDS)),
        "Break the text into logical paragraphs based on topic shifts or natural pauses",
        "Preserve all the original meaning and content. Do not summarize, "
        "skip information, or add anything new",
    ]
    if has_timecodes:
        instructions.append(
            "Keep every timecode marker such as [1:05] or [1:02:05] exactly as written, "
            "at the start of the sentence it precedes"
        )
    instructions.append(
        "If you can confidently tell two or more different speakers apart from "
        "conversational cues (questions and answers, introductions, turn-taking), "
        "start each paragraph with a label like \"Speaker 1:\", \"Speaker 2:\". "
        "If there is only one speaker, or you are not sure, do not add any labels"
    )
    instructions.append(
        "Return ONLY the cleaned transcript text, with no explanations, labels, "
        "or commentary"
    )

    numbered = "\n".join(
        "{}. {}".format(number, text) for number, text in enumerate(instructions, 1)
    )
    return (
        "{note}Clean up the following YouTube video transcript excerpt. Your task:\n"
        "{numbered}\n\n"
        "Transcript to clean:\n"
        "{chunk}"
    ).format(note=_CONTEXT_NOTES[position], numbered=numbered, chunk=chunk)


class ChunkRewriter:
    """Rewrites transcript chunks with an Anthropic model.

    RULES:
    - Use as: async with ChunkRewriter(api_key) as rewriter: ...
      (or pass an existing client, which the caller then owns)
    - One request per call; callers rewrite chunks one at a time
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = ANTHROPIC_MODEL,
        max_tokens: int = ANTHROPIC_MAX_TOKENS,
        client: Optional[Any] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens

    async def __aenter__(self) -> ChunkRewriter:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._owns_client:
            await self._client.close()

    async def rewrite(
        self,
        chunk: str,
        index: int,
        total: int,
        has_timecodes: bool,
    ) -> str:
        """Return the cleaned text for one chunk."""
        position = chunk_position(index, total)
        message = await self._client.messages.create(
            model=self._model,
            max_tokens=self._max_tokens,
            messages=[
                {
                    "role": "user",
                    "content": build_prompt(chunk, position, has_timecodes),
                }
            ],
        )

        content = message.content[0] if message.content else None
        if content is None or getattr(content, "type", None) != "text":
            logger.warning(
                "Chunk %d/%d: model returned no text block, keeping original text",
                index + 1, total,
            )
            return chunk
        return content.text.strip()


def describe_rewrite_error(exc: BaseException) -> str:
    """Map a rewrite-phase exception to an end-user message.

    RULES:
    - rate limit, authentication, overloaded, server error, and lost
      connection each get their own message
    - anything else → generic message carrying the raw error text
    """
    if isinstance(exc, anthropic.RateLimitError):
        return (
            "The AI service is receiving too many requests right now. "
            "Please wait a minute and try again."
        )
    if isinstance(exc, anthropic.AuthenticationError):
        return "The server's AI service credentials were rejected. Please contact the site owner."
    if isinstance(exc, anthropic.APIStatusError) and exc.status_code == _OVERLOADED_STATUS:
        return "The AI service is overloaded at the moment. Please try again in a few minutes."
    if isinstance(exc, anthropic.InternalServerError):
        return "The AI service had an internal error while cleaning the transcript. Please try again."
    if isinstance(exc, anthropic.APIConnectionError):
        return "Lost the connection to the AI service while cleaning the transcript. Please try again."
    return "Something went wrong while cleaning the transcript: {}".format(exc)
