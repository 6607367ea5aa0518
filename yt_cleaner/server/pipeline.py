"""The per-request transcript pipeline, emitting stream events as it goes.

WHY: One request walks through acquisition, assembly, chunking and a
sequence of rewrites that can take minutes in total. Users should see
progress and partial text as soon as each step finishes, and every
failure, at whatever step, has to reach them as a readable message.

HOW: run_pipeline() is a straight-line coroutine that sends events on an
EventChannel. Acquisition errors become error events with the mapped
user message; rewrite errors are described by describe_rewrite_error();
anything unexpected is logged and reported with its raw text. The channel
is closed in a finally block. build_and_run() wires the real sources and
rewriter for the endpoint and owns their connection lifetimes.

RULES:
- Chunks are rewritten strictly one at a time, in index order
- progress{i+1, total} is sent before chunk i's rewrite, chunk{i} after it
- Cancellation (client gone, time budget exceeded) stops the pipeline
  without a terminal event; the client detects the cut-off
- The channel is always closed when run_pipeline returns or raises
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from yt_cleaner.adapters.metadata import fetch_video_metadata
from yt_cleaner.adapters.supadata import SupadataSource
from yt_cleaner.adapters.youtube import YouTubeDirectSource
from yt_cleaner.config import WORDS_PER_CHUNK, load_supadata_key
from yt_cleaner.core.assembler import assemble_raw_text
from yt_cleaner.core.chunker import chunk_words, count_words
from yt_cleaner.core.errors import TranscriptFetchError
from yt_cleaner.core.models import CleanedChunk, RequestSession
from yt_cleaner.core.orchestrator import AcquisitionOrchestrator
from yt_cleaner.core.rewriter import ChunkRewriter, describe_rewrite_error
from yt_cleaner.server.events import (
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    EventChannel,
    InfoEvent,
    MetaEvent,
    ProgressEvent,
    StatusEvent,
)

logger = logging.getLogger(__name__)

NO_TRANSCRIPT_MESSAGE = "This video does not have a transcript available."


class Rewriter(Protocol):
    async def rewrite(
        self,
        chunk: str,
        index: int,
        total: int,
        has_timecodes: bool,
    ) -> str:
        ...


async def run_pipeline(
    session: RequestSession,
    channel: EventChannel,
    orchestrator: AcquisitionOrchestrator,
    rewriter: Rewriter,
    words_per_chunk: int = WORDS_PER_CHUNK,
) -> None:
    """Run acquisition → assembly → chunking → rewriting for one request."""
    video_id = session.video_id
    try:
        channel.send(StatusEvent(message="Fetching transcript..."))

        try:
            acquisition = await orchestrator.acquire(session)
        except TranscriptFetchError as exc:
            logger.info("Transcript fetch failed: %s", exc)
            channel.send(ErrorEvent(message=exc.user_message))
            return

        if acquisition.metadata is not None:
            channel.send(MetaEvent(
                title=acquisition.metadata.title,
                duration_seconds=acquisition.metadata.duration_s,
            ))

        raw = assemble_raw_text(acquisition.cues)
        chunks = chunk_words(raw.text, words_per_chunk)
        if not chunks:
            channel.send(ErrorEvent(message=NO_TRANSCRIPT_MESSAGE))
            return

        total = len(chunks)
        logger.info(
            "Video %s: %d cues from %s, %d chunks, timecodes=%s",
            video_id, len(acquisition.cues), acquisition.source, total,
            raw.has_timecodes,
        )
        channel.send(InfoEvent(
            total_chunks=total,
            word_count=count_words(" ".join(cue.text for cue in acquisition.cues)),
            has_timecodes=raw.has_timecodes,
        ))

        for index, chunk in enumerate(chunks):
            if session.cancelled:
                logger.info("Video %s: cancelled before chunk %d", video_id, index + 1)
                return
            channel.send(ProgressEvent(current=index + 1, total=total))
            try:
                cleaned = CleanedChunk(
                    index=index,
                    text=await rewriter.rewrite(chunk, index, total, raw.has_timecodes),
                )
            except Exception as exc:
                logger.exception("Rewrite failed for chunk %d of %s", index + 1, video_id)
                channel.send(ErrorEvent(message=describe_rewrite_error(exc)))
                return
            channel.send(ChunkEvent(index=cleaned.index, text=cleaned.text))

        channel.send(DoneEvent())

    except Exception as exc:
        logger.exception("Pipeline failed for %s", video_id)
        if not channel.terminated and not channel.closed:
            channel.send(ErrorEvent(message=str(exc) or "Unknown server error"))
    finally:
        channel.close()


async def build_and_run(
    session: RequestSession,
    channel: EventChannel,
    anthropic_key: str,
    server_credential: Optional[str] = None,
) -> None:
    """Open the real sources and rewriter, then run the pipeline.

    RULES:
    - All upstream clients are opened here and closed when the pipeline
      ends, fails, or is cancelled
    - The Supadata source is only created when some credential exists
    """
    if server_credential is None:
        server_credential = load_supadata_key()
    has_credential = bool(session.provider_credential or server_credential)

    try:
        async with YouTubeDirectSource() as fallback, \
                ChunkRewriter(api_key=anthropic_key) as rewriter:
            if has_credential:
                async with SupadataSource() as primary:
                    orchestrator = AcquisitionOrchestrator(
                        fallback=fallback,
                        primary=primary,
                        server_credential=server_credential,
                        metadata_lookup=fetch_video_metadata,
                    )
                    await run_pipeline(session, channel, orchestrator, rewriter)
            else:
                orchestrator = AcquisitionOrchestrator(
                    fallback=fallback,
                    metadata_lookup=fetch_video_metadata,
                )
                await run_pipeline(session, channel, orchestrator, rewriter)
    except Exception as exc:
        logger.exception("Pipeline setup failed for %s", session.video_id)
        if not channel.terminated and not channel.closed:
            channel.send(ErrorEvent(message=str(exc) or "Unknown server error"))
    finally:
        channel.close()
