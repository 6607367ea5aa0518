"""FastAPI application serving the transcript cleanup event stream.

WHY: Browsers and scripts submit a video URL and want to watch the
cleaned transcript appear chunk by chunk. A POST that answers with a
text event stream does that without websockets or job polling, and keeps
each request's state entirely inside its own response.

HOW: POST /api/transcript validates the body, resolves the video id and
checks the server's Anthropic key *before* streaming, so those failures
are ordinary JSON errors with a 4xx/5xx status. Once accepted, the
pipeline runs as an asyncio task writing to an EventChannel, and the
response streams the channel's frames. A wall-clock budget bounds the
task; when it runs out, or when the client disconnects, the task is
cancelled and every upstream connection it opened is closed.

RULES:
- Pre-stream errors: 400 for bad body / missing url / bad URL,
  500 for a missing server API key; body is always {"error": ...}
- After the stream starts the HTTP status never changes; failures are
  error events
- Exceeding PIPELINE_TIME_BUDGET_S ends the stream without a terminal
  event (clients report this as a cut-off)
- No state is shared between requests
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError

from yt_cleaner import __version__
from yt_cleaner.config import API_HOST, API_PORT, PIPELINE_TIME_BUDGET_S, load_anthropic_key
from yt_cleaner.core.models import RequestSession
from yt_cleaner.core.video_id import extract_video_id
from yt_cleaner.server.events import EventChannel
from yt_cleaner.server.models import ErrorResponse, HealthResponse, TranscriptRequest
from yt_cleaner.server.pipeline import build_and_run

logger = logging.getLogger(__name__)

INVALID_URL_MESSAGE = (
    "Invalid YouTube URL. Please use a URL like "
    "https://www.youtube.com/watch?v=... or https://youtu.be/..."
)

_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

app = FastAPI(
    title="YouTube Transcript Cleaner API",
    description=(
        "Fetches a YouTube video's captions, splits them into chunks, and "
        "rewrites each chunk into readable prose with a language model. "
        "Progress and cleaned chunks are streamed back as server-sent events."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _run_with_budget(
    session: RequestSession,
    channel: EventChannel,
    anthropic_key: str,
    budget_s: float,
) -> None:
    """Run the pipeline, cutting it off when the time budget is exceeded."""
    try:
        await asyncio.wait_for(
            build_and_run(session, channel, anthropic_key),
            timeout=budget_s,
        )
    except asyncio.TimeoutError:
        logger.warning(
            "Pipeline for %s exceeded %.0fs budget, cutting the stream",
            session.video_id, budget_s,
        )
        session.cancel()
    finally:
        channel.close()


async def stream_pipeline(
    session: RequestSession,
    channel: EventChannel,
    anthropic_key: str,
    budget_s: float = PIPELINE_TIME_BUDGET_S,
) -> AsyncIterator[bytes]:
    """Yield encoded event frames while the pipeline task produces them.

    RULES:
    - The pipeline starts when the response body starts streaming
    - Leaving the generator early (client disconnect) cancels the task
    """
    task = asyncio.create_task(
        _run_with_budget(session, channel, anthropic_key, budget_s)
    )
    try:
        async for frame in channel.frames():
            yield frame
    finally:
        if not task.done():
            logger.info("Client left before %s finished, cancelling", session.video_id)
            session.cancel()
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.post(
    "/api/transcript",
    tags=["transcripts"],
    summary="Fetch and clean a YouTube transcript",
    description=(
        "Accepts {url, providerCredential?}. On success, responds with a "
        "text/event-stream of `data: <json>` events: status, meta, info, "
        "progress, chunk, and finally done or error. Chunk events carry a "
        "0-based index that clients must use for reassembly."
    ),
    responses={
        200: {
            "content": {"text/event-stream": {}},
            "description": "Event stream of pipeline progress and cleaned chunks.",
        },
        400: {"model": ErrorResponse, "description": "Invalid body or URL"},
        500: {"model": ErrorResponse, "description": "Server misconfiguration"},
    },
)
async def create_transcript(request: Request) -> Response:
    try:
        body = await request.json()
    except ValueError:
        return _error_response(400, "Invalid request body")
    if not isinstance(body, dict):
        return _error_response(400, "Invalid request body")

    try:
        payload = TranscriptRequest.model_validate(body)
    except ValidationError:
        return _error_response(400, "Invalid request body")

    if not payload.url or not payload.url.strip():
        return _error_response(400, "URL is required")

    video_id = extract_video_id(payload.url)
    if not video_id:
        return _error_response(400, INVALID_URL_MESSAGE)

    try:
        anthropic_key = load_anthropic_key()
    except ValueError:
        logger.error("ANTHROPIC_API_KEY is not configured")
        return _error_response(500, "Server configuration error: missing API key")

    credential = (payload.provider_credential or "").strip() or None
    session = RequestSession(video_id=video_id, provider_credential=credential)
    channel = EventChannel()
    logger.info("Accepted transcript request for %s", video_id)

    return StreamingResponse(
        stream_pipeline(session, channel, anthropic_key),
        media_type="text/event-stream",
        headers=_STREAM_HEADERS,
    )


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness and readiness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api(host: str = API_HOST, port: int = API_PORT) -> None:
    """Entry point for serving the API with uvicorn."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)
