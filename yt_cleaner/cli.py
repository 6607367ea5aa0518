"""Command-line interface for the YouTube Transcript Cleaner.

WHY: The server is the product, but two things are handy from a terminal:
starting it, and pulling a cleaned transcript from a running instance
without a browser.

HOW: argparse with two subcommands. ``serve`` hands off to uvicorn via
run_api(). ``fetch`` streams from the server with TranscriptClient,
prints progress to stderr as events arrive, and writes the final
transcript to stdout or a file.

RULES:
- Status output goes to stderr (not stdout)
- Exit code 1 on any error event, HTTP error, or cut-off stream
- argv=None means use sys.argv; explicit argv is for testing
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from yt_cleaner.client.consumer import (
    ConsumerState,
    StreamStatus,
    TranscriptClient,
    format_duration,
)
from yt_cleaner.config import API_HOST, API_PORT, API_URL

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def _status(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


class _ProgressPrinter:
    """Prints each state change once, as it happens."""

    def __init__(self) -> None:
        self._last = ""
        self._meta_shown = False

    def __call__(self, state: ConsumerState) -> None:
        if state.metadata is not None and not self._meta_shown:
            self._meta_shown = True
            self._print_meta(state)
        if state.status == StreamStatus.PROCESSING and state.total:
            line = "Cleaning chunk {}/{}...".format(state.current or 1, state.total)
        elif state.status == StreamStatus.LOADING:
            line = state.message
        else:
            return
        if line and line != self._last:
            self._last = line
            _status(line)

    @staticmethod
    def _print_meta(state: ConsumerState) -> None:
        duration = format_duration(state.metadata.duration_s)
        if duration:
            _status("{} ({})".format(state.metadata.title, duration))
        else:
            _status(state.metadata.title)


async def _fetch(args: argparse.Namespace) -> int:
    async with TranscriptClient(base_url=args.server) as client:
        state = await client.stream(
            args.url,
            provider_credential=args.provider_key,
            on_update=_ProgressPrinter(),
        )

    if state.status != StreamStatus.DONE:
        _status("Error: {}".format(state.message))
        if state.transcript:
            _status("Partial transcript follows.")
            _write_output(state.transcript, args.output)
        return 1

    _write_output(state.transcript, args.output)
    if args.output:
        _status("Saved: {}".format(args.output))
    return 0


def _write_output(text: str, output: Optional[Path]) -> None:
    if output is None:
        sys.stdout.write(text + "\n")
        sys.stdout.flush()
    else:
        output.write_text(text + "\n", encoding="utf-8")


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser with the serve and fetch subcommands."""
    parser = argparse.ArgumentParser(
        prog="yt-cleaner",
        description="Fetch YouTube captions and rewrite them into a clean transcript.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log at DEBUG level",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the streaming API server")
    serve.add_argument("--host", default=API_HOST, help="Bind address (default: %(default)s)")
    serve.add_argument("--port", type=int, default=API_PORT, help="Port (default: %(default)s)")

    fetch = sub.add_parser("fetch", help="Stream a cleaned transcript from a running server")
    fetch.add_argument("url", help="YouTube video URL")
    fetch.add_argument(
        "--server",
        default=API_URL,
        help="Base URL of the API server (default: %(default)s)",
    )
    fetch.add_argument(
        "--provider-key",
        default=None,
        help="Supadata API key to use for this request",
    )
    fetch.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Write the transcript to this file instead of stdout",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``yt-cleaner`` console script."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    if args.command == "serve":
        from yt_cleaner.server.app import run_api
        run_api(host=args.host, port=args.port)
        return

    try:
        code = asyncio.run(_fetch(args))
    except KeyboardInterrupt:
        _status("Cancelled.")
        sys.exit(130)
    sys.exit(code)


if __name__ == "__main__":
    main()
