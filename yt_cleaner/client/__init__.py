"""Client for the transcript event stream.

WHY: Consumers of the stream must reassemble chunks by index and notice
when a stream stops without finishing. This package does both.

HOW: consumer.py decodes ``data:`` lines, folds events into a state
object, and wraps the HTTP call in an async client.
"""

from yt_cleaner.client.consumer import (
    CUT_OFF_MESSAGE,
    ConsumerState,
    StreamConsumer,
    TranscriptAssembly,
    TranscriptClient,
)

__all__ = [
    "CUT_OFF_MESSAGE",
    "ConsumerState",
    "StreamConsumer",
    "TranscriptAssembly",
    "TranscriptClient",
]
