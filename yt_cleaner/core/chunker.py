"""Word-aligned chunking of assembled transcript text.

RULES:
- Words are whitespace-separated runs (str.split with no argument)
- Each chunk holds exactly words_per_chunk words, except possibly the last
- Joining every chunk's words in index order reproduces the input words
- Empty or whitespace-only text yields no chunks
"""

from __future__ import annotations

from typing import List


def count_words(text: str) -> int:
    """Number of whitespace-separated words in ``text``."""
    return len(text.split())


def chunk_words(text: str, words_per_chunk: int) -> List[str]:
    """Split ``text`` into chunks of at most ``words_per_chunk`` words.

    Raises:
        ValueError: if words_per_chunk is smaller than 1.
    """
    if words_per_chunk < 1:
        raise ValueError(
            "words_per_chunk must be at least 1, got {}".format(words_per_chunk)
        )

    words = text.split()
    return [
        " ".join(words[start:start + words_per_chunk])
        for start in range(0, len(words), words_per_chunk)
    ]
