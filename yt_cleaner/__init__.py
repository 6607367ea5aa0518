"""YouTube Transcript Cleaner: fetch captions, clean them up, stream the result.

WHY: Auto-generated YouTube captions are a wall of unpunctuated text with
filler words and no paragraphs. This package fetches a video's captions,
splits them into chunks, has a language model rewrite each chunk into
readable prose, and streams the cleaned chunks back as they finish.

HOW: Four layers. adapters/ talks to the upstream caption sources,
core/ turns cues into chunked text and rewrites it, server/ exposes the
pipeline as a streaming HTTP endpoint, and client/ consumes that stream.

RULES:
- Caption sources share one interface and one error vocabulary
- The stream contract (event order, chunk indexes) is the boundary
  between server and client
- No state is shared between requests
"""

__version__ = "0.1.0"
