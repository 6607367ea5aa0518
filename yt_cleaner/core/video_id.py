"""Extract a YouTube video identifier from a user-supplied URL.

RULES:
- youtu.be/<id> → the whole path (without the leading slash)
- *youtube.com/watch?v=<id> → the v query parameter
- *youtube.com/embed/<id> → the path segment after /embed/
- Anything else, including unparseable input, returns None (never raises)
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import parse_qs, urlsplit

_EMBED_RE = re.compile(r"/embed/([^/?]+)")


def extract_video_id(url: str) -> Optional[str]:
    """Return the video id contained in ``url``, or None.

    Pure and synchronous; the caller turns None into an invalid-input error.
    """
    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
    except (AttributeError, ValueError):
        return None

    if not parts.scheme or not host:
        return None

    if host == "youtu.be":
        video_id = parts.path[1:]
        return video_id or None

    if "youtube.com" in host:
        values = parse_qs(parts.query).get("v")
        if values and values[0]:
            return values[0]
        match = _EMBED_RE.search(parts.path)
        if match:
            return match.group(1)

    return None
