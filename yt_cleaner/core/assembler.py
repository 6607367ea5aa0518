"""Caption cue merging and minute-granularity timecode annotation.

WHY: The rewrite backend works on prose, not on hundreds of two-second
caption fragments. Merging cues into one text stream is trivial; the
interesting part is keeping a sense of *where* in the video each passage
sits. A bracketed marker roughly once a minute gives readers that anchor
without cluttering the text, and the rewriter is told to keep them.

HOW: has_real_timing() decides whether the cues carry usable offsets.
Untimed input (a single opaque blob from the transcript proxy, or every
cue at offset zero) is space-joined as-is. Timed input is walked in order;
the first cue at or past each 60-second boundary is prefixed with a
marker showing that cue's exact offset, and the next boundary is the
minute after it.

RULES:
- Real timing = more than one cue AND at least one nonzero offset
- A single cue is always untimed, whatever its duration
- Marker format: [M:SS] below one hour, [H:MM:SS] from one hour on
- At most one marker per boundary crossing; markers only precede text
- Newlines inside a cue become spaces; empty cues contribute nothing
"""

from __future__ import annotations

from typing import List, Sequence

from yt_cleaner.core.models import CaptionCue, RawText

# Interval between timecode markers, in seconds.
MARKER_INTERVAL_S = 60


def has_real_timing(cues: Sequence[CaptionCue]) -> bool:
    """Return True when the cues carry usable per-cue offsets."""
    return len(cues) > 1 and any(cue.offset_s > 0 for cue in cues)


def format_timecode(offset_s: float) -> str:
    """Format an offset in seconds as a bracketed marker.

    >>> format_timecode(65.4)
    '[1:05]'
    >>> format_timecode(3725)
    '[1:02:05]'
    """
    total = int(offset_s)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return "[{}:{:02d}:{:02d}]".format(hours, minutes, seconds)
    return "[{}:{:02d}]".format(minutes, seconds)


def _cue_text(cue: CaptionCue) -> str:
    return " ".join(cue.text.split())


def assemble_raw_text(cues: Sequence[CaptionCue]) -> RawText:
    """Merge ordered caption cues into a single RawText.

    Args:
        cues: Caption cues in source order.

    Returns:
        RawText with markers inserted when the cues have real timing.
    """
    if not has_real_timing(cues):
        parts = [_cue_text(cue) for cue in cues]
        return RawText(
            text=" ".join(part for part in parts if part),
            has_timecodes=False,
        )

    parts: List[str] = []
    next_boundary = 0.0
    for cue in cues:
        text = _cue_text(cue)
        if not text:
            continue
        if cue.offset_s >= next_boundary:
            parts.append(format_timecode(cue.offset_s))
            minute_start = (int(cue.offset_s) // MARKER_INTERVAL_S) * MARKER_INTERVAL_S
            next_boundary = float(minute_start + MARKER_INTERVAL_S)
        parts.append(text)

    return RawText(text=" ".join(parts), has_timecodes=True)
