"""Transcript assembly, chunking, rewriting, and source orchestration.

WHY: The core package holds the logic that does not speak HTTP: turning
timed cues into text with minute markers, splitting that text into
word-bounded chunks, building rewrite prompts, and deciding which caption
source to trust.

HOW: models.py defines the data structures, errors.py the closed set of
fetch error kinds, and the remaining modules are small functions or
classes over those types.

RULES:
- Every fetch failure is a TranscriptFetchError with a FetchErrorKind
- Assembly and chunking are pure functions
"""
