"""Timecode parsing and formatting (HH:MM:SS, MM:SS, SS <-> seconds)."""

import re

from parodyforge.errors import InvalidTimecodeError, NonPositiveDurationError

_PART = re.compile(r"\d+")


def parse_timecode(text: str) -> int:
    """Convert ``HH:MM:SS``, ``MM:SS`` or ``SS`` to whole seconds.

    Every colon-delimited part must be a non-negative integer. Anything else
    (four parts, empty parts, signs, decimals, letters) raises
    InvalidTimecodeError.
    """
    if not isinstance(text, str):
        raise InvalidTimecodeError(str(text))

    parts = text.strip().split(":")
    if not 1 <= len(parts) <= 3 or not all(_PART.fullmatch(p) for p in parts):
        raise InvalidTimecodeError(text)

    seconds = 0
    for part in parts:
        seconds = seconds * 60 + int(part)
    return seconds


def format_seconds(seconds: int) -> str:
    """Canonical zero-padded ``HH:MM:SS``."""
    if seconds < 0:
        raise ValueError(f"seconds must be non-negative, got {seconds}")
    h, rem = divmod(int(seconds), 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def duration(start: str, end: str) -> int:
    """Length in seconds of the range ``[start, end)``."""
    start_sec = parse_timecode(start)
    end_sec = parse_timecode(end)
    if end_sec <= start_sec:
        raise NonPositiveDurationError(start, end)
    return end_sec - start_sec
