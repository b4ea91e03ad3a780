"""YouTube URL helpers."""

import re

# youtu.be/ID, /v/ID, /u/x/ID, /embed/ID, /shorts/ID, watch?v=ID, &v=ID
_ID_PATTERN = re.compile(
    r"^.*(youtu\.be/|v/|u/\w/|embed/|shorts/|watch\?v=|&v=)([^#&?]*).*"
)

VIDEO_ID_LENGTH = 11


def extract_video_id(url: str) -> str | None:
    """Return the 11-character video ID embedded in *url*, or None."""
    if not url:
        return None
    match = _ID_PATTERN.match(url)
    if match is None:
        return None
    video_id = match.group(2)
    return video_id if len(video_id) == VIDEO_ID_LENGTH else None
