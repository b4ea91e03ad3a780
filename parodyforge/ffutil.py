"""FFmpeg command helpers: segment cutting and concat-demuxer joins."""

import logging
import shutil
from pathlib import Path

from parodyforge.errors import ConcatenationError, CutError
from parodyforge.manifest import ToolConfig
from parodyforge.runner import CommandRunner, IdentityTranslator, PathTranslator
from parodyforge.timecode import format_seconds

logger = logging.getLogger(__name__)

CONCAT_LIST_NAME = "concat_list.txt"


def segment_filename(
    ordinal: int, video_id: str, extension: str = "mp4", width: int = 3
) -> str:
    """Scratch name for a cut clip; lexical order equals task order.

    *width* must cover the largest ordinal in the run.
    """
    return f"segment_{ordinal:0{width}d}_{video_id}.{extension}"


def ordinal_width(task_count: int) -> int:
    """Zero-padding that keeps *task_count* segment names sorted."""
    return max(3, len(str(task_count)))


def cut_segment(
    source: Path,
    start_sec: int,
    duration_sec: int,
    ordinal: int,
    video_id: str,
    temp_dir: Path,
    runner: CommandRunner,
    tools: ToolConfig | None = None,
    translator: PathTranslator | None = None,
    timeout: float | None = None,
    width: int = 3,
) -> Path:
    """Stream-copy ``[start, start + duration)`` of *source* into the scratch dir."""
    tools = tools or ToolConfig()
    translator = translator or IdentityTranslator()

    output_path = Path(temp_dir) / segment_filename(
        ordinal, video_id, source.suffix.lstrip(".") or "mp4", width=width
    )
    cmd = [
        *tools.ffmpeg, "-y",
        "-ss", format_seconds(start_sec),
        "-i", translator.to_tool(source),
        "-t", str(duration_sec),
        "-c", "copy",
        translator.to_tool(output_path),
    ]
    logger.debug("FFmpeg command: %s", " ".join(cmd))

    result = runner.run(cmd, timeout=timeout)
    if not result.ok:
        raise CutError(
            f"ffmpeg could not cut segment {ordinal} ({result.describe_failure()})",
            stderr=result.stderr,
        )
    if not output_path.exists() or output_path.stat().st_size == 0:
        raise CutError(
            f"ffmpeg produced no output for segment {ordinal}", stderr=result.stderr
        )
    return output_path


def _quote(name: str) -> str:
    return "'" + name.replace("'", "'\\''") + "'"


def write_concat_list(clip_paths: list[Path], list_path: Path) -> Path:
    """Write an ffmpeg concat-demuxer list naming *clip_paths* in order.

    Entries are basenames, which the demuxer resolves relative to the list
    file, so every clip must live beside it.
    """
    if not clip_paths:
        raise ValueError("write_concat_list called with empty clip list")
    lines = [f"file {_quote(Path(p).name)}" for p in clip_paths]
    list_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return list_path


def concat_clips(
    clip_paths: list[Path],
    output_path: Path,
    temp_dir: Path,
    runner: CommandRunner,
    tools: ToolConfig | None = None,
    translator: PathTranslator | None = None,
    timeout: float | None = None,
) -> Path:
    """Join *clip_paths* in order into *output_path*.

    Video is stream-copied (every clip comes from the same download format);
    audio is re-encoded to AAC so clips with mismatched audio metadata still
    produce a playable file. The merge is staged in *temp_dir* and then moved
    to *output_path*.
    """
    if not clip_paths:
        raise ValueError("concat_clips called with empty clip list")
    tools = tools or ToolConfig()
    translator = translator or IdentityTranslator()

    temp_dir = Path(temp_dir)
    output_path = Path(output_path)
    list_path = write_concat_list(clip_paths, temp_dir / CONCAT_LIST_NAME)
    staged = temp_dir / f"_joined{output_path.suffix or '.mp4'}"

    cmd = [
        *tools.ffmpeg, "-y",
        "-f", "concat",
        "-safe", "0",
        "-i", translator.to_tool(list_path),
        "-c:v", "copy",
        "-c:a", "aac",
        translator.to_tool(staged),
    ]
    logger.debug("FFmpeg merge command: %s", " ".join(cmd))

    result = runner.run(cmd, timeout=timeout)
    if not result.ok:
        raise ConcatenationError(
            f"ffmpeg concat failed ({result.describe_failure()})", stderr=result.stderr
        )
    if not staged.exists():
        raise ConcatenationError("ffmpeg concat produced no output", stderr=result.stderr)

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(staged), str(output_path))
    except OSError as e:
        raise ConcatenationError(f"Could not move merged video to {output_path}: {e}") from e
    return output_path
