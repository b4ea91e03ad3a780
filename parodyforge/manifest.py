"""JSON input manifest and pipeline configuration.

The manifest is the contract between the browser editor's export and the
pipeline: an array of ``{"url", "startTime", "endTime"}`` objects.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from parodyforge.errors import MalformedInputError

DEFAULT_MEDIA_ROOT = Path("media")
DEFAULT_TOOL_ROOT = "/workdir"


@dataclass(frozen=True)
class Task:
    """One requested clip, exactly as the manifest states it."""

    url: str
    start_time: str
    end_time: str


@dataclass
class ToolConfig:
    """Launcher argv for each external tool."""

    ffmpeg: list[str] = field(default_factory=lambda: ["ffmpeg"])
    ytdlp: list[str] = field(default_factory=lambda: ["yt-dlp"])

    @classmethod
    def docker_compose(cls) -> "ToolConfig":
        """Tools running as the ``ffmpeg`` and ``ytdlp`` compose services."""
        return cls(
            ffmpeg=["docker", "compose", "exec", "ffmpeg", "ffmpeg"],
            ytdlp=["docker", "compose", "exec", "ytdlp", "yt-dlp"],
        )


@dataclass
class DownloadFormat:
    """The single fixed download quality. ``tag`` is part of the cache key."""

    tag: str = "360p"
    selector: str = "18"  # 360p mp4 with audio
    extension: str = "mp4"


@dataclass
class Timeouts:
    """Upper bounds, in seconds, for each kind of external call."""

    probe: float = 30.0
    download: float = 600.0
    cut: float = 300.0
    concat: float = 900.0


@dataclass
class PipelineConfig:
    cache_dir: Path = DEFAULT_MEDIA_ROOT / ".youtube_cache"
    temp_dir: Path = DEFAULT_MEDIA_ROOT / ".temp_segments"
    keep_temp: bool = False
    tools: ToolConfig = field(default_factory=ToolConfig)
    download_format: DownloadFormat = field(default_factory=DownloadFormat)
    timeouts: Timeouts = field(default_factory=Timeouts)
    # Set both to translate host paths for tools in another namespace.
    media_root: Path | None = None
    tool_root: str | None = None


_REQUIRED_FIELDS = ("url", "startTime", "endTime")


def parse_tasks(data: Any) -> list[Task]:
    """Validate decoded manifest JSON and build the task list.

    The whole manifest is rejected on the first structural violation; no
    partially valid task list is ever returned.
    """
    if not isinstance(data, list):
        raise MalformedInputError(
            "Invalid manifest: must be an array of objects with url, startTime, and endTime"
        )

    tasks: list[Task] = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise MalformedInputError(f"Invalid manifest entry #{i + 1}: not an object")
        missing = [k for k in _REQUIRED_FIELDS if not item.get(k)]
        if missing:
            raise MalformedInputError(
                f"Invalid manifest entry #{i + 1}: missing or empty {', '.join(missing)}"
            )
        if not all(isinstance(item[k], str) for k in _REQUIRED_FIELDS):
            raise MalformedInputError(
                f"Invalid manifest entry #{i + 1}: url, startTime and endTime must be strings"
            )
        tasks.append(
            Task(url=item["url"], start_time=item["startTime"], end_time=item["endTime"])
        )
    return tasks


def load_tasks(path: str | Path) -> list[Task]:
    """Load and validate the manifest file at *path*."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise MalformedInputError(f"Cannot read manifest {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise MalformedInputError(f"Manifest {path} is not UTF-8 text: {e}") from e
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"Manifest {path} is not valid JSON: {e}") from e
    return parse_tasks(data)


def dump_tasks(tasks: list[Task], path: Path) -> None:
    """Write *tasks* back out in manifest form."""
    payload = [
        {"url": t.url, "startTime": t.start_time, "endTime": t.end_time} for t in tasks
    ]
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
