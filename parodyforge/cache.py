"""Download cache for source videos.

Each source video is downloaded once, in one fixed format, to
``<cache_dir>/<video_id>.<tag>.<ext>``. The cache is shared by every run and
is never cleaned by the pipeline. Downloads land in a uniquely named temp file
first and are moved into place with ``os.replace``, so a concurrent run never
sees a half-written file as a cache hit.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path

from parodyforge.errors import DownloadError
from parodyforge.manifest import DownloadFormat, ToolConfig
from parodyforge.runner import CommandRunner, IdentityTranslator, PathTranslator

logger = logging.getLogger(__name__)


@dataclass
class CacheOutcome:
    path: Path
    hit: bool


def cache_path(cache_dir: Path, video_id: str, fmt: DownloadFormat) -> Path:
    return Path(cache_dir) / f"{video_id}.{fmt.tag}.{fmt.extension}"


def _discard(path: Path) -> None:
    for p in (path, path.with_name(path.name + ".part")):
        try:
            p.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove partial download %s: %s", p, e)


def ensure_cached(
    url: str,
    video_id: str,
    cache_dir: Path,
    runner: CommandRunner,
    tools: ToolConfig | None = None,
    fmt: DownloadFormat | None = None,
    translator: PathTranslator | None = None,
    timeout: float | None = None,
) -> CacheOutcome:
    """Return the cached copy of *video_id*, downloading it on a miss.

    Raises DownloadError if the downloader fails; the canonical cache path is
    left untouched in that case.
    """
    tools = tools or ToolConfig()
    fmt = fmt or DownloadFormat()
    translator = translator or IdentityTranslator()

    target = cache_path(cache_dir, video_id, fmt)
    if target.exists():
        logger.debug("%s for %s already in cache", fmt.tag, video_id)
        return CacheOutcome(path=target, hit=True)

    tmp = target.with_name(f".{target.stem}.{uuid.uuid4().hex[:8]}.tmp.{fmt.extension}")
    cmd = [
        *tools.ytdlp,
        "-f", fmt.selector,
        "--no-playlist",
        "--output", translator.to_tool(tmp),
        url,
    ]
    logger.debug("yt-dlp command: %s", " ".join(cmd))

    result = runner.run(cmd, timeout=timeout)
    if not result.ok:
        _discard(tmp)
        raise DownloadError(
            f"yt-dlp failed for {url} ({result.describe_failure()})",
            stderr=result.stderr,
        )
    if not tmp.exists():
        _discard(tmp)
        raise DownloadError(
            f"yt-dlp reported success for {url} but wrote no file", stderr=result.stderr
        )

    try:
        os.replace(tmp, target)
    except OSError as e:
        _discard(tmp)
        raise DownloadError(f"Could not move download into cache: {e}") from e

    logger.info("Downloaded %s mp4 for %s", fmt.tag, url)
    return CacheOutcome(path=target, hit=False)
