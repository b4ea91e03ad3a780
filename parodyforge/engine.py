"""Orchestrator: probe -> prepare dirs -> parse -> download -> cut -> join -> cleanup."""

import enum
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from parodyforge import cache, deps, ffutil
from parodyforge.errors import (
    ConcatenationError,
    CutError,
    DirectoryError,
    DownloadError,
    InvalidTimecodeError,
    MalformedInputError,
    MissingDependencyError,
    NonPositiveDurationError,
    ParodyForgeError,
    ToolError,
    UnresolvableUrlError,
)
from parodyforge.manifest import PipelineConfig, Task, load_tasks
from parodyforge.runner import (
    CommandRunner,
    IdentityTranslator,
    PathTranslator,
    PrefixTranslator,
    SubprocessRunner,
)
from parodyforge.timecode import duration, parse_timecode
from parodyforge.youtube import extract_video_id

logger = logging.getLogger(__name__)


class PipelineState(str, enum.Enum):
    PROBING = "probing"
    PREPARING_DIRS = "preparing_dirs"
    PARSING_INPUT = "parsing_input"
    DOWNLOADING = "downloading"
    CUTTING = "cutting"
    JOINING = "joining"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    ABORTED = "aborted"


class RunStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    NO_SURVIVORS = "no_survivors"
    ABORTED = "aborted"


@dataclass
class TaskFailure:
    """A task dropped at some stage; the run carried on without it."""

    ordinal: int
    url: str
    stage: str
    reason: str


@dataclass
class RunResult:
    status: RunStatus = RunStatus.ABORTED
    state: PipelineState = PipelineState.PROBING
    tasks_total: int = 0
    downloaded: int = 0
    cache_hits: int = 0
    cut: int = 0
    joined: int = 0
    output_path: Path | None = None
    reason: str | None = None
    failures: list[TaskFailure] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if self.status is RunStatus.ABORTED else 0


@dataclass
class _Planned:
    """A task that survived validation and download."""

    ordinal: int
    task: Task
    video_id: str
    start_sec: int
    duration_sec: int
    source: Path


def _prepare_dirs(
    config: PipelineConfig, translator: PathTranslator, output_path: Path
) -> None:
    """Create the cache dir (never emptied) and a fresh, empty scratch dir."""
    cache_dir = Path(config.cache_dir)
    temp_dir = Path(config.temp_dir)
    scratch = temp_dir.resolve()
    # The scratch dir is wiped twice per run; nothing that outlives the run may sit inside it.
    if scratch == cache_dir.resolve() or scratch in cache_dir.resolve().parents:
        raise DirectoryError(
            f"Cache directory {cache_dir} must not be inside temporary directory {temp_dir}"
        )
    if scratch in output_path.resolve().parents:
        raise DirectoryError(
            f"Output {output_path} must not be inside temporary directory {temp_dir}"
        )

    try:
        # Both must be reachable by the tools before anything is created.
        translator.to_tool(cache_dir)
        translator.to_tool(temp_dir)
    except ValueError as e:
        raise DirectoryError(str(e)) from e

    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
        if temp_dir.exists():
            shutil.rmtree(temp_dir)
        temp_dir.mkdir(parents=True)
    except OSError as e:
        raise DirectoryError(f"Error ensuring directories: {e}") from e
    logger.debug("Cache directory: %s", cache_dir.resolve())
    logger.debug("Temporary segments directory: %s (cleared)", temp_dir.resolve())


def _cleanup(config: PipelineConfig) -> None:
    temp_dir = Path(config.temp_dir)
    if config.keep_temp:
        logger.info("Temporary segment files retained in %s", temp_dir)
        return
    try:
        shutil.rmtree(temp_dir)
        logger.info("Temporary files cleaned up")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Error cleaning up temporary directory %s: %s", temp_dir, e)


def _log_tool_stderr(err: ParodyForgeError) -> None:
    if isinstance(err, ToolError) and err.stderr:
        logger.debug("Tool output:\n%s", err.stderr.rstrip())


def make_translator(config: PipelineConfig) -> PathTranslator:
    if config.media_root is not None and config.tool_root is not None:
        return PrefixTranslator(config.media_root, config.tool_root)
    return IdentityTranslator()


def run(
    manifest_path: Path,
    output_path: Path,
    config: PipelineConfig | None = None,
    runner: CommandRunner | None = None,
    translator: PathTranslator | None = None,
    on_progress: Callable[[str, float], None] | None = None,
) -> RunResult:
    """Execute the whole pipeline for the manifest at *manifest_path*.

    Fatal conditions (missing tools, unusable directories, malformed manifest,
    failed join) come back as an ``aborted`` RunResult rather than an
    exception. Per-task failures are recorded in ``failures`` and never stop
    the run.

    Args:
        manifest_path: JSON manifest of ``{url, startTime, endTime}`` objects.
        output_path: Where the merged video is written.
        config: Directories, tool launchers, formats and timeouts.
        runner: Process-execution capability; defaults to SubprocessRunner.
        translator: Host-to-tool path mapping; derived from *config* if omitted.
        on_progress: Optional callback(stage_name, fraction_complete).
    """
    config = config or PipelineConfig()
    runner = runner or SubprocessRunner()
    translator = translator or make_translator(config)
    output_path = Path(output_path)
    result = RunResult()

    def _progress(stage: str, frac: float) -> None:
        if on_progress:
            on_progress(stage, frac)

    def _abort(reason: str) -> RunResult:
        logger.error(reason)
        result.status = RunStatus.ABORTED
        result.state = PipelineState.ABORTED
        result.reason = reason
        return result

    def _drop(ordinal: int, task: Task, stage: str, err: Exception) -> None:
        logger.warning("Skipping task %d (%s): %s", ordinal, task.url, err)
        result.failures.append(
            TaskFailure(ordinal=ordinal, url=task.url, stage=stage, reason=str(err))
        )

    # --- Pre-flight: nothing below touches the filesystem until probing passes ---
    try:
        result.state = PipelineState.PROBING
        _progress("Checking dependencies", 0.0)
        report = deps.probe(
            deps.default_tool_specs(config.tools), runner, timeout=config.timeouts.probe
        )
        if not report.ok:
            raise MissingDependencyError(
                f"Critical dependencies missing: {', '.join(report.missing)}"
            )

        result.state = PipelineState.PREPARING_DIRS
        _prepare_dirs(config, translator, output_path)

        result.state = PipelineState.PARSING_INPUT
        tasks = load_tasks(manifest_path)
    except (MissingDependencyError, DirectoryError, MalformedInputError) as e:
        return _abort(str(e))
    result.tasks_total = len(tasks)
    logger.debug("Read %d tasks from %s", len(tasks), manifest_path)

    # --- Download ---
    result.state = PipelineState.DOWNLOADING
    _progress("Downloading source videos", 0.05)
    planned: list[_Planned] = []
    for ordinal, task in enumerate(tasks, 1):
        try:
            start_sec = parse_timecode(task.start_time)
            duration_sec = duration(task.start_time, task.end_time)
        except (InvalidTimecodeError, NonPositiveDurationError) as e:
            _drop(ordinal, task, "validate", e)
            continue

        video_id = extract_video_id(task.url)
        if video_id is None:
            _drop(ordinal, task, "resolve", UnresolvableUrlError(
                f"Could not extract video ID from URL: {task.url}"
            ))
            continue

        try:
            outcome = cache.ensure_cached(
                task.url,
                video_id,
                Path(config.cache_dir),
                runner,
                tools=config.tools,
                fmt=config.download_format,
                translator=translator,
                timeout=config.timeouts.download,
            )
        except DownloadError as e:
            _log_tool_stderr(e)
            _drop(ordinal, task, "download", e)
            continue

        result.downloaded += 1
        result.cache_hits += int(outcome.hit)
        planned.append(
            _Planned(
                ordinal=ordinal,
                task=task,
                video_id=video_id,
                start_sec=start_sec,
                duration_sec=duration_sec,
                source=outcome.path,
            )
        )
        _progress("Downloading source videos", 0.05 + 0.45 * ordinal / len(tasks))

    # --- Cut ---
    result.state = PipelineState.CUTTING
    _progress("Cutting segments", 0.5)
    clips: list[Path] = []
    width = ffutil.ordinal_width(len(tasks))
    for i, item in enumerate(planned, 1):
        try:
            clip = ffutil.cut_segment(
                item.source,
                item.start_sec,
                item.duration_sec,
                item.ordinal,
                item.video_id,
                Path(config.temp_dir),
                runner,
                tools=config.tools,
                translator=translator,
                timeout=config.timeouts.cut,
                width=width,
            )
        except CutError as e:
            _log_tool_stderr(e)
            _drop(item.ordinal, item.task, "cut", e)
            continue
        logger.info("Segment for %s saved to %s", item.video_id, clip)
        clips.append(clip)
        _progress("Cutting segments", 0.5 + 0.3 * i / len(planned))
    result.cut = len(clips)

    # --- Join ---
    if not clips:
        logger.warning("No segments were successfully cut. Nothing to join.")
        result.status = RunStatus.NO_SURVIVORS
        result.reason = "nothing to join"
    else:
        result.state = PipelineState.JOINING
        _progress(f"Joining {len(clips)} segments", 0.8)
        try:
            ffutil.concat_clips(
                clips,
                output_path,
                Path(config.temp_dir),
                runner,
                tools=config.tools,
                translator=translator,
                timeout=config.timeouts.concat,
            )
        except ConcatenationError as e:
            _log_tool_stderr(e)
            _abort(f"Failed to join videos: {e}")
        else:
            result.joined = 1
            result.output_path = output_path
            result.status = RunStatus.SUCCEEDED
            logger.info("All segments successfully merged into %s", output_path)

    # --- Cleanup ---
    aborted = result.status is RunStatus.ABORTED
    result.state = PipelineState.CLEANING_UP
    _progress("Cleaning up", 0.95)
    _cleanup(config)
    result.state = PipelineState.ABORTED if aborted else PipelineState.DONE
    _progress("Done", 1.0)
    return result
