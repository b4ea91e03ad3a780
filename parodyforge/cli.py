"""Thin CLI entry point: builds a PipelineConfig and calls the engine."""

import argparse
import logging
import sys
from pathlib import Path

from parodyforge.engine import RunResult, RunStatus, run
from parodyforge.logging_config import setup_logging
from parodyforge.manifest import (
    DEFAULT_MEDIA_ROOT,
    DEFAULT_TOOL_ROOT,
    PipelineConfig,
    Timeouts,
    ToolConfig,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="parodyforge",
        description="ParodyForge: assemble one video from timestamped YouTube clips.",
    )
    sub = parser.add_subparsers(dest="command")

    defaults = Timeouts()
    proc = sub.add_parser("process", help="Download, cut and join the clips in a manifest")
    proc.add_argument("--input", "-i", type=Path, required=True, help="JSON file describing videos and segments")
    proc.add_argument("--output", "-o", type=Path, required=True, help="Path for the final merged video")
    proc.add_argument("--cache-dir", "-c", type=Path, default=DEFAULT_MEDIA_ROOT / ".youtube_cache", help="Directory for original downloads (kept between runs)")
    proc.add_argument("--temp-dir", "-t", type=Path, default=DEFAULT_MEDIA_ROOT / ".temp_segments", help="Directory for cut segments (cleared on every run)")
    proc.add_argument("--verbose", "-v", action="store_true", help="Debug logging; keep temporary segments")
    proc.add_argument("--docker", action="store_true", help="Run ffmpeg/yt-dlp via 'docker compose exec'")
    proc.add_argument("--media-root", type=Path, default=DEFAULT_MEDIA_ROOT, help="Host directory mounted into the tool containers")
    proc.add_argument("--tool-root", type=str, default=DEFAULT_TOOL_ROOT, help="Mount point of --media-root inside the containers")
    proc.add_argument("--download-timeout", type=float, default=defaults.download, help="Seconds allowed per download")
    proc.add_argument("--cut-timeout", type=float, default=defaults.cut, help="Seconds allowed per segment cut")
    proc.add_argument("--concat-timeout", type=float, default=defaults.concat, help="Seconds allowed for the final join")

    serve = sub.add_parser("serve", help="Launch the HTTP job API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")
    serve.add_argument("--work-dir", type=Path, default=None, help="Directory for job files")
    serve.add_argument("--cache-dir", "-c", type=Path, default=DEFAULT_MEDIA_ROOT / ".youtube_cache", help="Shared download cache")
    serve.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    return parser


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    timeouts = Timeouts(
        download=args.download_timeout,
        cut=args.cut_timeout,
        concat=args.concat_timeout,
    )
    config = PipelineConfig(
        cache_dir=args.cache_dir,
        temp_dir=args.temp_dir,
        keep_temp=args.verbose,
        timeouts=timeouts,
    )
    if args.docker:
        config.tools = ToolConfig.docker_compose()
        config.media_root = args.media_root
        config.tool_root = args.tool_root
    return config


def print_report(result: RunResult, config: PipelineConfig) -> None:
    print()
    print(f"Tasks: {result.tasks_total}")
    print(f"  Downloaded: {result.downloaded} ({result.cache_hits} from cache)")
    print(f"  Cut: {result.cut}")
    print(f"  Joined: {result.joined}")
    for f in result.failures:
        print(f"  Skipped #{f.ordinal} at {f.stage}: {f.reason}")

    if result.status is RunStatus.SUCCEEDED:
        print(f"Done! Output: {Path(result.output_path).resolve()}")
    elif result.status is RunStatus.NO_SURVIVORS:
        print("No segments were successfully cut. Nothing to join.")
    else:
        print(f"Aborted: {result.reason}", file=sys.stderr)
    print(f"Original downloads are cached in: {Path(config.cache_dir).resolve()}")


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    setup_logging(verbose=args.verbose)

    if args.command == "serve":
        from parodyforge.web import create_app
        app = create_app(work_dir=args.work_dir, config=PipelineConfig(cache_dir=args.cache_dir))
        print(f"ParodyForge job API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    config = config_from_args(args)

    def on_progress(stage: str, frac: float) -> None:
        print(f"  [{frac:3.0%}] {stage}")

    try:
        result = run(args.input, args.output, config, on_progress=on_progress)
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print(f"An unexpected error occurred: {e}", file=sys.stderr)
        sys.exit(1)

    print_report(result, config)
    sys.exit(result.exit_code)


if __name__ == "__main__":
    main()
