"""Shared test fixtures."""

import json
from pathlib import Path
from typing import Callable, Sequence

import pytest

from parodyforge.manifest import PipelineConfig
from parodyforge.runner import CommandResult

FIXTURES_DIR = Path(__file__).parent / "fixtures"

URL_A = "https://www.youtube.com/watch?v=aaaaaaaaaaa"
URL_B = "https://www.youtube.com/watch?v=bbbbbbbbbbb"
URL_C = "https://youtu.be/ccccccccccc"


class FakeRunner:
    """Scripted stand-in for ffmpeg / yt-dlp.

    Version checks succeed unless the tool is listed in *missing*. Any other
    command succeeds and writes a small file at its output path, unless
    *fail* returns True for it.
    """

    def __init__(
        self,
        fail: Callable[[list[str]], bool] | None = None,
        missing: Sequence[str] = (),
    ):
        self.fail = fail or (lambda args: False)
        self.missing = set(missing)
        self.calls: list[list[str]] = []

    def run(self, args, timeout=None) -> CommandResult:
        args = [str(a) for a in args]
        self.calls.append(args)

        if args[-1] in ("-version", "--version"):
            tool = "yt-dlp" if "yt-dlp" in args else "ffmpeg"
            if tool in self.missing:
                return CommandResult(args=args, returncode=127, stderr=f"{tool}: not found")
            return CommandResult(args=args, returncode=0, stdout=f"{tool} version 1.0")

        if self.fail(args):
            return CommandResult(args=args, returncode=1, stderr="simulated failure")

        if "yt-dlp" in args:
            out = args[args.index("--output") + 1]
        else:
            out = args[-1]
        Path(out).write_bytes(b"fake media")
        return CommandResult(args=args, returncode=0)

    @property
    def downloads(self) -> list[list[str]]:
        return [c for c in self.calls if "--output" in c]

    @property
    def cuts(self) -> list[list[str]]:
        return [c for c in self.calls if "-ss" in c]

    @property
    def joins(self) -> list[list[str]]:
        return [c for c in self.calls if "concat" in c]


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def config(tmp_path: Path) -> PipelineConfig:
    return PipelineConfig(cache_dir=tmp_path / "cache", temp_dir=tmp_path / "segments")


@pytest.fixture
def write_manifest(tmp_path: Path) -> Callable[[object], Path]:
    def _write(data: object) -> Path:
        path = tmp_path / "input.json"
        path.write_text(json.dumps(data))
        return path
    return _write
