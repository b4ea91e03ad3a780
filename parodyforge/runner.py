"""Process-execution boundary for the external tools.

Everything that shells out to ffmpeg or yt-dlp goes through a CommandRunner.
Every path handed to a tool goes through a PathTranslator, since the tools may
live in a different filesystem namespace (e.g. ``docker compose exec``).
"""

import subprocess
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol, Sequence


@dataclass
class CommandResult:
    """Exit status and captured output of one external command."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def describe_failure(self) -> str:
        if self.timed_out:
            return "timed out"
        return f"exit status {self.returncode}"


class CommandRunner(Protocol):
    def run(self, args: Sequence[str], timeout: float | None = None) -> CommandResult:
        ...


def _decode(output: str | bytes | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode(errors="replace")
    return output


class SubprocessRunner:
    """Runs commands on the host with ``subprocess.run``.

    Never raises for a failing command: a missing executable is reported as
    exit status 127, one that cannot be started (permissions, bad format) as
    126, and an expired timeout as ``timed_out=True``.
    """

    def run(self, args: Sequence[str], timeout: float | None = None) -> CommandResult:
        cmd = [str(a) for a in args]
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        except FileNotFoundError as e:
            return CommandResult(args=cmd, returncode=127, stderr=str(e))
        except OSError as e:
            return CommandResult(args=cmd, returncode=126, stderr=str(e))
        except subprocess.TimeoutExpired as e:
            return CommandResult(
                args=cmd,
                returncode=-1,
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr),
                timed_out=True,
            )
        return CommandResult(
            args=cmd,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )


class PathTranslator(Protocol):
    def to_tool(self, path: Path) -> str:
        """Return *path* as the external tool must see it."""
        ...


class IdentityTranslator:
    """Tools share the pipeline's filesystem."""

    def to_tool(self, path: Path) -> str:
        return str(path)


class PrefixTranslator:
    """Maps paths under *host_root* onto *tool_root* (e.g. ./media -> /workdir)."""

    def __init__(self, host_root: Path, tool_root: str):
        self.host_root = Path(host_root).resolve()
        self.tool_root = PurePosixPath(tool_root)

    def to_tool(self, path: Path) -> str:
        resolved = Path(path).resolve()
        try:
            rel = resolved.relative_to(self.host_root)
        except ValueError:
            raise ValueError(
                f"{path} is outside {self.host_root}, which is the only "
                f"directory visible to the tools as {self.tool_root}"
            ) from None
        return str(self.tool_root.joinpath(*rel.parts))
