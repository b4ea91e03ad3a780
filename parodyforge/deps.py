"""Pre-flight check that the external tools are reachable."""

import logging
from dataclasses import dataclass, field

from parodyforge.manifest import ToolConfig
from parodyforge.runner import CommandRunner

logger = logging.getLogger(__name__)


@dataclass
class ToolSpec:
    name: str
    check_command: list[str]


@dataclass
class ProbeReport:
    present: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing


def default_tool_specs(tools: ToolConfig) -> list[ToolSpec]:
    return [
        ToolSpec(name="ffmpeg", check_command=[*tools.ffmpeg, "-version"]),
        ToolSpec(name="yt-dlp", check_command=[*tools.ytdlp, "--version"]),
    ]


def probe(
    specs: list[ToolSpec],
    runner: CommandRunner,
    timeout: float | None = None,
) -> ProbeReport:
    """Run each tool's check command; a tool is present iff it exits 0."""
    report = ProbeReport()
    for tool in specs:
        result = runner.run(tool.check_command, timeout=timeout)
        if result.ok:
            logger.info("%s is installed and accessible", tool.name)
            report.present.append(tool.name)
        else:
            detail = (result.stderr or "").strip() or result.describe_failure()
            logger.error(
                "%s not found or not executable (attempted: %s): %s",
                tool.name,
                " ".join(tool.check_command),
                detail,
            )
            report.missing.append(tool.name)
    return report
