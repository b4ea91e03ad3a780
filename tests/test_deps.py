"""Tests for the dependency prober."""

import logging
from unittest.mock import patch

from parodyforge.deps import ToolSpec, default_tool_specs, probe
from parodyforge.manifest import ToolConfig
from parodyforge.runner import SubprocessRunner

from conftest import FakeRunner


class TestDefaultToolSpecs:
    def test_host_tools(self):
        specs = default_tool_specs(ToolConfig())
        assert [s.name for s in specs] == ["ffmpeg", "yt-dlp"]
        assert specs[0].check_command == ["ffmpeg", "-version"]
        assert specs[1].check_command == ["yt-dlp", "--version"]

    def test_docker_prefix(self):
        specs = default_tool_specs(ToolConfig.docker_compose())
        assert specs[0].check_command == ["docker", "compose", "exec", "ffmpeg", "ffmpeg", "-version"]


class TestProbe:
    def test_all_present(self, caplog):
        runner = FakeRunner()
        with caplog.at_level(logging.INFO, logger="parodyforge.deps"):
            report = probe(default_tool_specs(ToolConfig()), runner)
        assert report.ok
        assert report.present == ["ffmpeg", "yt-dlp"]
        assert len(caplog.records) == 2

    def test_missing_tool(self, caplog):
        runner = FakeRunner(missing=["yt-dlp"])
        with caplog.at_level(logging.INFO, logger="parodyforge.deps"):
            report = probe(default_tool_specs(ToolConfig()), runner)
        assert not report.ok
        assert report.missing == ["yt-dlp"]
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert "yt-dlp --version" in errors[0].getMessage()

    def test_checks_every_tool_even_after_a_miss(self):
        runner = FakeRunner(missing=["ffmpeg", "yt-dlp"])
        report = probe(default_tool_specs(ToolConfig()), runner)
        assert report.missing == ["ffmpeg", "yt-dlp"]
        assert len(runner.calls) == 2

    def test_custom_check_command(self):
        runner = FakeRunner()
        report = probe([ToolSpec(name="ffmpeg", check_command=["/opt/ffmpeg", "-version"])], runner)
        assert report.ok
        assert runner.calls == [["/opt/ffmpeg", "-version"]]

    @patch("parodyforge.runner.subprocess.run", side_effect=PermissionError(13, "Permission denied"))
    def test_unrunnable_tool_reported_missing(self, mock_run):
        report = probe(default_tool_specs(ToolConfig()), SubprocessRunner())
        assert not report.ok
        assert report.missing == ["ffmpeg", "yt-dlp"]
