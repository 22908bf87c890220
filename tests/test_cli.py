"""
Tests for the clip-sequencer command line interface.
"""

import json

import pytest
from click.testing import CliRunner

from clip_sequencer.cli import cli, parse_clip_spec
from clip_sequencer.core.analysis_cache import get_analysis_cache
from clip_sequencer.core.session import create_session_store
from clip_sequencer.video_metadata import VideoMetadata


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def ffmpeg(monkeypatch, fake_runner):
    fake = fake_runner(fail_when="broken")
    monkeypatch.setattr("clip_sequencer.media_source.run_command", fake)
    monkeypatch.setattr("clip_sequencer.clip_extractor.run_command", fake)
    return fake


class TestParseClipSpec:

    def test_full_spec(self):
        spec = parse_clip_spec("1.5:10:c1:Big: moment")
        assert spec.start_time == 1.5
        assert spec.end_time == 10
        assert spec.id == "c1"
        assert spec.title == "Big: moment"

    def test_without_title(self):
        assert parse_clip_spec("0:5:c1").title == ""

    def test_invalid(self):
        import click

        for text in ["0:5", "a:b:c", "5:1:c"]:
            with pytest.raises(click.BadParameter):
                parse_clip_spec(text)


class TestConvertCommand:

    def test_convert_and_status(self, runner, settings, ffmpeg):
        result = runner.invoke(cli, ["convert", "https://cdn.example/x.m3u8", "--session", "s1", "--clip-id", "c1"])
        assert result.exit_code == 0, result.output
        assert "s1_c1_converted.mp4" in result.output

        result = runner.invoke(cli, ["status", "c1", "--session", "s1"])
        assert result.exit_code == 0
        assert "converted" in result.output

    def test_convert_failure_exit_code(self, runner, settings, ffmpeg):
        result = runner.invoke(cli, ["convert", "https://cdn.example/broken.m3u8", "--session", "s1", "--clip-id", "c1"])
        assert result.exit_code == 1

    def test_status_unconverted(self, runner, settings):
        result = runner.invoke(cli, ["status", "c9", "--session", "s1"])
        assert result.exit_code == 0
        assert "unconverted" in result.output


class TestExtractCommand:

    def test_extract(self, runner, settings, ffmpeg, monkeypatch):
        monkeypatch.setattr(
            "clip_sequencer.clip_extractor.probe_metadata",
            lambda path, timeout=None: VideoMetadata(path=str(path), width=1280, height=720, duration=30.0, fps=25.0),
        )
        result = runner.invoke(cli, ["extract", "/data/game.mp4", "--spec", "0:4:a:Opening", "--spec", "5:9:b"])

        assert result.exit_code == 0, result.output
        assert len(list(settings.paths.clips_dir.glob("*.mp4"))) == 2

    def test_bad_spec_is_usage_error(self, runner, settings):
        result = runner.invoke(cli, ["extract", "/data/game.mp4", "--spec", "nonsense"])
        assert result.exit_code == 2


class TestSessionCommands:

    def test_list_show_and_sweep(self, runner, settings):
        store = create_session_store(settings)
        store.load()
        session_id = store.create_session()
        store.update_session(session_id, {"clips": [{"id": "c1"}]})

        result = runner.invoke(cli, ["sessions", "list"])
        assert result.exit_code == 0
        assert session_id[:8] in result.output

        result = runner.invoke(cli, ["sessions", "show", session_id])
        assert result.exit_code == 0
        assert json.loads(result.output)["clips"][0]["id"] == "c1"

        result = runner.invoke(cli, ["sessions", "show", session_id, "--export"])
        assert json.loads(result.output)["statistics"]["totalClips"] == 1

        result = runner.invoke(cli, ["sessions", "sweep"])
        assert result.exit_code == 0
        assert "Removed 0" in result.output

    def test_show_unknown(self, runner, settings):
        result = runner.invoke(cli, ["sessions", "show", "ghost"])
        assert result.exit_code == 1


class TestCacheCommands:

    def test_get_and_clear(self, runner, settings):
        get_analysis_cache().set("video-1", "clip_score", {"ability": 9})

        result = runner.invoke(cli, ["cache", "get", "video-1", "clip_score"])
        assert result.exit_code == 0
        assert json.loads(result.output) == {"ability": 9}

        result = runner.invoke(cli, ["cache", "clear"])
        assert "Cleared 1" in result.output

        result = runner.invoke(cli, ["cache", "get", "video-1", "clip_score"])
        assert result.exit_code == 1


class TestGlobalOptions:

    def test_log_file(self, runner, settings, tmp_path):
        import logging

        log_file = tmp_path / "logs" / "run.log"
        package_logger = logging.getLogger("clip_sequencer")
        before = list(package_logger.handlers)
        try:
            result = runner.invoke(cli, ["--log-file", str(log_file), "cache", "clear"])
        finally:
            for handler in package_logger.handlers[:]:
                if handler not in before:
                    package_logger.removeHandler(handler)
                    handler.close()
        assert result.exit_code == 0
        assert log_file.exists()
        assert "Cleared all cache files" in log_file.read_text()

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.3.0" in result.output
