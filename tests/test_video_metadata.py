"""
Tests for ffprobe metadata extraction and the command runner.
"""

import json
import subprocess
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from clip_sequencer.core.cmd_runner import CommandError, run_command
from clip_sequencer.exceptions import MetadataExtractionError, TranscodeError
from clip_sequencer.video_metadata import _parse_frame_rate, probe_metadata


def ffprobe_output(width=1920, height=1080, duration="60.5", fps="30000/1001"):
    return json.dumps({
        "streams": [{"width": width, "height": height, "codec_name": "H264", "r_frame_rate": fps}],
        "format": {"duration": duration},
    })


def completed(stdout="", returncode=0, stderr=""):
    return SimpleNamespace(stdout=stdout, stderr=stderr, returncode=returncode)


class TestProbeMetadata:

    def test_parses_stream_and_format(self, settings):
        with patch("clip_sequencer.video_metadata.run_command", return_value=completed(ffprobe_output())) as run:
            meta = probe_metadata("/tmp/v.mp4")

        assert (meta.width, meta.height) == (1920, 1080)
        assert meta.duration == pytest.approx(60.5)
        assert meta.fps == pytest.approx(29.97, rel=1e-3)
        assert meta.codec == "h264"
        assert meta.resolution == "1920x1080"
        cmd = run.call_args[0][0]
        assert cmd[0] == settings.transcode.ffprobe_bin
        assert cmd[-1] == "/tmp/v.mp4"

    def test_missing_fps_defaults_to_30(self, settings):
        with patch("clip_sequencer.video_metadata.run_command", return_value=completed(ffprobe_output(fps="0/0"))):
            assert probe_metadata("/tmp/v.mp4").fps == 30.0

    def test_no_video_stream(self, settings):
        output = json.dumps({"streams": [], "format": {}})
        with patch("clip_sequencer.video_metadata.run_command", return_value=completed(output)):
            with pytest.raises(MetadataExtractionError, match="No video stream"):
                probe_metadata("/tmp/audio.m4a")

    def test_zero_dimensions(self, settings):
        with patch("clip_sequencer.video_metadata.run_command", return_value=completed(ffprobe_output(width=0))):
            with pytest.raises(MetadataExtractionError):
                probe_metadata("/tmp/v.mp4")

    def test_ffprobe_failure_is_wrapped(self, settings):
        with patch("clip_sequencer.video_metadata.run_command", side_effect=TranscodeError("boom")):
            with pytest.raises(MetadataExtractionError):
                probe_metadata("/tmp/v.mp4")

    def test_garbage_output(self, settings):
        with patch("clip_sequencer.video_metadata.run_command", return_value=completed("not json")):
            with pytest.raises(MetadataExtractionError):
                probe_metadata("/tmp/v.mp4")

    def test_frame_rate_parsing(self):
        assert _parse_frame_rate("25") == 25.0
        assert _parse_frame_rate("60/1") == 60.0
        assert _parse_frame_rate("1/0") == 0.0
        assert _parse_frame_rate("") == 0.0
        assert _parse_frame_rate("abc") == 0.0


class TestRunCommand:

    def test_success(self):
        with patch("clip_sequencer.core.cmd_runner.subprocess.run", return_value=completed("ok")) as run:
            result = run_command(["ffmpeg", "-version"])

        assert result.stdout == "ok"
        assert run.call_args[1]["check"] is False

    def test_non_zero_exit_raises_command_error(self):
        with patch("clip_sequencer.core.cmd_runner.subprocess.run", return_value=completed(returncode=1, stderr="moov atom not found")):
            with pytest.raises(CommandError) as exc_info:
                run_command(["ffmpeg", "-i", "x"])

        error = exc_info.value
        assert isinstance(error, TranscodeError)
        assert error.returncode == 1
        assert "moov atom not found" in str(error)

    def test_non_zero_exit_without_check(self):
        with patch("clip_sequencer.core.cmd_runner.subprocess.run", return_value=completed(returncode=2)):
            assert run_command(["ffmpeg"], check=False).returncode == 2

    def test_timeout(self):
        with patch("clip_sequencer.core.cmd_runner.subprocess.run", side_effect=subprocess.TimeoutExpired("ffmpeg", 5)):
            with pytest.raises(TranscodeError, match="timed out"):
                run_command(["ffmpeg"], timeout=5)

    def test_missing_binary(self):
        with patch("clip_sequencer.core.cmd_runner.subprocess.run", side_effect=FileNotFoundError("ffmpeg")):
            with pytest.raises(TranscodeError, match="Could not start"):
                run_command(["ffmpeg"])
