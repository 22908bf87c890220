from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

from clip_sequencer import ffmpeg_config
from clip_sequencer.config import reload_settings
from clip_sequencer.core.analysis_cache import reset_cache


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings rooted in a temporary DATA_DIR."""
    for name in ("SESSION_DIR", "CACHE_DIR", "CONVERTED_DIR", "CLIPS_DIR", "TEMP_DIR", "SESSION_BACKEND", "REDIS_HOST"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("CONVERT_WORKERS", "1")
    reset_cache()
    ffmpeg_config._config = None
    yield reload_settings()
    reset_cache()
    ffmpeg_config._config = None
    monkeypatch.undo()
    reload_settings()


class FakeClock:
    """Settable clock returning aware UTC datetimes."""

    def __init__(self, now=None):
        self.now = now or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


@pytest.fixture
def clock():
    return FakeClock()


class FakeRunner:
    """
    Stand-in for run_command: records each command and writes a dummy
    file at the output path (last argument) unless told to fail.
    """

    def __init__(self, fail_when=None, stdout=""):
        self.calls = []
        self.fail_when = fail_when
        self.stdout = stdout

    def __call__(self, cmd, **kwargs):
        from clip_sequencer.core.cmd_runner import CommandError

        self.calls.append(list(cmd))
        if self.fail_when and any(self.fail_when in str(arg) for arg in cmd):
            raise CommandError(cmd, 1, "", "Invalid data found when processing input")
        Path(cmd[-1]).write_bytes(b"\x00\x00\x00\x18ftypmp42")

        return SimpleNamespace(returncode=0, stdout=self.stdout, stderr="")


@pytest.fixture
def fake_runner():
    return FakeRunner

