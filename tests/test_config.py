"""
Tests for centralized configuration module.
"""

import os
from pathlib import Path
from unittest.mock import patch

from clip_sequencer.config import (
    CacheConfig,
    PathConfig,
    ServerConfig,
    SessionConfig,
    TranscodeConfig,
    get_settings,
    reload_settings,
)
from clip_sequencer.ffmpeg_config import FFmpegConfig, build_ffmpeg_cmd, build_ffprobe_cmd


class TestPathConfig:

    def test_default_paths(self):
        with patch.dict(os.environ, {}, clear=True):
            config = PathConfig()
            assert config.session_dir == Path("data/sessions")
            assert config.cache_dir == Path("data/cache")
            assert config.converted_dir == Path("data/converted")

    def test_data_dir_and_overrides(self):
        with patch.dict(os.environ, {"DATA_DIR": "/srv/media", "CLIPS_DIR": "/mnt/clips"}, clear=True):
            config = PathConfig()
            assert config.temp_dir == Path("/srv/media/temp")
            assert config.clips_dir == Path("/mnt/clips")

    def test_ensure_directories(self, tmp_path):
        with patch.dict(os.environ, {"DATA_DIR": str(tmp_path)}, clear=True):
            config = PathConfig()
            config.ensure_directories()
            assert config.session_dir.is_dir()
            assert config.converted_dir.is_dir()


class TestOtherSections:

    def test_server_urls(self):
        with patch.dict(os.environ, {"PUBLIC_BASE_URL": "https://media.example/"}, clear=True):
            server = ServerConfig()
            assert server.converted_url("x.mp4") == "https://media.example/converted/x.mp4"
            assert server.clip_url("y.mp4") == "/clips/y.mp4"

    def test_cache_flags(self):
        with patch.dict(os.environ, {"DISABLE_ANALYSIS_CACHE": "TRUE", "CACHE_TTL_HOURS": "6"}, clear=True):
            cache = CacheConfig()
            assert cache.enabled is False
            assert cache.ttl_hours == 6.0

    def test_session_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            session = SessionConfig()
            assert session.retention_hours == 24.0
            assert session.sweep_interval_seconds == 3600.0
            assert session.backend == "file"

    def test_transcode_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            transcode = TranscodeConfig()
            assert transcode.max_workers == 1
            assert transcode.transcode_timeout is None

    def test_worker_count_floor(self):
        with patch.dict(os.environ, {"CONVERT_WORKERS": "0"}, clear=True):
            assert TranscodeConfig().max_workers == 1


class TestSettingsSingleton:

    def test_reload_picks_up_env(self, settings, monkeypatch):
        monkeypatch.setenv("SESSION_RETENTION_HOURS", "48")
        assert get_settings().session.retention_hours == 24.0
        assert reload_settings().session.retention_hours == 48.0
        assert get_settings().session.retention_hours == 48.0


class TestFFmpegConfig:

    def test_web_profile(self):
        with patch.dict(os.environ, {}, clear=True):
            params = FFmpegConfig().web_playable_params()
        assert params[params.index("-c:v") + 1] == "libx264"
        assert params[params.index("-crf") + 1] == "23"
        assert params[params.index("-preset") + 1] == "fast"
        assert params[params.index("-level") + 1] == "3.0"
        assert params[params.index("-pix_fmt") + 1] == "yuv420p"
        assert params[params.index("-c:a") + 1] == "aac"

    def test_env_override(self):
        with patch.dict(os.environ, {"WEB_CRF": "28", "CLIP_OUTPUT_WIDTH": "720", "CLIP_OUTPUT_HEIGHT": "1280"}, clear=True):
            config = FFmpegConfig()
        assert config.crf == 28
        assert config.clip_resolution == "720x1280"

    def test_command_builders(self, settings):
        cmd = build_ffmpeg_cmd(["-i", "in.mp4", "out.mp4"])
        assert cmd[:5] == ["ffmpeg", "-y", "-hide_banner", "-loglevel", "error"]
        assert build_ffmpeg_cmd(["-n", "-i", "a"], loglevel=None) == ["ffmpeg", "-hide_banner", "-n", "-i", "a"]
        assert build_ffprobe_cmd(["x.mp4"]) == ["ffprobe", "-v", "error", "x.mp4"]
