"""
FFmpeg Configuration - Central place for all FFmpeg encoding defaults.

DRY principle: encoder parameters are defined once, imported everywhere.
Env vars allow runtime override without code changes.

Two profiles are used by the media core:
- Web-playable normalization (StreamTranscoder, shared source materialization):
  H.264 baseline, AAC, faststart MP4 so a plain static server can serve
  HTTP range requests.
- Vertical clip extraction (ClipExtractor): 9:16 crop scaled to one
  canonical resolution.

Usage:
    from .ffmpeg_config import FFmpegConfig, build_ffmpeg_cmd

    config = FFmpegConfig()
    cmd = build_ffmpeg_cmd(["-i", src, *config.web_playable_params(), out])
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .config import get_settings


# =============================================================================
# Web-playable defaults (H.264 Baseline for maximum browser compatibility)
# =============================================================================
WEB_CODEC = "libx264"
WEB_PROFILE = "baseline"
WEB_LEVEL = "3.0"
WEB_PRESET = "fast"
WEB_CRF = 23
WEB_PIX_FMT = "yuv420p"
WEB_AUDIO_CODEC = "aac"
WEB_CONTAINER = "mp4"

# =============================================================================
# Vertical clip defaults
# =============================================================================
CLIP_TARGET_ASPECT = 9 / 16
CLIP_OUTPUT_WIDTH = 608
CLIP_OUTPUT_HEIGHT = 1080
CLIP_FPS = 30
CLIP_VIDEO_BITRATE = "1000k"
CLIP_AUDIO_BITRATE = "128k"


def _env_or_default(key: str, default: Any) -> Any:
    """Get env var, returning default if not set or empty."""
    val = os.environ.get(key, "")
    return val if val else default


@dataclass
class FFmpegConfig:
    """
    FFmpeg encoding configuration with env var overrides.

    Overridable via environment:
    - WEB_PROFILE, WEB_LEVEL, WEB_PRESET, WEB_CRF
    - CLIP_OUTPUT_WIDTH, CLIP_OUTPUT_HEIGHT, CLIP_FPS
    """
    codec: str = WEB_CODEC
    profile: str = field(default_factory=lambda: _env_or_default("WEB_PROFILE", WEB_PROFILE))
    level: str = field(default_factory=lambda: _env_or_default("WEB_LEVEL", WEB_LEVEL))
    preset: str = field(default_factory=lambda: _env_or_default("WEB_PRESET", WEB_PRESET))
    crf: int = field(default_factory=lambda: int(_env_or_default("WEB_CRF", WEB_CRF)))
    pix_fmt: str = WEB_PIX_FMT
    audio_codec: str = WEB_AUDIO_CODEC

    clip_width: int = field(default_factory=lambda: int(_env_or_default("CLIP_OUTPUT_WIDTH", CLIP_OUTPUT_WIDTH)))
    clip_height: int = field(default_factory=lambda: int(_env_or_default("CLIP_OUTPUT_HEIGHT", CLIP_OUTPUT_HEIGHT)))
    clip_fps: int = field(default_factory=lambda: int(_env_or_default("CLIP_FPS", CLIP_FPS)))
    clip_video_bitrate: str = CLIP_VIDEO_BITRATE
    clip_audio_bitrate: str = CLIP_AUDIO_BITRATE

    def web_playable_params(self) -> List[str]:
        """Output params for a seekable, broadly compatible MP4."""
        return [
            "-c:v", self.codec,
            "-preset", self.preset,
            "-crf", str(self.crf),
            "-pix_fmt", self.pix_fmt,
            "-profile:v", self.profile,
            "-level", self.level,
            "-c:a", self.audio_codec,
            # moov atom up front so the file streams over plain range requests
            "-movflags", "+faststart",
            "-f", WEB_CONTAINER,
        ]

    def vertical_clip_params(self, crop_filter: str) -> List[str]:
        """Output params for one cropped vertical sub-clip."""
        return [
            "-vf", f"{crop_filter},scale={self.clip_width}:{self.clip_height}",
            "-c:v", self.codec,
            "-b:v", self.clip_video_bitrate,
            "-pix_fmt", self.pix_fmt,
            "-r", str(self.clip_fps),
            "-c:a", self.audio_codec,
            "-b:a", self.clip_audio_bitrate,
            "-movflags", "+faststart",
        ]

    @property
    def clip_resolution(self) -> str:
        return f"{self.clip_width}x{self.clip_height}"


def build_ffmpeg_cmd(
    args: List[str],
    *,
    overwrite: bool = True,
    hide_banner: bool = True,
    loglevel: Optional[str] = "error",
) -> List[str]:
    """Build a ffmpeg command list with optional standard flags."""
    cmd = [get_settings().transcode.ffmpeg_bin]
    if overwrite and "-y" not in args and "-n" not in args:
        cmd.append("-y")
    if hide_banner and "-hide_banner" not in args:
        cmd.append("-hide_banner")
    if loglevel and "-loglevel" not in args:
        cmd.extend(["-loglevel", loglevel])
    return cmd + args


def build_ffprobe_cmd(args: List[str], *, verbosity: Optional[str] = "error") -> List[str]:
    """Build a ffprobe command list with optional verbosity."""
    cmd = [get_settings().transcode.ffprobe_bin]
    if verbosity and "-v" not in args:
        cmd.extend(["-v", verbosity])
    return cmd + args


_config: Optional[FFmpegConfig] = None


def get_config() -> FFmpegConfig:
    """Get the shared FFmpegConfig instance."""
    global _config
    if _config is None:
        _config = FFmpegConfig()
    return _config
