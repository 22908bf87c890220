"""
Video Metadata Module for Clip Sequencer

Extracts width, height, duration and frame rate from a local file via
ffprobe.

Usage:
    from clip_sequencer.video_metadata import probe_metadata

    metadata = probe_metadata("/path/to/video.mp4")
    metadata.width, metadata.height, metadata.duration, metadata.fps
"""

import json
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .config import get_settings
from .core.cmd_runner import run_command
from .exceptions import MetadataExtractionError, TranscodeError
from .ffmpeg_config import build_ffprobe_cmd


@dataclass
class VideoMetadata:
    """Metadata extracted from a video file via ffprobe."""
    path: str
    width: int
    height: int
    duration: float
    fps: float
    codec: str = "unknown"

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _parse_frame_rate(fps_str: str) -> float:
    """Parse FFprobe frame rate strings like '30000/1001'."""
    if not fps_str:
        return 0.0
    try:
        if "/" in fps_str:
            num, den = fps_str.split("/")
            den = float(den)
            return float(num) / den if den else 0.0
        return float(fps_str)
    except ValueError:
        return 0.0


def probe_metadata(video_path: str, timeout: Optional[int] = None) -> VideoMetadata:
    """
    Extract video metadata using ffprobe.

    Raises:
        MetadataExtractionError: ffprobe failed or reported no video stream
    """
    cmd = build_ffprobe_cmd([
        "-select_streams", "v:0",
        "-show_entries", "stream=width,height,codec_name,r_frame_rate,avg_frame_rate:format=duration",
        "-of", "json",
        str(video_path),
    ])
    try:
        result = run_command(cmd, timeout=timeout or get_settings().transcode.ffprobe_timeout)
        data = json.loads(result.stdout or "{}")
    except (TranscodeError, json.JSONDecodeError) as e:
        raise MetadataExtractionError(f"ffprobe failed for {video_path}: {e}") from e

    streams = data.get("streams") or []
    if not streams:
        raise MetadataExtractionError(f"No video stream found in {video_path}")
    stream = streams[0]
    format_info = data.get("format", {})

    width = int(stream.get("width") or 0)
    height = int(stream.get("height") or 0)
    if width <= 0 or height <= 0:
        raise MetadataExtractionError(f"Invalid video dimensions {width}x{height} in {video_path}")

    fps = _parse_frame_rate(stream.get("r_frame_rate") or stream.get("avg_frame_rate", "0"))
    duration = float(format_info.get("duration") or 0.0)

    return VideoMetadata(
        path=str(video_path),
        width=width,
        height=height,
        duration=duration,
        fps=fps or 30.0,
        codec=(stream.get("codec_name") or "unknown").lower(),
    )
