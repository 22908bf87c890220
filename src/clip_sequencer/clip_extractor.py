"""
Clip Extractor - cuts many vertical sub-clips out of one shared source.

Pipeline:
1. Materialize the shared source once (same HLS-aware path as the
   stream transcoder).
2. Probe it for width, height, duration and frame rate.
3. For each spec: seek, cut the clamped span, apply the centered 9:16
   crop, scale to the canonical clip resolution and re-encode.
4. Remove the shared temporary source, whatever happened above.

A failing spec is logged and left out of the results; its siblings are
still extracted.
"""

import re
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from .config import Settings, get_settings
from .core.cmd_runner import run_command
from .core.models import ClipSpec, ExtractedClip
from .crop_geometry import CropWindow, compute_crop
from .exceptions import ClipSequencerError
from .ffmpeg_config import CLIP_TARGET_ASPECT, FFmpegConfig, build_ffmpeg_cmd, get_config
from .logger import logger
from .media_source import materialize_source
from .video_metadata import VideoMetadata, probe_metadata

_TITLE_CHARS = re.compile(r"[^a-zA-Z0-9]")


def clip_filename(spec: ClipSpec) -> str:
    safe_title = _TITLE_CHARS.sub("_", spec.title or "clip")[:40]
    safe_id = _TITLE_CHARS.sub("_", spec.id)
    return f"{safe_title}_{safe_id}.mp4"


def clamp_span(spec: ClipSpec, source_duration: float) -> tuple:
    """Clamp the requested range to the source; returns (start, duration)."""
    start, end = spec.start_time, spec.end_time
    if source_duration > 0:
        start = min(start, source_duration)
        end = min(end, source_duration)
    return start, end - start


class ClipExtractor:
    """Batch extraction of cropped clips from a single source."""

    def __init__(
        self,
        clips_dir: Optional[Union[str, Path]] = None,
        temp_dir: Optional[Union[str, Path]] = None,
        config: Optional[FFmpegConfig] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.clips_dir = Path(clips_dir or self.settings.paths.clips_dir)
        self.temp_dir = Path(temp_dir or self.settings.paths.temp_dir)
        self.config = config or get_config()
        self.clips_dir.mkdir(parents=True, exist_ok=True)
        self.temp_dir.mkdir(parents=True, exist_ok=True)

    def create_clip(self, source_path: Path, spec: ClipSpec, metadata: VideoMetadata, crop: CropWindow) -> ExtractedClip:
        """
        Cut, crop and encode one clip.

        Raises:
            ClipSequencerError: empty span or ffmpeg failure
        """
        start, duration = clamp_span(spec, metadata.duration)
        if duration <= 0:
            raise ClipSequencerError(
                f"Clip {spec.id} starts at {spec.start_time:.2f}s, beyond source end {metadata.duration:.2f}s"
            )

        filename = clip_filename(spec)
        output_path = self.clips_dir / filename
        partial = output_path.with_name(filename + ".part")

        logger.info(f"✂️ Creating clip: {spec.title or spec.id} ({start:.2f}s - {start + duration:.2f}s)")
        logger.debug(f"Crop settings: {crop.width}x{crop.height} at offset ({crop.x_offset}, {crop.y_offset})")

        cmd = build_ffmpeg_cmd([
            "-ss", f"{start:.3f}",
            "-i", str(source_path),
            "-t", f"{duration:.3f}",
            *self.config.vertical_clip_params(crop.to_filter()),
            "-f", "mp4",
            str(partial),
        ])
        try:
            run_command(cmd, timeout=self.settings.transcode.transcode_timeout)
            partial.replace(output_path)
        finally:
            partial.unlink(missing_ok=True)

        return ExtractedClip(
            spec=spec,
            local_path=str(output_path),
            filename=filename,
            url=self.settings.server.clip_url(filename),
            duration=duration,
            resolution=self.config.clip_resolution,
        )

    def process_clips(self, source_locator: str, clip_specs: Sequence[Union[ClipSpec, Dict[str, Any]]]) -> List[ExtractedClip]:
        """
        Extract every spec from one source.

        Raises:
            ClipSequencerError: the shared source could not be fetched or probed
        """
        logger.info(f"🎥 Processing {len(clip_specs)} clips from video")
        temp_source = self.temp_dir / f"source_{uuid.uuid4().hex[:12]}.mp4"
        processed: List[ExtractedClip] = []

        try:
            materialize_source(source_locator, temp_source, temp_dir=self.temp_dir, config=self.config)
            metadata = probe_metadata(str(temp_source))
            logger.info(f"📊 Video metadata: {metadata.resolution}, {metadata.duration:.1f}s @ {metadata.fps:.2f}fps")
            crop = compute_crop(metadata.width, metadata.height, CLIP_TARGET_ASPECT)

            for raw_spec in clip_specs:
                try:
                    spec = raw_spec if isinstance(raw_spec, ClipSpec) else ClipSpec.model_validate(raw_spec)
                    processed.append(self.create_clip(temp_source, spec, metadata, crop))
                except (ClipSequencerError, ValidationError, OSError) as e:
                    title = raw_spec.get("title") if isinstance(raw_spec, dict) else raw_spec.title
                    logger.warning(f"   ⚠️  Failed to create clip {title}: {e}")
        finally:
            try:
                temp_source.unlink(missing_ok=True)
                logger.debug("Cleaned up temporary video file")
            except OSError as e:
                logger.warning(f"   ⚠️  Failed to clean up temp file: {e}")

        logger.info(f"✅ Successfully processed {len(processed)}/{len(clip_specs)} clips")
        return processed

    def cleanup_old_clips(self, max_age_hours: Optional[float] = None) -> List[str]:
        """Delete emitted clips older than max_age_hours. Returns deleted names."""
        max_age_hours = max_age_hours if max_age_hours is not None else self.settings.transcode.clip_max_age_hours
        cutoff = time.time() - max_age_hours * 3600
        deleted = []
        for path in self.clips_dir.iterdir():
            try:
                if path.is_file() and path.stat().st_mtime < cutoff:
                    path.unlink()
                    deleted.append(path.name)
                    logger.info(f"🗑️ Deleted old clip: {path.name}")
            except OSError as e:
                logger.error(f"Cleanup error for {path.name}: {e}")
        return deleted
