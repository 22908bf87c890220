"""
Stream Transcoder - normalizes remote clips into seekable local MP4s.

Each (session, clip) pair maps to one deterministic output file under the
converted directory, which an external static server exposes read-only.
If that file already exists the conversion is skipped, so repeated
requests never re-run ffmpeg.

Usage:
    from clip_sequencer.stream_transcoder import StreamTranscoder

    transcoder = StreamTranscoder()
    url = transcoder.convert(clip, session_id)
    result = transcoder.convert_sequenced_clips(session.clips, session.sequence, session_id)
"""

import hashlib
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .config import Settings, get_settings
from .core.models import (
    BatchConversionResult,
    ClipDescriptor,
    ClipLike,
    ConversionOutcome,
    ConversionStatus,
    coerce_clips,
)
from .exceptions import ClipSequencerError
from .ffmpeg_config import FFmpegConfig
from .logger import log_success, log_warning, logger
from .media_source import materialize_source

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def safe_component(value: str) -> str:
    """
    Make an id usable as part of a filename.

    Ids that need rewriting get a short digest of the raw id appended so
    distinct ids never share an output file.
    """
    value = str(value)
    safe = _UNSAFE_CHARS.sub("_", value)
    if safe == value:
        return safe
    digest = hashlib.sha1(value.encode("utf-8")).hexdigest()[:8]
    return f"{safe}-{digest}"


def sequence_clip_ids(sequence: Any) -> List[str]:
    """Ordered clip ids from a sequencing result ({"sequence": [...]} or a bare list)."""
    if sequence is None:
        return []
    if isinstance(sequence, dict):
        sequence = sequence.get("sequence") or []
    return [str(entry["id"]) if isinstance(entry, dict) else str(entry) for entry in sequence]


class StreamTranscoder:
    """
    Converts clip source locators into web-playable files.

    Strategy:
    1. Derive the output path from (session id, clip id).
    2. Existing output -> return its URL (no ffmpeg call).
    3. Otherwise materialize the source (HLS direct, or download + encode).
    """

    def __init__(
        self,
        converted_dir: Optional[Union[str, Path]] = None,
        max_workers: Optional[int] = None,
        config: Optional[FFmpegConfig] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.converted_dir = Path(converted_dir or self.settings.paths.converted_dir)
        self.max_workers = max(1, max_workers or self.settings.transcode.max_workers)
        self.config = config
        self.converted_dir.mkdir(parents=True, exist_ok=True)

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    def output_filename(self, clip_id: str, session_id: str) -> str:
        return f"{safe_component(session_id)}_{safe_component(clip_id)}_converted.mp4"

    def output_path(self, clip_id: str, session_id: str) -> Path:
        return self.converted_dir / self.output_filename(clip_id, session_id)

    def url_for(self, clip_id: str, session_id: str) -> str:
        return self.settings.server.converted_url(self.output_filename(clip_id, session_id))

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def convert(self, clip: ClipLike, session_id: str) -> str:
        """
        Convert one clip and return its public URL.

        Raises:
            ClipSequencerError: download or ffmpeg failure for this clip
        """
        clip = clip if isinstance(clip, ClipDescriptor) else ClipDescriptor.from_dict(clip)
        output_path = self.output_path(clip.id, session_id)

        if output_path.exists():
            logger.info(f"✅ Clip {clip.filename or clip.id} already converted, using cached version")
            return self.url_for(clip.id, session_id)

        if not clip.source_locator:
            raise ClipSequencerError(f"Clip {clip.id} has no source locator")

        logger.info(f"🔄 Converting clip {clip.filename or clip.id} to MP4...")
        materialize_source(
            clip.source_locator,
            output_path,
            temp_dir=self.settings.paths.temp_dir,
            config=self.config,
        )
        log_success(f"Successfully converted {clip.filename or clip.id} to MP4")
        return self.url_for(clip.id, session_id)

    def _convert_one(self, clip: ClipDescriptor, session_id: str) -> ConversionOutcome:
        try:
            url = self.convert(clip, session_id)
            return ConversionOutcome(
                clip_id=clip.id,
                original_url=clip.source_locator,
                local_url=url,
                status=ConversionStatus.CONVERTED.value,
            )
        except (ClipSequencerError, OSError) as e:
            logger.error(f"   ❌ Failed to convert clip {clip.filename or clip.id}: {e}")
            return ConversionOutcome(
                clip_id=clip.id,
                original_url=clip.source_locator,
                status=ConversionStatus.FAILED.value,
                error=str(e),
            )

    def convert_sequenced_clips(
        self,
        all_clips: Sequence[ClipLike],
        sequence: Any,
        session_id: str,
    ) -> BatchConversionResult:
        """
        Convert every clip referenced by the sequence.

        Unknown ids are logged and reported in missing_clip_ids. Individual
        failures are recorded per clip; the batch always completes. Results
        follow sequence order regardless of completion order.
        """
        clips_by_id: Dict[str, ClipDescriptor] = {c.id: c for c in coerce_clips(all_clips)}
        ordered_ids = sequence_clip_ids(sequence)
        logger.info(f"🎬 Converting {len(ordered_ids)} sequenced clips for session {session_id}")

        result = BatchConversionResult()
        resolved: List[ClipDescriptor] = []
        for clip_id in ordered_ids:
            clip = clips_by_id.get(clip_id)
            if clip is None:
                log_warning(f"Clip {clip_id} not found, skipping")
                result.missing_clip_ids.append(clip_id)
                continue
            resolved.append(clip)

        # A clip repeated in the sequence is converted once
        unique = list({clip.id: clip for clip in resolved}.values())
        if self.max_workers == 1 or len(unique) <= 1:
            outcomes = [self._convert_one(clip, session_id) for clip in unique]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(lambda c: self._convert_one(c, session_id), unique))

        by_id = {outcome.clip_id: outcome for outcome in outcomes}
        result.conversions = [by_id[clip.id] for clip in resolved]

        logger.info(
            f"✅ Conversion complete: {result.success_count} success, {result.failure_count} failed"
        )
        return result

    def get_conversion_status(self, clip_id: str, session_id: str) -> ConversionOutcome:
        """Filesystem-only check of whether a clip has been converted."""
        if self.output_path(clip_id, session_id).exists():
            return ConversionOutcome(
                clip_id=clip_id,
                local_url=self.url_for(clip_id, session_id),
                status=ConversionStatus.CONVERTED.value,
            )
        return ConversionOutcome(clip_id=clip_id, status=ConversionStatus.UNCONVERTED.value)
