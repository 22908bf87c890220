"""
Clip Sequencer - media core for an AI-assisted short-form video editor

Analysis cache:
    from clip_sequencer.core.analysis_cache import get_analysis_cache

    cache = get_analysis_cache()
    score = cache.get_or_compute(video_id, "clip_score", lambda: scorer(clip))

Web transcoding:
    from clip_sequencer import StreamTranscoder

    transcoder = StreamTranscoder()
    result = transcoder.convert_sequenced_clips(clips, sequence, session_id)

Vertical clip extraction:
    from clip_sequencer import ClipExtractor

    clips = ClipExtractor().process_clips(source_url, [
        {"startTime": 10, "endTime": 25, "id": "c1", "title": "Intro"},
    ])

Sessions:
    from clip_sequencer.core.session import create_session_store

    with create_session_store() as store:
        session_id = store.create_session()
"""

from ._version import __version__
from .clip_extractor import ClipExtractor
from .core.analysis_cache import AnalysisCache
from .core.session import SessionStore, create_session_store
from .crop_geometry import CropWindow, compute_crop
from .stream_transcoder import StreamTranscoder

__all__ = [
    "__version__",
    "AnalysisCache",
    "ClipExtractor",
    "CropWindow",
    "SessionStore",
    "StreamTranscoder",
    "compute_crop",
    "create_session_store",
]
