"""
Session-level workflows that tie the store, the transcoder and the cache together.

These mirror what the HTTP layer does per request: convert a session's
sequence and write the results back, re-derive conversion state after a
restart, and score clips through the analysis cache.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence

from .core.analysis_cache import AnalysisCache
from .core.models import (
    BatchConversionResult,
    ClipDescriptor,
    ClipLike,
    ConversionOutcome,
    ConversionStatus,
    coerce_clips,
)
from .core.session import SessionStore
from .exceptions import ClipNotFoundError, ClipSequencerError, SessionNotFoundError
from .logger import logger
from .stream_transcoder import StreamTranscoder, sequence_clip_ids

SCORE_OPERATION = "clip_score"


def _with_conversion(clip: ClipDescriptor, local_url: Optional[str], status: str, error: Optional[str] = None) -> ClipDescriptor:
    return ClipDescriptor.from_dict(
        {**clip.to_dict(), "localMediaUrl": local_url, "conversionStatus": status, "conversionError": error}
    )


def _apply_outcomes(clips: List[ClipDescriptor], result: BatchConversionResult) -> List[ClipDescriptor]:
    by_id = {outcome.clip_id: outcome for outcome in result.conversions}
    updated = []
    for clip in clips:
        outcome = by_id.get(clip.id)
        if outcome is None:
            updated.append(clip)
            continue
        updated.append(_with_conversion(clip, outcome.local_url, outcome.status, outcome.error))
    return updated


def convert_session_sequence(
    store: SessionStore,
    transcoder: StreamTranscoder,
    session_id: str,
    sequence: Any = None,
) -> BatchConversionResult:
    """
    Convert the clips of a session's sequence and persist the outcome.

    Args:
        sequence: Sequence to convert; defaults to the one stored on the session

    Raises:
        SessionNotFoundError: unknown session id
        ClipSequencerError: no sequence supplied or stored
    """
    session = store.get_session(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)

    sequence = sequence if sequence is not None else session.sequence
    if sequence is None:
        raise ClipSequencerError(f"Session {session_id} has no sequence to convert")

    # Sequenced clips read as converting until the batch is written back
    pending = set(sequence_clip_ids(sequence))
    store.update_session(
        session_id,
        {
            "clips": [
                _with_conversion(c, c.local_media_url, ConversionStatus.CONVERTING.value) if c.id in pending else c
                for c in session.clips
            ]
        },
    )

    try:
        result = transcoder.convert_sequenced_clips(session.clips, sequence, session_id)
    except Exception:
        # Restore the pre-batch clip state; no outcome was produced
        logger.error(f"Conversion batch for session {session_id} aborted, restoring clip status")
        store.update_session(session_id, {"clips": session.clips})
        raise

    store.update_session(
        session_id,
        {
            "clips": _apply_outcomes(session.clips, result),
            "sequence": sequence,
            "conversionResult": result.summary(),
        },
    )
    return result


def convert_session_clip(store: SessionStore, transcoder: StreamTranscoder, session_id: str, clip_id: str) -> ConversionOutcome:
    """
    Convert a single clip of a session and record the outcome on it.

    Raises:
        SessionNotFoundError: unknown session id
        ClipNotFoundError: the session has no clip with that id
    """
    session = store.get_session(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    if not any(clip.id == clip_id for clip in session.clips):
        raise ClipNotFoundError(clip_id)

    result = transcoder.convert_sequenced_clips(session.clips, [clip_id], session_id)
    store.update_session(session_id, {"clips": _apply_outcomes(session.clips, result)})
    return result.conversions[0]


def refresh_conversion_status(store: SessionStore, transcoder: StreamTranscoder, session_id: str) -> List[ClipDescriptor]:
    """
    Re-derive each clip's conversion state from the converted directory.

    A clip whose output exists is marked converted; a clip previously
    marked converted whose file has disappeared drops back to unconverted.
    Failed and in-progress markers are left alone.
    """
    session = store.get_session(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)

    refreshed = []
    for clip in session.clips:
        status = transcoder.get_conversion_status(clip.id, session_id)
        if status.ok:
            clip = _with_conversion(clip, status.local_url, status.status)
        elif clip.conversion_status == ConversionStatus.CONVERTED.value:
            clip = _with_conversion(clip, None, status.status)
        refreshed.append(clip)

    store.update_session(session_id, {"clips": refreshed})
    return refreshed


def score_clips(
    cache: AnalysisCache,
    clips: Sequence[ClipLike],
    scorer: Callable[[ClipDescriptor], Any],
    operation_kind: str = SCORE_OPERATION,
) -> Dict[str, Any]:
    """
    Score every clip, memoized per upstream video id.

    A scorer failure for one clip is recorded as {"error": ...} for that
    clip and does not stop the others.

    Returns:
        Mapping of clip id to score (or error record)
    """
    scores: Dict[str, Any] = {}
    for clip in coerce_clips(clips):
        subject_id = clip.upstream_video_id
        try:
            scores[clip.id] = cache.get_or_compute(subject_id, operation_kind, lambda c=clip: scorer(c))
        except Exception as e:  # scorer is caller-supplied
            logger.error(f"Error scoring clip {clip.id}: {e}")
            scores[clip.id] = {"error": str(e)}
    return scores


def score_session(
    store: SessionStore,
    cache: AnalysisCache,
    session_id: str,
    scorer: Callable[[ClipDescriptor], Any],
) -> Dict[str, Any]:
    """Score a session's clips and store the scores on the session."""
    session = store.get_session(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    scores = score_clips(cache, session.clips, scorer)
    store.update_session(session_id, {"scores": scores})
    return scores


def load_session_view(store: SessionStore, transcoder: StreamTranscoder, session_id: str) -> Optional[Dict[str, Any]]:
    """Session document with freshly derived conversion state, or None."""
    if session_id not in store:
        return None
    refresh_conversion_status(store, transcoder, session_id)
    session = store.get_session(session_id)
    document = session.to_document()
    document["sessionId"] = session_id
    return document
