"""
Session export document builder.

Produces the downloadable JSON summary of a session: clips joined with
their scores, the sequence, the soundtrack, and aggregate statistics.
"""

from numbers import Number
from typing import Any, Dict, List, Optional

from ..core.models import Session, utcnow

SCORE_KEYS = ("score", "ability", "overall")


def _score_for(scores: Any, clip_id: str) -> Optional[Any]:
    # Scores are either {clipId: score} or [{"clipId": ..., ...}, ...]
    if isinstance(scores, dict):
        return scores.get(clip_id)
    if isinstance(scores, list):
        for entry in scores:
            if isinstance(entry, dict) and entry.get("clipId") == clip_id:
                return entry
    return None


def _numeric_score(score: Any) -> Optional[float]:
    if isinstance(score, bool):
        return None
    if isinstance(score, Number):
        return float(score)
    if isinstance(score, dict):
        for key in SCORE_KEYS:
            value = score.get(key)
            if isinstance(value, Number) and not isinstance(value, bool):
                return float(value)
    return None


def _score_values(scores: Any) -> List[Any]:
    if isinstance(scores, dict):
        return list(scores.values())
    if isinstance(scores, list):
        return scores
    return []


def build_statistics(session: Session) -> Dict[str, Any]:
    entries = _score_values(session.scores)
    # Error records and non-numeric scores still count toward the denominator
    numeric = [_numeric_score(entry) or 0.0 for entry in entries]
    average = sum(numeric) / len(numeric) if numeric else 0

    estimated = 0
    if isinstance(session.sequence, dict):
        estimated = session.sequence.get("estimated_total_duration") or 0

    return {
        "totalClips": len(session.clips),
        "averageScore": average,
        "estimatedDuration": estimated,
        "soundtrackMode": "generated" if session.soundtrack else "none",
    }


def build_session_export(session_id: str, session: Session) -> Dict[str, Any]:
    """Build the export document for a session."""
    document = session.to_document()
    clips = []
    for clip, clip_doc in zip(session.clips, document["clips"]):
        entry = {
            "id": clip.id,
            "filename": clip.filename,
            "localMediaUrl": clip.local_media_url,
            "duration": clip.duration,
            "analysis": clip.analysis,
            "score": _score_for(session.scores, clip.id),
        }
        for key in ("thumbnail", "metadata"):
            if key in clip_doc:
                entry[key] = clip_doc[key]
        clips.append(entry)

    return {
        "sessionId": session_id,
        "createdAt": document["createdAt"],
        "exportedAt": utcnow().isoformat(),
        "statistics": build_statistics(session),
        "clips": clips,
        "sequence": session.sequence,
        "soundtrack": session.soundtrack,
    }


def export_filename(session_id: str) -> str:
    return f"video-sequence-{session_id}.json"
