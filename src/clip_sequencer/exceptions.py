"""
Clip Sequencer Exception Hierarchy

Structured exception types for the media core.
All exceptions inherit from ClipSequencerError for easy catching.

Usage:
    from clip_sequencer.exceptions import TranscodeError

    try:
        transcoder.convert(clip, session_id)
    except TranscodeError as e:
        logger.error(f"Conversion failed: {e}")
"""

from typing import List, Optional


class ClipSequencerError(Exception):
    """Base exception for all Clip Sequencer errors."""
    pass


# =============================================================================
# Storage Errors
# =============================================================================

class StorageError(ClipSequencerError):
    """Cache or session document could not be read or written."""
    pass


# =============================================================================
# Missing References
# =============================================================================

class NotFoundError(ClipSequencerError):
    """An operation referenced something that does not exist."""
    pass


class SessionNotFoundError(NotFoundError):
    """Unknown session id."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class ClipNotFoundError(NotFoundError):
    """Sequence references a clip id with no matching descriptor."""

    def __init__(self, clip_id: str):
        super().__init__(f"Clip not found: {clip_id}")
        self.clip_id = clip_id


# =============================================================================
# Media Errors
# =============================================================================

class MediaError(ClipSequencerError):
    """Error while fetching, probing or encoding media."""
    pass


class DownloadError(MediaError):
    """Remote source could not be downloaded."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class MetadataExtractionError(MediaError):
    """Error extracting video metadata via ffprobe."""
    pass


class TranscodeError(MediaError):
    """FFmpeg invocation failed."""

    def __init__(self, message: str, command: Optional[List[str]] = None, returncode: Optional[int] = None, stderr: Optional[str] = None):
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(ClipSequencerError):
    """Invalid configuration or missing required settings."""
    pass
