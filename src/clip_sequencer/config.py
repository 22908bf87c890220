"""
Centralized Configuration for Clip Sequencer

Single Source of Truth for paths, retention windows and encoder settings.
Every value can be overridden through an environment variable.

Usage:
    from clip_sequencer.config import get_settings

    settings = get_settings()
    session_dir = settings.paths.session_dir
    if settings.cache.enabled:
        ...
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _data_path(env_name: str, sub_dir: str) -> Path:
    """Resolve a directory from its env var or fall back to DATA_DIR/<sub_dir>."""
    explicit = os.environ.get(env_name)
    if explicit:
        return Path(explicit)
    return Path(os.environ.get("DATA_DIR", "data")) / sub_dir


# =============================================================================
# Path Configuration
# =============================================================================
@dataclass
class PathConfig:
    """All filesystem locations used by the media core."""

    data_dir: Path = field(default_factory=lambda: Path(os.environ.get("DATA_DIR", "data")))
    session_dir: Path = field(default_factory=lambda: _data_path("SESSION_DIR", "sessions"))
    cache_dir: Path = field(default_factory=lambda: _data_path("CACHE_DIR", "cache"))
    converted_dir: Path = field(default_factory=lambda: _data_path("CONVERTED_DIR", "converted"))
    clips_dir: Path = field(default_factory=lambda: _data_path("CLIPS_DIR", "clips"))
    temp_dir: Path = field(default_factory=lambda: _data_path("TEMP_DIR", "temp"))

    def ensure_directories(self) -> None:
        """Create all directories if they don't exist."""
        for path in [self.session_dir, self.cache_dir, self.converted_dir, self.clips_dir, self.temp_dir]:
            path.mkdir(parents=True, exist_ok=True)


# =============================================================================
# Public URLs
# =============================================================================
@dataclass
class ServerConfig:
    """Where the external static-file server exposes generated media."""

    public_base_url: str = field(default_factory=lambda: os.environ.get("PUBLIC_BASE_URL", "http://localhost:3001"))
    converted_route: str = field(default_factory=lambda: os.environ.get("CONVERTED_ROUTE", "/converted"))
    clips_route: str = field(default_factory=lambda: os.environ.get("CLIPS_ROUTE", "/clips"))

    def converted_url(self, filename: str) -> str:
        return f"{self.public_base_url.rstrip('/')}{self.converted_route}/{filename}"

    def clip_url(self, filename: str) -> str:
        # Extracted clips are served relative to the UI origin
        return f"{self.clips_route}/{filename}"


# =============================================================================
# Cache Configuration
# =============================================================================
@dataclass
class CacheConfig:
    """Analysis result cache settings."""

    ttl_hours: float = field(default_factory=lambda: float(os.environ.get("CACHE_TTL_HOURS", "24")))
    enabled: bool = field(default_factory=lambda: os.environ.get("DISABLE_ANALYSIS_CACHE", "false").lower() != "true")


# =============================================================================
# Session Configuration
# =============================================================================
@dataclass
class SessionConfig:
    """Session retention and persistence backend settings."""

    retention_hours: float = field(default_factory=lambda: float(os.environ.get("SESSION_RETENTION_HOURS", "24")))
    sweep_interval_seconds: float = field(default_factory=lambda: float(os.environ.get("SESSION_SWEEP_INTERVAL", "3600")))
    backend: str = field(default_factory=lambda: os.environ.get("SESSION_BACKEND", "file").lower())
    redis_host: Optional[str] = field(default_factory=lambda: os.environ.get("REDIS_HOST"))
    redis_port: int = field(default_factory=lambda: int(os.environ.get("REDIS_PORT", "6379")))


# =============================================================================
# Transcode Configuration
# =============================================================================
@dataclass
class TranscodeConfig:
    """External tool binaries, timeouts and worker pool size."""

    ffmpeg_bin: str = field(default_factory=lambda: os.environ.get("FFMPEG_BIN", "ffmpeg"))
    ffprobe_bin: str = field(default_factory=lambda: os.environ.get("FFPROBE_BIN", "ffprobe"))
    download_timeout: int = field(default_factory=lambda: int(os.environ.get("DOWNLOAD_TIMEOUT", "120")))
    transcode_timeout: Optional[int] = field(default_factory=lambda: int(os.environ.get("TRANSCODE_TIMEOUT", "0")) or None)
    ffprobe_timeout: int = field(default_factory=lambda: int(os.environ.get("FFPROBE_TIMEOUT", "30")))
    # 1 keeps the serial one-transcode-at-a-time behaviour
    max_workers: int = field(default_factory=lambda: max(1, int(os.environ.get("CONVERT_WORKERS", "1"))))
    clip_max_age_hours: float = field(default_factory=lambda: float(os.environ.get("CLIP_MAX_AGE_HOURS", "24")))


# =============================================================================
# Main Settings Class
# =============================================================================
@dataclass
class Settings:
    """
    Main configuration container.

    Usage:
        from clip_sequencer.config import get_settings

        settings = get_settings()
        settings.paths.converted_dir
        settings.transcode.max_workers
    """

    paths: PathConfig = field(default_factory=PathConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    transcode: TranscodeConfig = field(default_factory=TranscodeConfig)


# =============================================================================
# Global Settings Instance (Singleton)
# =============================================================================
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance (lazy initialization)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Force reload of settings from environment."""
    global _settings
    _settings = Settings()
    return _settings
