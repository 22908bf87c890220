"""
Analysis Cache for Clip Sequencer

Persistent, content-addressed caching for expensive operations (clip
scoring, upstream analysis lookups, ...). An entry is addressed by the
pair (subject id, operation kind) and stored as one JSON document:

    <cache_dir>/<md5(subject_operation)>.json
    {"subjectId": ..., "operationKind": ..., "result": ..., "timestamp": ISO}

Cache invalidation:
- TTL-based: entries older than CACHE_TTL_HOURS (default: 24h) are
  purged on the next access and reported as a miss.

Failure handling:
- Storage errors are logged and degrade to a miss. Nothing raised by the
  storage layer reaches the caller.

Concurrency:
- get_or_compute() does not coordinate concurrent callers. Two callers
  racing on the same key may both run compute(); callers that need
  single-flight semantics must serialize externally.

Usage:
    from clip_sequencer.core.analysis_cache import get_analysis_cache

    cache = get_analysis_cache()
    score = cache.get_or_compute(video_id, "clip_score", lambda: scorer(clip))
"""

import hashlib
import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Union

from ..config import get_settings
from ..logger import logger


DEFAULT_TTL_HOURS = 24

_MISS = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisCache:
    """
    File-backed get/set/compute-once store for JSON-serializable results.
    """

    def __init__(
        self,
        cache_dir: Union[str, Path],
        ttl_hours: float = DEFAULT_TTL_HOURS,
        enabled: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the analysis cache.

        Args:
            cache_dir: Directory holding one JSON file per entry
            ttl_hours: Time-to-live in hours before an entry expires
            enabled: Whether caching is enabled (can be disabled for testing)
            clock: Returns the current aware datetime (injectable for tests)
        """
        self.cache_dir = Path(cache_dir)
        self.ttl = timedelta(hours=ttl_hours)
        self.enabled = enabled
        self._clock = clock or _utcnow
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cache directory creation failed: {e}")

    # -------------------------------------------------------------------------
    # Keys
    # -------------------------------------------------------------------------

    @staticmethod
    def cache_key(subject_id: str, operation_kind: str) -> str:
        """Fingerprint of the requested computation."""
        return hashlib.md5(f"{subject_id}_{operation_kind}".encode("utf-8")).hexdigest()

    def _cache_path(self, subject_id: str, operation_kind: str) -> Path:
        return self.cache_dir / f"{self.cache_key(subject_id, operation_kind)}.json"

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _entry_time(self, data: dict, cache_path: Path) -> datetime:
        """Stored timestamp, falling back to file mtime for legacy entries."""
        try:
            stamp = datetime.fromisoformat(data["timestamp"])
            if stamp.tzinfo is None:
                stamp = stamp.replace(tzinfo=timezone.utc)
            return stamp
        except (KeyError, TypeError, ValueError):
            return datetime.fromtimestamp(cache_path.stat().st_mtime, tz=timezone.utc)

    def _load(self, subject_id: str, operation_kind: str) -> Tuple[bool, Any]:
        """Return (hit, result). Expired entries are purged."""
        if not self.enabled:
            return False, None

        cache_path = self._cache_path(subject_id, operation_kind)
        try:
            with open(cache_path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                logger.warning(f"Cache entry for {operation_kind} of {subject_id} is not an object, ignoring")
                return False, None

            age = self._clock() - self._entry_time(data, cache_path)
            if age > self.ttl:
                logger.info(f"🗑️ Cache expired for {operation_kind} of {subject_id}")
                self.delete(subject_id, operation_kind)
                return False, None

            logger.debug(f"Cache hit: {operation_kind} for {subject_id}")
            return True, data["result"]
        except FileNotFoundError:
            return False, None
        except (KeyError, OSError, TypeError, ValueError) as e:
            logger.warning(f"Cache read error for {operation_kind} of {subject_id}: {e}")
            return False, None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def get(self, subject_id: str, operation_kind: str) -> Optional[Any]:
        """
        Load a cached result if present and fresh.

        Returns:
            The stored payload, or None on a miss
        """
        _, result = self._load(subject_id, operation_kind)
        return result

    def set(self, subject_id: str, operation_kind: str, result: Any) -> bool:
        """
        Store a result, overwriting any existing entry.

        Returns:
            True if the entry was written
        """
        if not self.enabled:
            return False

        cache_path = self._cache_path(subject_id, operation_kind)
        entry = {
            "subjectId": subject_id,
            "operationKind": operation_kind,
            "result": result,
            "timestamp": self._clock().isoformat(),
        }
        temp_path = cache_path.with_suffix(".tmp")
        try:
            # Write to temp, then rename
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(entry, f, indent=2)
            os.replace(temp_path, cache_path)
            logger.debug(f"💾 Cached {operation_kind} for {subject_id}")
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Cache write error for {operation_kind} of {subject_id}: {e}")
            try:
                temp_path.unlink(missing_ok=True)
            except OSError:
                pass
            return False

    def get_or_compute(self, subject_id: str, operation_kind: str, compute: Callable[[], Any]) -> Any:
        """
        Return the cached result or run compute() and cache its return value.

        Exceptions raised by compute() propagate; nothing is cached then.
        """
        hit, result = self._load(subject_id, operation_kind)
        if hit:
            return result

        logger.info(f"🔄 Running {operation_kind} for {subject_id} (not cached)")
        result = compute()
        self.set(subject_id, operation_kind, result)
        return result

    def delete(self, subject_id: str, operation_kind: str) -> bool:
        """Remove one entry. Returns True if a file was deleted."""
        cache_path = self._cache_path(subject_id, operation_kind)
        try:
            cache_path.unlink()
            logger.debug(f"Deleted cache for {operation_kind} of {subject_id}")
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Cache delete error for {operation_kind} of {subject_id}: {e}")
            return False

    def clear_all(self) -> int:
        """Remove every cache entry. Returns the number of files removed."""
        removed = 0
        try:
            entries = list(self.cache_dir.glob("*.json"))
        except OSError as e:
            logger.warning(f"Cache clear error: {e}")
            return 0

        for cache_file in entries:
            try:
                cache_file.unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Could not remove cache file {cache_file.name}: {e}")

        logger.info(f"🗑️ Cleared all cache files ({removed} files)")
        return removed


# =============================================================================
# Global Singleton
# =============================================================================

_cache: Optional[AnalysisCache] = None


def get_analysis_cache() -> AnalysisCache:
    """
    Get the global analysis cache instance.

    Configuration via environment variables:
    - CACHE_DIR: where entries live (default: $DATA_DIR/cache)
    - CACHE_TTL_HOURS: TTL in hours (default: 24)
    - DISABLE_ANALYSIS_CACHE: Set to "true" to disable caching
    """
    global _cache
    if _cache is None:
        settings = get_settings()
        _cache = AnalysisCache(
            cache_dir=settings.paths.cache_dir,
            ttl_hours=settings.cache.ttl_hours,
            enabled=settings.cache.enabled,
        )
    return _cache


def reset_cache() -> None:
    """Reset the global cache instance (useful for testing)."""
    global _cache
    _cache = None


__all__ = [
    "AnalysisCache",
    "get_analysis_cache",
    "reset_cache",
    "DEFAULT_TTL_HOURS",
]
