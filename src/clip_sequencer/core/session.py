"""
Project Session Management

Durable per-session project state (clips, sequence, scores, soundtrack).

The in-memory index is authoritative and serves every read. Each
mutation is mirrored synchronously to a persistence backend as one full
JSON document per session id. The mirror is not transactional: if the
process dies after the in-memory update and before the write completes,
that last update is lost. Backend write failures are logged, never
raised.

Backends:
- FileSessionBackend: <session_dir>/<id>.json (default)
- RedisSessionBackend: key "session:<id>"

Lifecycle:
    store = create_session_store()
    store.start()        # load persisted sessions, start the retention sweep
    ...
    store.stop()
"""

import json
import os
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from ..config import Settings, get_settings
from ..exceptions import ConfigurationError, StorageError
from ..logger import logger
from .models import Session

DEFAULT_RETENTION_HOURS = 24
DEFAULT_SWEEP_INTERVAL_SECONDS = 3600


# =============================================================================
# Persistence Backends
# =============================================================================

class SessionBackend(ABC):
    """Stores one JSON document per session id."""

    @abstractmethod
    def load_all(self) -> Dict[str, Dict[str, Any]]:
        """Return every persisted document keyed by session id."""

    @abstractmethod
    def save(self, session_id: str, document: Dict[str, Any]) -> None:
        """Replace the document for session_id. Raises StorageError."""

    @abstractmethod
    def delete(self, session_id: str) -> None:
        """Remove the document if present. Raises StorageError."""


class FileSessionBackend(SessionBackend):
    """One <id>.json file per session."""

    def __init__(self, session_dir: Union[str, Path]):
        self.session_dir = Path(session_dir)
        self.session_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, session_id: str) -> Path:
        return self.session_dir / f"{session_id}.json"

    def load_all(self) -> Dict[str, Dict[str, Any]]:
        documents = {}
        for file_path in sorted(self.session_dir.glob("*.json")):
            try:
                with open(file_path, encoding="utf-8") as f:
                    documents[file_path.stem] = json.load(f)
            except (OSError, ValueError) as e:
                logger.error(f"Error loading session {file_path.name}: {e}")
        return documents

    def save(self, session_id: str, document: Dict[str, Any]) -> None:
        file_path = self.path_for(session_id)
        temp_path = file_path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(temp_path, file_path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Error saving session {session_id} to disk: {e}") from e

    def delete(self, session_id: str) -> None:
        try:
            self.path_for(session_id).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Error deleting session {session_id} from disk: {e}") from e


class RedisSessionBackend(SessionBackend):
    """Session documents stored as JSON strings under "session:<id>"."""

    prefix = "session:"

    def __init__(self, client):
        self.redis = client

    def load_all(self) -> Dict[str, Dict[str, Any]]:
        import redis

        documents = {}
        try:
            for key in self.redis.scan_iter(match=f"{self.prefix}*"):
                raw = self.redis.get(key)
                if not raw:
                    continue
                try:
                    documents[key[len(self.prefix):]] = json.loads(raw)
                except ValueError as e:
                    logger.error(f"Error loading session {key}: {e}")
        except redis.exceptions.RedisError as e:
            logger.error(f"Redis load failed: {e}")
        return documents

    def save(self, session_id: str, document: Dict[str, Any]) -> None:
        import redis

        try:
            self.redis.set(f"{self.prefix}{session_id}", json.dumps(document))
        except redis.exceptions.RedisError as e:
            raise StorageError(f"Redis save failed for session {session_id}: {e}") from e

    def delete(self, session_id: str) -> None:
        import redis

        try:
            self.redis.delete(f"{self.prefix}{session_id}")
        except redis.exceptions.RedisError as e:
            raise StorageError(f"Redis delete failed for session {session_id}: {e}") from e


# =============================================================================
# Session Store
# =============================================================================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """
    In-memory session index mirrored to a persistence backend.

    Updates are whole-document shallow merges. Callers that mutate the
    same top-level keys from different requests must serialize those
    requests themselves.
    """

    def __init__(
        self,
        backend: SessionBackend,
        retention_hours: float = DEFAULT_RETENTION_HOURS,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.backend = backend
        self.retention = timedelta(hours=retention_hours)
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock or _utcnow
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._sweep_thread: Optional[threading.Thread] = None
        self._loaded = False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def load(self) -> int:
        """Rebuild the in-memory index from the backend. Returns sessions loaded."""
        loaded = {}
        for session_id, document in self.backend.load_all().items():
            if not isinstance(document, dict):
                logger.error(f"Error loading session {session_id}: document is not an object")
                continue
            try:
                loaded[session_id] = Session.from_document(session_id, document)
            except ValidationError as e:
                logger.error(f"Error loading session {session_id}: {e}")

        with self._lock:
            self._sessions = loaded
            self._loaded = True

        if loaded:
            logger.info(f"📁 Loaded {len(loaded)} sessions from storage")
        return len(loaded)

    def start(self) -> "SessionStore":
        """Load persisted sessions and start the background retention sweep."""
        if not self._loaded:
            self.load()
        if self._sweep_thread is None and self.sweep_interval_seconds > 0:
            self._stop_event.clear()
            self._sweep_thread = threading.Thread(
                target=self._sweep_loop, name="session-retention-sweep", daemon=True
            )
            self._sweep_thread.start()
        return self

    def stop(self) -> None:
        """Stop the retention sweep thread."""
        self._stop_event.set()
        if self._sweep_thread is not None:
            self._sweep_thread.join(timeout=5)
            self._sweep_thread = None

    def __enter__(self) -> "SessionStore":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.sweep_interval_seconds):
            try:
                self.cleanup_expired()
            except Exception as e:  # keep the sweep thread alive
                logger.error(f"Session sweep failed: {e}")

    # -------------------------------------------------------------------------
    # Persistence mirror
    # -------------------------------------------------------------------------

    def _persist(self, session: Session) -> None:
        try:
            self.backend.save(session.id, session.to_document())
        except StorageError as e:
            logger.error(str(e))

    def _unpersist(self, session_id: str) -> None:
        try:
            self.backend.delete(session_id)
        except StorageError as e:
            logger.error(str(e))

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create_session(self) -> str:
        """Create, register and persist an empty session; returns its id."""
        session = Session(id=str(uuid.uuid4()), created_at=self._clock())
        with self._lock:
            self._sessions[session.id] = session
            self._persist(session)
        logger.debug(f"Created session {session.id}")
        return session.id

    def get_session(self, session_id: str) -> Optional[Session]:
        """Return a copy of the session, or None if unknown."""
        with self._lock:
            session = self._sessions.get(session_id)
            return session.model_copy(deep=True) if session is not None else None

    def update_session(self, session_id: str, partial: Dict[str, Any]) -> bool:
        """
        Shallow-merge partial into the session and re-persist the whole document.

        Returns:
            False if the session id is unknown
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                logger.warning(f"Update for unknown session {session_id}")
                return False
            updated = session.merged(partial)
            self._sessions[session_id] = updated
            self._persist(updated)
        return True

    def delete_session(self, session_id: str) -> bool:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                return False
            self._unpersist(session_id)
        return True

    def list_sessions(self) -> List[Dict[str, Any]]:
        """Summaries of all sessions, newest first."""
        with self._lock:
            sessions = list(self._sessions.values())
        sessions.sort(key=lambda s: s.created_at, reverse=True)
        return [
            {
                "sessionId": s.id,
                "createdAt": s.created_at.isoformat(),
                "clipCount": len(s.clips),
                "hasSequence": s.sequence is not None,
            }
            for s in sessions
        ]

    def cleanup_expired(self, now: Optional[datetime] = None) -> List[str]:
        """Delete sessions older than the retention window. Returns removed ids."""
        cutoff = (now or self._clock()) - self.retention
        removed = []
        with self._lock:
            for session_id, session in list(self._sessions.items()):
                if session.created_at < cutoff:
                    del self._sessions[session_id]
                    self._unpersist(session_id)
                    removed.append(session_id)
                    logger.info(f"🗑️ Cleaned up old session: {session_id}")
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions


# =============================================================================
# Factory
# =============================================================================

def create_session_store(settings: Optional[Settings] = None) -> SessionStore:
    """
    Build a SessionStore from configuration.

    SESSION_BACKEND=redis (with REDIS_HOST) selects Redis; anything else
    uses one JSON file per session under SESSION_DIR.
    """
    settings = settings or get_settings()
    cfg = settings.session

    if cfg.backend == "redis":
        if not cfg.redis_host:
            raise ConfigurationError("SESSION_BACKEND=redis requires REDIS_HOST")
        import redis

        client = redis.Redis(host=cfg.redis_host, port=cfg.redis_port, decode_responses=True)
        logger.info(f"Using Redis session storage at {cfg.redis_host}:{cfg.redis_port}")
        backend: SessionBackend = RedisSessionBackend(client)
    else:
        backend = FileSessionBackend(settings.paths.session_dir)

    return SessionStore(
        backend,
        retention_hours=cfg.retention_hours,
        sweep_interval_seconds=cfg.sweep_interval_seconds,
    )
