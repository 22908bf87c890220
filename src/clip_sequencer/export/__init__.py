"""
Export convenience module - session state as a downloadable JSON document.

Usage:
    from clip_sequencer.export import export_session

    path = export_session(store, session_id, output_dir=Path("/data/exports"))
"""

import json
from pathlib import Path
from typing import Union

from ..core.session import SessionStore
from ..exceptions import SessionNotFoundError
from ..logger import logger
from .session_export import build_session_export, build_statistics, export_filename


def export_session(store: SessionStore, session_id: str, output_dir: Union[str, Path]) -> Path:
    """Write the export document for a session and return its path."""
    session = store.get_session(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / export_filename(session_id)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(build_session_export(session_id, session), f, indent=2)

    logger.info(f"📦 Exported session {session_id} to {output_path}")
    return output_path


__all__ = ["build_session_export", "build_statistics", "export_filename", "export_session"]
