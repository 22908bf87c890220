import json
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from ._version import VERSION

# Lazy load rich to keep startup fast for scripted use
_console = None


def get_console():
    global _console
    if _console is None:
        from rich.console import Console
        _console = Console()
    return _console


def parse_clip_spec(text: str):
    """Parse "start:end:id[:title]" into a ClipSpec."""
    from pydantic import ValidationError

    from .core.models import ClipSpec

    parts = text.split(":", 3)
    if len(parts) < 3:
        raise click.BadParameter(f"expected start:end:id[:title], got {text!r}")
    start, end, clip_id = parts[:3]
    title = parts[3] if len(parts) == 4 else ""
    try:
        return ClipSpec(start_time=float(start), end_time=float(end), id=clip_id, title=title)
    except (ValueError, ValidationError) as e:
        raise click.BadParameter(f"invalid clip spec {text!r}: {e}")


def _fail(message: str) -> None:
    get_console().print(f"[bold red]❌ {message}[/]")
    sys.exit(1)


@click.group()
@click.version_option(version=VERSION, prog_name="clip-sequencer")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Also write a detailed log to this file")
def cli(verbose: bool, log_file: Optional[Path]):
    """Clip Sequencer - cached analysis, web transcoding and vertical clip extraction"""
    from .config import get_settings
    from .logger import configure_file_logging, set_verbose

    get_settings().paths.ensure_directories()
    if log_file:
        configure_file_logging(log_file)
    if verbose:
        set_verbose()


@cli.command()
@click.argument("locator")
@click.option("--session", "session_id", required=True, help="Session the conversion belongs to")
@click.option("--clip-id", required=True, help="Clip identifier")
def convert(locator: str, session_id: str, clip_id: str):
    """Convert a remote, local or HLS source into a web-playable MP4."""
    from .core.models import ClipDescriptor
    from .exceptions import ClipSequencerError
    from .stream_transcoder import StreamTranscoder

    console = get_console()
    transcoder = StreamTranscoder()
    try:
        url = transcoder.convert(ClipDescriptor(id=clip_id, source_locator=locator), session_id)
    except ClipSequencerError as e:
        _fail(str(e))
    console.print(f"✅ Converted: [link={url}]{url}[/link]")


@cli.command()
@click.argument("locator")
@click.option("--spec", "specs", multiple=True, required=True, help="start:end:id[:title] (repeatable)")
def extract(locator: str, specs: Tuple[str, ...]):
    """Cut vertical 9:16 clips out of one source."""
    from rich.table import Table

    from .clip_extractor import ClipExtractor
    from .exceptions import ClipSequencerError

    console = get_console()
    clip_specs = [parse_clip_spec(s) for s in specs]
    try:
        clips = ClipExtractor().process_clips(locator, clip_specs)
    except ClipSequencerError as e:
        _fail(str(e))

    table = Table(title=f"Extracted {len(clips)}/{len(clip_specs)} clips")
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Duration", justify="right")
    table.add_column("Resolution")
    table.add_column("URL", style="magenta")
    for clip in clips:
        table.add_row(clip.spec.id, f"{clip.duration:.2f}s", clip.resolution, clip.url)
    console.print(table)

    if len(clips) < len(clip_specs):
        sys.exit(1)


@cli.command()
@click.argument("clip_id")
@click.option("--session", "session_id", required=True, help="Session the clip belongs to")
def status(clip_id: str, session_id: str):
    """Show whether a clip has already been converted."""
    from .stream_transcoder import StreamTranscoder

    outcome = StreamTranscoder().get_conversion_status(clip_id, session_id)
    if outcome.ok:
        get_console().print(f"[green]converted[/] {outcome.local_url}")
    else:
        get_console().print(f"[yellow]{outcome.status}[/]")


@cli.command()
@click.option("--max-age-hours", type=float, default=None, help="Age threshold (default: CLIP_MAX_AGE_HOURS)")
def cleanup(max_age_hours: Optional[float]):
    """Delete extracted clips older than the age threshold."""
    from .clip_extractor import ClipExtractor

    deleted = ClipExtractor().cleanup_old_clips(max_age_hours)
    get_console().print(f"🗑️ Deleted {len(deleted)} old clips")


# =============================================================================
# Sessions
# =============================================================================

@cli.group()
def sessions():
    """Inspect and maintain stored sessions."""


def _load_store():
    from .core.session import create_session_store

    store = create_session_store()
    store.load()
    return store


@sessions.command("list")
def sessions_list():
    """List stored sessions."""
    from rich.table import Table

    table = Table(title="Sessions")
    table.add_column("Session", style="cyan", no_wrap=True)
    table.add_column("Created")
    table.add_column("Clips", justify="right")
    table.add_column("Sequence")
    for summary in _load_store().list_sessions():
        table.add_row(
            summary["sessionId"],
            summary["createdAt"],
            str(summary["clipCount"]),
            "yes" if summary["hasSequence"] else "-",
        )
    get_console().print(table)


@sessions.command("sweep")
def sessions_sweep():
    """Delete sessions older than the retention window."""
    removed = _load_store().cleanup_expired()
    get_console().print(f"🗑️ Removed {len(removed)} expired sessions")


@sessions.command("show")
@click.argument("session_id")
@click.option("--export", "as_export", is_flag=True, help="Print the export document instead")
def sessions_show(session_id: str, as_export: bool):
    """Print a session as JSON, with conversion state refreshed from disk."""
    from .export import build_session_export
    from .orchestration import load_session_view
    from .stream_transcoder import StreamTranscoder

    store = _load_store()
    document = load_session_view(store, StreamTranscoder(), session_id)
    if document is None:
        _fail(f"Session not found: {session_id}")
    if as_export:
        document = build_session_export(session_id, store.get_session(session_id))
    click.echo(json.dumps(document, indent=2))


# =============================================================================
# Cache
# =============================================================================

@cli.group()
def cache():
    """Inspect the analysis cache."""


@cache.command("clear")
def cache_clear():
    """Remove every cache entry."""
    from .core.analysis_cache import get_analysis_cache

    removed = get_analysis_cache().clear_all()
    get_console().print(f"🧹 Cleared {removed} cache entries")


@cache.command("get")
@click.argument("subject_id")
@click.argument("operation_kind")
def cache_get(subject_id: str, operation_kind: str):
    """Print a cached result, if present and fresh."""
    from .core.analysis_cache import get_analysis_cache

    result: Optional[object] = get_analysis_cache().get(subject_id, operation_kind)
    if result is None:
        _fail(f"No cached {operation_kind} for {subject_id}")
    click.echo(json.dumps(result, indent=2))


if __name__ == "__main__":
    cli()
