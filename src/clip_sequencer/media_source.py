"""
Media Source - turns a remote locator into a local, web-playable file.

Shared by StreamTranscoder and ClipExtractor so both read sources the
same way:
- Segmented streaming manifests (.m3u8) are handed straight to ffmpeg,
  which reads the playlist and its segments natively.
- Progressive URLs are downloaded to a temporary file with requests,
  normalized, and the temporary file is removed.
- Plain local paths are normalized in place.

Outputs are written to a ".part" sibling and renamed on success, so a
crashed or failed encode never leaves a file at the final path.
"""

import os
import uuid
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

import requests

from .config import get_settings
from .core.cmd_runner import run_command
from .exceptions import DownloadError
from .ffmpeg_config import FFmpegConfig, build_ffmpeg_cmd, get_config
from .logger import logger

MANIFEST_SUFFIXES = (".m3u8",)
DOWNLOAD_CHUNK_SIZE = 1024 * 1024


def is_segmented_manifest(locator: str) -> bool:
    """True if the locator points at an HLS playlist (query string ignored)."""
    path = urlparse(locator).path if "://" in locator else locator
    return path.lower().endswith(MANIFEST_SUFFIXES)


def is_remote(locator: str) -> bool:
    return urlparse(locator).scheme in ("http", "https")


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not delete temp file {path}: {e}")


def download_file(url: str, dest: Union[str, Path], timeout: Optional[int] = None) -> Path:
    """
    Stream a progressive file to disk.

    Raises:
        DownloadError: HTTP or network failure (partial file removed)
    """
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    timeout = timeout or get_settings().transcode.download_timeout

    logger.info(f"📥 Downloading video file: {url}")
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
    except (requests.RequestException, OSError) as e:
        _remove_quietly(dest)
        raise DownloadError(f"Download failed for {url}: {e}", url=url) from e

    logger.debug(f"Downloaded {url} -> {dest}")
    return dest


def normalize_to_web(source: str, output: Union[str, Path], config: Optional[FFmpegConfig] = None) -> Path:
    """
    Re-encode any ffmpeg-readable input into a faststart baseline MP4.

    Raises:
        TranscodeError: ffmpeg failed (no file is left at output)
    """
    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    config = config or get_config()
    partial = output.with_name(output.name + ".part")

    cmd = build_ffmpeg_cmd([
        "-i", str(source),
        "-map", "0:v:0",
        "-map", "0:a?",
        *config.web_playable_params(),
        str(partial),
    ])
    try:
        run_command(cmd, timeout=get_settings().transcode.transcode_timeout)
        os.replace(partial, output)
    finally:
        if partial.exists():
            _remove_quietly(partial)
    return output


def materialize_source(
    locator: str,
    output: Union[str, Path],
    temp_dir: Optional[Union[str, Path]] = None,
    config: Optional[FFmpegConfig] = None,
) -> Path:
    """
    Produce a local web-playable file for any supported locator.

    Args:
        locator: HLS manifest URL, progressive URL or local path
        output: Final file path
        temp_dir: Where progressive downloads are staged
    """
    if is_segmented_manifest(locator):
        logger.info("🎥 Processing HLS stream directly to MP4")
        return normalize_to_web(locator, output, config)

    if not is_remote(locator):
        return normalize_to_web(locator, output, config)

    staging = Path(temp_dir) if temp_dir else Path(output).parent
    staging.mkdir(parents=True, exist_ok=True)
    temp_input = staging / f"temp_{uuid.uuid4().hex[:12]}.download"
    try:
        download_file(locator, temp_input)
        return normalize_to_web(str(temp_input), output, config)
    finally:
        _remove_quietly(temp_input)
