"""
Subprocess wrapper for ffmpeg and ffprobe.

Every external tool call goes through run_command so failures surface as
TranscodeError subclasses with the command line and stderr tail attached.
"""

import os
import subprocess
from typing import Dict, List, Optional, Sequence

from ..exceptions import TranscodeError
from ..logger import logger

STDERR_TAIL_CHARS = 512


def _render(cmd: Sequence) -> str:
    return " ".join(str(part) for part in cmd)


class CommandError(TranscodeError):
    """External tool exited with a non-zero status."""

    def __init__(self, cmd: Sequence, returncode: int, stdout: str, stderr: str):
        tail = (stderr or "").strip()[-STDERR_TAIL_CHARS:]
        super().__init__(
            f"{os.path.basename(str(cmd[0]))} failed with return code {returncode}: {_render(cmd)}\nStderr: {tail}",
            command=[str(part) for part in cmd],
            returncode=returncode,
            stderr=stderr,
        )
        self.stdout = stdout


def run_command(
    cmd: List[str],
    timeout: Optional[float] = None,
    check: bool = True,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Run an external tool with captured text output.

    Args:
        cmd: Argument list, binary first
        timeout: Seconds before the process is killed (None = no limit)
        check: Raise CommandError on a non-zero exit
        env: Extra environment variables merged over os.environ

    Raises:
        TranscodeError: timeout or the binary could not be started
        CommandError: non-zero exit with check=True
    """
    rendered = _render(cmd)
    logger.debug(f"Running command: {rendered}")

    try:
        result = subprocess.run(
            cmd,
            env={**os.environ, **env} if env else None,
            timeout=timeout,
            check=False,
            capture_output=True,
            text=True,
        )
    except subprocess.TimeoutExpired as e:
        logger.error(f"Command timed out after {timeout}s: {rendered}")
        raise TranscodeError(f"Command timed out after {timeout}s", command=[str(x) for x in cmd]) from e
    except OSError as e:
        logger.error(f"Could not start {cmd[0]}: {e}")
        raise TranscodeError(f"Could not start {cmd[0]}: {e}", command=[str(x) for x in cmd]) from e

    if check and result.returncode != 0:
        raise CommandError(cmd, result.returncode, result.stdout, result.stderr)
    return result
