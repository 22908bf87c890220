"""
Logging for Clip Sequencer

One package logger, "clip_sequencer", shared by every module:
- stdout handler: progress lines (INFO) print bare, everything else
  carries a clock time and level tag
- optional file handler with full detail (LOG_FILE or --log-file)
- level from LOG_LEVEL (default INFO)

Usage:
    from clip_sequencer.logger import logger

    logger.info("🔄 Converting clip c1 to MP4...")
    log_success("Successfully converted c1")
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "clip_sequencer"

_CONSOLE_FORMATS = {
    logging.DEBUG: "%(asctime)s [DEBUG] %(module)s: %(message)s",
    logging.INFO: "%(message)s",
    logging.WARNING: "%(asctime)s [WARN] %(message)s",
    logging.ERROR: "%(asctime)s [ERROR] %(message)s",
    logging.CRITICAL: "%(asctime)s [CRITICAL] %(message)s",
}


def get_log_level(default: str = "INFO") -> int:
    """Resolve LOG_LEVEL; unknown names fall back to INFO."""
    level = logging.getLevelName(os.environ.get("LOG_LEVEL", default).upper())
    return level if isinstance(level, int) else logging.INFO


class ConsoleFormatter(logging.Formatter):
    """Per-level console layout."""

    def __init__(self):
        super().__init__(datefmt="%H:%M:%S")
        self._formatters = {
            level: logging.Formatter(fmt, datefmt="%H:%M:%S") for level, fmt in _CONSOLE_FORMATS.items()
        }

    def format(self, record: logging.LogRecord) -> str:
        formatter = self._formatters.get(record.levelno, self._formatters[logging.INFO])
        return formatter.format(record)


class FileFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(threadName)s | %(module)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def configure_file_logging(log_file: Union[str, Path]) -> logging.Handler:
    """Attach a DEBUG file handler to the package logger and return it."""
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(FileFormatter())
    logging.getLogger(LOGGER_NAME).addHandler(handler)
    return handler


def setup_logger(log_file: Optional[Union[str, Path]] = None, level: Optional[int] = None) -> logging.Logger:
    """Configure the package logger once; later calls return it unchanged."""
    pkg_logger = logging.getLogger(LOGGER_NAME)
    if pkg_logger.handlers:
        return pkg_logger

    log_level = level or get_log_level()
    pkg_logger.setLevel(log_level)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    console.setFormatter(ConsoleFormatter())
    pkg_logger.addHandler(console)

    log_file = log_file or os.environ.get("LOG_FILE")
    if log_file:
        configure_file_logging(log_file)
    return pkg_logger


def set_verbose(verbose: bool = True) -> None:
    """Switch the package logger (and its console output) to DEBUG or back."""
    level = logging.DEBUG if verbose else get_log_level()
    logger.setLevel(level)
    for handler in logger.handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(level)


logger = setup_logger()


def log_success(message: str) -> None:
    logger.info(f"   ✅ {message}")


def log_warning(message: str) -> None:
    logger.warning(f"   ⚠️  {message}")
