"""
Logging setup for the scanner.

Console output goes to stderr so that commands printing JSON keep stdout
clean. An optional log file always records debug detail, whatever the
console level.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Console logging level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional file that receives every record at DEBUG.
        format_string: Custom format string.
        stream: Console stream, stderr by default.
    """
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
    console_level = getattr(logging, level.upper())

    console = logging.StreamHandler(stream or sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(formatter)
    handlers = [console]

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if log_file else console_level,
        handlers=handlers,
        force=True,
    )


def pluralize(word: str, count: int) -> str:
    """Pluralize a regular noun for progress messages."""
    return word if count == 1 else f"{word}s"
