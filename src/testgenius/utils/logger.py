"""
Logging for TestGenius.

Modules take a logger from get_logger(__name__). The CLI and the API call
setup_logging() once. Every handler installed here runs records through
TokenRedactor, so a GitHub token never reaches the console or a log file.
"""

from __future__ import annotations

import logging
import re
import sys
from pathlib import Path

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
PLAIN_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s"

# Loggers that would print request URLs and headers at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "pydantic_ai", "google_genai")

_TOKEN_PATTERN = re.compile(r"\b(ghp|gho|ghu|ghs|ghr|github_pat)_[A-Za-z0-9_]{4,}")

_RESET = "\033[0m"
_GRAY = "\033[90m"
_BLUE = "\033[94m"
_LEVEL_COLORS = {
    logging.DEBUG: _GRAY,
    logging.INFO: "\033[92m",
    logging.WARNING: "\033[93m",
    logging.ERROR: "\033[91m",
    logging.CRITICAL: "\033[1m\033[91m",
}


class ColoredFormatter(logging.Formatter):
    """Colors the level name; the record is restored afterwards for other handlers."""

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        color = _LEVEL_COLORS.get(record.levelno)
        if color:
            record.levelname = f"{color}{levelname}{_RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class TokenRedactor(logging.Filter):
    """Masks anything shaped like a GitHub token in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _TOKEN_PATTERN.sub(lambda m: mask_secret(m.group(0)), message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _console_formatter(use_colors: bool) -> logging.Formatter:
    if use_colors and sys.stdout.isatty():
        return ColoredFormatter(
            f"{_GRAY}%(asctime)s{_RESET} | %(levelname)s | {_BLUE}%(name)s{_RESET} | %(message)s",
            datefmt=DATE_FORMAT,
        )
    return logging.Formatter(PLAIN_FORMAT, datefmt=DATE_FORMAT)


def setup_logging(
    level: int | str = logging.INFO,
    log_file: Path | None = None,
    use_colors: bool = True,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Level for the console, as a number or a name such as "DEBUG"
        log_file: Optional file that receives everything from DEBUG up
        use_colors: Color the console output when stdout is a terminal
    """
    if isinstance(level, str):
        level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(min(level, logging.DEBUG) if log_file else level)
    root_logger.handlers.clear()

    redactor = TokenRedactor()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(_console_formatter(use_colors))
    console_handler.addFilter(redactor)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        file_handler.addFilter(redactor)
        root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Example:
        logger = get_logger(__name__)
        logger.info("Loaded 12 source files")
    """
    return logging.getLogger(name)


def mask_secret(value: str | None, visible: int = 4) -> str:
    """
    Mask a secret for display, keeping only the last few characters.

    Example:
        mask_secret("ghp_abcdef123456")  # "************3456"
    """
    if not value:
        return "<empty>"
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
