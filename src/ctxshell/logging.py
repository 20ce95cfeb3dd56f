"""Shell logging configuration.

Provides file logging for the shell. Logs are written to the path given on
the command line or by the ``log_file`` config key; nothing is logged to
the terminal beyond warnings so command output stays clean.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "ctxshell"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Module-level state
_file_handler: Optional[logging.FileHandler] = None
_log_path: Optional[Path] = None
_console_handler: Optional[logging.Handler] = None


def parse_level(level: str | int) -> int:
    """Turn a level name like "debug" into a logging level."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def configure_console_logging(level: int = logging.WARNING) -> None:
    """Send shell warnings (or more, with --debug) to stderr."""
    global _console_handler

    shell_logger = logging.getLogger(LOGGER_NAME)
    if _console_handler is not None:
        shell_logger.removeHandler(_console_handler)

    # Grey text, like other shell feedback
    _console_handler = logging.StreamHandler(sys.stderr)
    _console_handler.setFormatter(logging.Formatter("\033[90m%(message)s\033[0m"))
    _console_handler.setLevel(level)
    shell_logger.addHandler(_console_handler)
    shell_logger.setLevel(min(shell_logger.level or logging.DEBUG, level))


def configure_file_logging(path: str | Path, level: int = logging.INFO) -> Path:
    """Configure file logging for the shell.

    Args:
        path: Log file path; parent directories are created.
        level: Logging level for file output (default INFO)

    Returns:
        Path to the log file
    """
    global _file_handler, _log_path

    log_path = Path(path).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # Remove existing handler if any
    close_file_logging()

    _file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    _file_handler.setLevel(level)
    _file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    shell_logger = logging.getLogger(LOGGER_NAME)
    shell_logger.addHandler(_file_handler)
    shell_logger.setLevel(min(shell_logger.level or logging.DEBUG, level))

    _log_path = log_path
    shell_logger.info("=== Shell started ===")
    return log_path


def close_file_logging() -> None:
    """Flush and close the log file, if any."""
    global _file_handler, _log_path

    if _file_handler is not None:
        shell_logger = logging.getLogger(LOGGER_NAME)
        shell_logger.info("=== Shell ended ===")
        shell_logger.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None
        _log_path = None


def get_current_log_path() -> Optional[Path]:
    """Path of the active log file, or None."""
    return _log_path
