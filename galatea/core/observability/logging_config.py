"""
Logging configuration for the galatea command line.

main.py calls ``configure_cli_logging`` once with the global flags; every
module logs through ``logging.getLogger(__name__)`` and needs nothing else.

Console level:  --debug / --verbose / --quiet  >  GALATEA_LOG_LEVEL  >  WARNING

A log file is written when GALATEA_LOG_FILE names one, or when a log
directory is passed (``--log-to-file``), which yields
``<log_dir>/galatea_<YYYYmmdd_HHMMSS>.log``. GALATEA_LOG_FILE_LEVEL sets
the file threshold; a file created for ``--log-to-file`` defaults to DEBUG.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

LEVEL_ENV_VAR = "GALATEA_LOG_LEVEL"
FILE_ENV_VAR = "GALATEA_LOG_FILE"
FILE_LEVEL_ENV_VAR = "GALATEA_LOG_FILE_LEVEL"

LOG_FILE_PREFIX = "galatea_"

# (highest level the format applies to, format, date format); first match wins
_CONSOLE_FORMATS = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d - %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d - %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_cli_logging(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    log_dir: Path | None = None,
) -> Path | None:
    """Configure logging from the global CLI flags and the environment.

    Returns:
        The log file in use, or None for console-only logging.
    """
    log_file = os.environ.get(FILE_ENV_VAR) or None
    file_level = os.environ.get(FILE_LEVEL_ENV_VAR) or None
    if log_dir is not None and log_file is None and file_level is None:
        file_level = "DEBUG"

    return setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=log_file,
        log_file_level=file_level,
        log_dir=log_dir,
    )


def setup_logging(
    level: str = "WARNING",
    log_file: str | Path | None = None,
    log_file_level: str | None = None,
    log_dir: Path | None = None,
) -> Path | None:
    """Replace the root logger's handlers.

    Args:
        level: Console level name.
        log_file: Explicit log file; takes precedence over ``log_dir``.
        log_file_level: File level name (default: the console level).
        log_dir: Directory for a timestamped log file.

    Returns:
        The log file in use, or None.
    """
    console_level = parse_level(level)
    handlers: list[logging.Handler] = [_console_handler(console_level)]

    path = None
    if log_file:
        path = Path(log_file)
    elif log_dir is not None:
        path = timestamped_log_file(log_dir)
    if path is not None:
        file_level = parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(path, file_level))

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(min(h.level for h in handlers))

    # Never let a broken stream turn into a traceback mid-operation
    logging.raiseExceptions = False
    return path


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags, falling back to the env var."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LEVEL_ENV_VAR, "WARNING")


def timestamped_log_file(log_dir: Path, now: datetime | None = None) -> Path:
    """``<log_dir>/galatea_<YYYYmmdd_HHMMSS>.log``."""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return Path(log_dir) / f"{LOG_FILE_PREFIX}{stamp}.log"


def parse_level(level: str | None) -> int:
    """Level name to its numeric value; unknown names mean WARNING."""
    numeric = getattr(logging, str(level).upper(), None) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    for ceiling, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= ceiling:
            handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
            break
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler
