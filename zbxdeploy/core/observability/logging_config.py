"""
Logging configuration — central setup for the CLI.

Called once at startup by main.py. Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Console level precedence:
    CLI flag  >  ZBXD_LOG_LEVEL env var  >  INFO (default)

The run log (file handler) is appended to, never truncated, and is
always timestamped. Its level comes from ZBXD_LOG_FILE_LEVEL and
defaults to DEBUG so captured command output is kept.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# ── Format strings ──────────────────────────────────────────────

# WARNING and above: message only
_FMT_MINIMAL = "%(message)s"

# INFO: timestamped
_FMT_VERBOSE = "%(asctime)s - %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG: logger name and line number
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# Run log: full date, level and logger
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    log_file: str | Path | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Console log level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional path of the append-only run log. Its parent
            directory is created when missing.
        log_file_level: Level for the run log (default DEBUG).

    Raises:
        OSError: If the run log cannot be created.
    """
    numeric_level = _parse_level(level)

    # ── Console handler (stderr) ────────────────────────────────
    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    # ── Root logger ─────────────────────────────────────────────
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.addHandler(console)

    effective_level = numeric_level

    # ── Run log (optional, append-only) ─────────────────────────
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_level = _parse_level(log_file_level or "DEBUG")
        effective_level = min(effective_level, file_level)

        run_log = logging.FileHandler(path, mode="a", encoding="utf-8")
        run_log.setLevel(file_level)
        run_log.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(run_log)

    root.setLevel(effective_level)

    # A broken log stream must not abort a deployment
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.INFO
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.INFO
    return numeric
