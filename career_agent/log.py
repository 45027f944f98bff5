"""Logging for the UI, the CLI and the library modules.

``get_logger`` installs handlers lazily on first use. Entry points that want
a different level or log directory call ``configure_logging`` first.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Optional, Union

LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# SDK and HTTP-pool loggers echo every request at INFO
QUIET_LOGGERS = ("httpx", "openai", "urllib3")

_configured = False


def parse_level(level: Union[str, int, None]) -> int:
    """``"debug"``, ``"WARNING"``, ``10`` ... to a logging level; unknown names mean INFO."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName((level or "INFO").strip().upper())
    return value if isinstance(value, int) else logging.INFO


def log_file_path(directory: Optional[Path] = None, day: Optional[date] = None) -> Path:
    day = day or date.today()
    return (directory or LOG_DIR) / f"career_agent_{day.isoformat()}.log"


def file_handler(directory: Optional[Path] = None) -> Optional[logging.FileHandler]:
    """A DEBUG-level handler on today's file, or None when the directory is unusable."""
    path = log_file_path(directory)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        print(f"career_agent: file logging disabled ({exc})", file=sys.stderr)
        return None
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def configure_logging(
    level: Union[str, int, None] = None,
    log_dir: Optional[Path] = None,
    to_file: Optional[bool] = None,
) -> None:
    """Set levels and attach the stdout and daily-file handlers to the root logger.

    Levels are applied on every call; handlers only once, and never when the
    host (pytest, Streamlit) has already given the root logger handlers.
    ``to_file`` defaults to on unless ``CAREER_AGENT_NO_LOG_FILE`` is set.
    """
    global _configured
    resolved = parse_level(level if level is not None else os.environ.get("LOG_LEVEL"))

    root = logging.getLogger()
    root.setLevel(resolved)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))

    if _configured or root.handlers:
        _configured = True
        return
    _configured = True

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(console)

    if to_file is None:
        to_file = not os.environ.get("CAREER_AGENT_NO_LOG_FILE")
    if to_file:
        handler = file_handler(log_dir)
        if handler is not None:
            root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    if not _configured:
        configure_logging()
    return logging.getLogger(name)
