"""Structured logging setup for treemd.

Events are written as JSON lines to ``~/.cache/treemd/logs/treemd.log``.
The log file is opened once per path and shared by every logger; calling
``configure_logging()`` again (each CLI invocation does) reuses the open
handle unless HOME moved, in which case the old handle is closed first.
"""

import atexit
import os
from pathlib import Path
from typing import Any, Optional, TextIO

import structlog


LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
DEFAULT_LEVEL = "INFO"

_log_path: Optional[Path] = None
_log_handle: Optional[TextIO] = None


def log_file_path() -> Path:
    """Location of the JSON log file under the current HOME."""
    return Path.home() / ".cache" / "treemd" / "logs" / "treemd.log"


def resolve_level(value: Optional[str]) -> str:
    """
    Normalize a TREEMD_LOG_LEVEL value.

    Unknown or missing values fall back to INFO.

    Examples:
        >>> resolve_level("debug")
        'DEBUG'
        >>> resolve_level("chatty")
        'INFO'
    """
    level = (value or DEFAULT_LEVEL).strip().upper()
    return level if level in LEVELS else DEFAULT_LEVEL


def _log_stream(path: Path) -> TextIO:
    global _log_path, _log_handle

    if _log_handle is not None and not _log_handle.closed and _log_path == path:
        return _log_handle

    close_logging()
    path.parent.mkdir(parents=True, exist_ok=True)
    _log_handle = open(path, "a", encoding="utf-8")
    _log_path = path
    return _log_handle


def close_logging() -> None:
    """Close the shared log file handle, if one is open."""
    global _log_path, _log_handle

    if _log_handle is not None and not _log_handle.closed:
        _log_handle.close()
    _log_handle = None
    _log_path = None


atexit.register(close_logging)


def configure_logging() -> None:
    """
    Configure structlog for JSON logging to ~/.cache/treemd/logs/treemd.log.

    Log level is controlled via the TREEMD_LOG_LEVEL environment variable
    (DEBUG, INFO, WARNING or ERROR; defaults to INFO).

    Log levels:
    - DEBUG: Parsed pipelines, cache hits, result sizes
    - INFO: Command invocations, documents loaded, config loaded
    - WARNING: Inputs wrapped or degraded
    - ERROR: Parse, evaluation and input failures

    Example:
        export TREEMD_LOG_LEVEL=DEBUG
        treemd query '.h2 | text' README.md
        tail -f ~/.cache/treemd/logs/treemd.log | jq .
    """
    stream = _log_stream(log_file_path())
    level = resolve_level(os.environ.get("TREEMD_LOG_LEVEL"))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=stream),
        # Module-level loggers must pick up reconfiguration (new level or file)
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of calling module)

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("query_executed", query=".h2 | text", results=3)
    """
    return structlog.get_logger(name)
