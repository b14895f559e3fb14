"""Reading markdown from files and standard input."""

import sys
from pathlib import Path
from typing import Optional, TextIO

from treemd.utils.logging import get_logger


logger = get_logger(__name__)

MAX_INPUT_SIZE = 100 * 1024 * 1024
MAX_LINE_SIZE = 10 * 1024 * 1024

STDIN_PATH = "-"


class InputError(Exception):
    """Raised when input cannot be read or is unusable.

    Attributes:
        source: File path, or "<stdin>"
        message: Human-readable error message
    """

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"{message}: {source}")


def read_source(path: Optional[str] = None, stdin: Optional[TextIO] = None) -> str:
    """
    Read markdown from a file or from standard input.

    Args:
        path: File path. None or "-" reads standard input.
        stdin: Stream to use as standard input (defaults to sys.stdin)

    Returns:
        Decoded text

    Raises:
        InputError: If the input is missing, too large, has an overlong line,
                    is not UTF-8, or standard input is empty
    """
    if path is None or path == STDIN_PATH:
        return _read_stream(stdin if stdin is not None else sys.stdin, require_pipe=path is None)
    return _read_file(Path(path))


def _read_file(path: Path) -> str:
    try:
        size = path.stat().st_size
        if size > MAX_INPUT_SIZE:
            raise InputError(str(path), f"Input too large: {size} bytes (max {_max_mb()} MB)")
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise InputError(str(path), "Invalid UTF-8 in input") from e
    except OSError as e:
        raise InputError(str(path), f"I/O error: {e.strerror or e}") from e

    for line in text.splitlines():
        _check_line(str(path), line)

    # An empty file is a valid (if empty) document; process_input wraps it
    logger.debug("file_read", path=str(path), size=len(text))
    return text


def _read_stream(stream: TextIO, require_pipe: bool) -> str:
    if require_pipe and stream.isatty():
        raise InputError("<stdin>", "No file specified and stdin is not being piped")

    chunks = []
    total = 0
    try:
        while True:
            # Bounded read so one unterminated line cannot exhaust memory
            line = stream.readline(MAX_LINE_SIZE + 1)
            if not line:
                break
            _check_line("<stdin>", line.rstrip("\r\n"))
            total += len(line.encode("utf-8"))
            if total > MAX_INPUT_SIZE:
                raise InputError("<stdin>", f"Input too large: {total} bytes (max {_max_mb()} MB)")
            chunks.append(line)
    except UnicodeDecodeError as e:
        raise InputError("<stdin>", "Invalid UTF-8 in input") from e

    text = "".join(chunks)
    if not text:
        raise InputError("<stdin>", "Empty input provided")

    logger.debug("stdin_read", size=len(text))
    return text


def _check_line(source: str, line: str) -> None:
    size = len(line.encode("utf-8"))
    if size > MAX_LINE_SIZE:
        raise InputError(
            source, f"Line too long: {size} bytes (max {MAX_LINE_SIZE // (1024 * 1024)} MB)"
        )


def _max_mb() -> int:
    return MAX_INPUT_SIZE // (1024 * 1024)


def process_input(text: str) -> str:
    """
    Make sure the input has a heading structure to navigate.

    Text with no line starting with "#" is treated as plain text and wrapped
    under a top-level "Input" heading. Markdown is returned unchanged.

    Args:
        text: Raw input text

    Returns:
        Markdown text

    Example:
        >>> process_input("just a note")
        '# Input\\n\\njust a note'
    """
    if text.lstrip().startswith("#") or "\n#" in text:
        return text

    logger.warning("input_wrapped", reason="no_headings")
    return "# Input\n\n" + text
