"""Serialization of query results.

Formats:

- ``plain``: one line per leaf value, no structural markers (for shell pipes)
- ``json`` / ``json-pretty``: structurally faithful JSON
- ``jsonl``: one compact JSON value per item of a top-level list
- ``markdown``: raw source of each element, separated by blank lines
"""

import json
from enum import Enum
from typing import Any, Iterator

from markdown_outline import Document

from treemd.query.errors import EvalError, EvalErrorKind
from treemd.query.values import (
    ElementRef,
    ListValue,
    MapValue,
    Scalar,
    Value,
    fields_of,
    plain_form,
)


class OutputFormat(Enum):
    PLAIN = "plain"
    JSON = "json"
    JSON_PRETTY = "json-pretty"
    JSONL = "jsonl"
    MARKDOWN = "markdown"

    @classmethod
    def parse(cls, name: str) -> "OutputFormat":
        """Resolve a format name, accepting common aliases.

        Raises:
            ValueError: If the name is not a known format
        """
        normalized = name.strip().lower()
        if normalized in _ALIASES:
            return _ALIASES[normalized]
        raise ValueError(f"Unknown output format: {name}")


_ALIASES = {
    "plain": OutputFormat.PLAIN,
    "text": OutputFormat.PLAIN,
    "json": OutputFormat.JSON,
    "json-pretty": OutputFormat.JSON_PRETTY,
    "jsonpretty": OutputFormat.JSON_PRETTY,
    "jsonl": OutputFormat.JSONL,
    "jsonlines": OutputFormat.JSONL,
    "ndjson": OutputFormat.JSONL,
    "md": OutputFormat.MARKDOWN,
    "markdown": OutputFormat.MARKDOWN,
}


def serialize(value: Value, fmt: OutputFormat, doc: Document | None = None) -> str:
    """Render a result value as text.

    Args:
        value: Query result
        fmt: Output format
        doc: Source document. Required for ``markdown`` output of leaf
             elements (their raw text is sliced from the source).

    Returns:
        Serialized text without a trailing newline

    Raises:
        EvalError: BAD_FORMAT when ``jsonl`` is asked for a non-list value
    """
    if fmt is OutputFormat.PLAIN:
        return "\n".join(_plain_lines(value))
    if fmt is OutputFormat.JSON:
        return json.dumps(to_json(value), ensure_ascii=False)
    if fmt is OutputFormat.JSON_PRETTY:
        return json.dumps(to_json(value), indent=2, ensure_ascii=False)
    if fmt is OutputFormat.JSONL:
        if not isinstance(value, ListValue):
            raise EvalError(
                EvalErrorKind.BAD_FORMAT, "jsonl output needs a list result"
            )
        return "\n".join(
            json.dumps(to_json(item), ensure_ascii=False) for item in value.items
        )
    return "\n\n".join(_markdown_blocks(value, doc))


def to_json(value: Value) -> Any:
    """Convert a value to JSON-compatible Python data."""
    if isinstance(value, ElementRef):
        return fields_of(value.element)
    if isinstance(value, Scalar):
        return value.value
    if isinstance(value, ListValue):
        return [to_json(item) for item in value.items]
    return {key: to_json(item) for key, item in value.entries.items()}


def _plain_lines(value: Value, key: str | None = None) -> Iterator[str]:
    prefix = f"{key}: " if key is not None else ""
    if isinstance(value, ElementRef):
        yield prefix + plain_form(value.element)
    elif isinstance(value, Scalar):
        yield prefix + _plain_scalar(value.value)
    elif isinstance(value, ListValue):
        for item in value.items:
            yield from _plain_lines(item, key)
    else:
        for entry_key, item in value.entries.items():
            yield from _plain_lines(item, entry_key)


def _plain_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _markdown_blocks(value: Value, doc: Document | None) -> Iterator[str]:
    if isinstance(value, ElementRef):
        yield _raw_source(value.element, doc)
    elif isinstance(value, ListValue):
        for item in value.items:
            yield from _markdown_blocks(item, doc)
    elif isinstance(value, MapValue):
        for item in value.entries.values():
            yield from _markdown_blocks(item, doc)
    else:
        yield _plain_scalar(value.value)


def _raw_source(element: Any, doc: Document | None) -> str:
    if isinstance(element, Document):
        return element.source.rstrip("\n")
    if doc is None:
        return plain_form(element)
    # A heading's span is its whole section
    start, end = element.span
    return doc.source[start:end].rstrip("\n")
