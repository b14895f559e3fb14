"""Runtime values produced by query evaluation.

A value is one of four variants:

- ``ElementRef``: reference to an element (or the whole Document), never a copy
- ``Scalar``: string, number or boolean
- ``ListValue``: ordered sequence, tagged as a stream (bare selector output)
  or materialized (``[...]``-wrapped) list
- ``MapValue``: insertion-ordered mapping from string keys to values
"""

from dataclasses import dataclass, field
from typing import Any, Union

from markdown_outline import (
    Checkbox,
    CodeBlock,
    Document,
    Heading,
    Image,
    Link,
    LinkKind,
    Table,
)


# Reported as the language of fences without an info string
UNTAGGED = "(none)"

_KIND_NAMES = {
    Heading: "heading",
    CodeBlock: "code",
    Link: "link",
    Image: "image",
    Table: "table",
    Checkbox: "checkbox",
    Document: "document",
}


@dataclass(frozen=True)
class ElementRef:
    """Reference to a document element or to the document itself."""

    element: Any

    @property
    def kind(self) -> str:
        return kind_name(self.element)

    @property
    def is_document(self) -> bool:
        return isinstance(self.element, Document)


@dataclass(frozen=True)
class Scalar:
    value: Union[str, int, float, bool]


@dataclass(frozen=True)
class ListValue:
    """Ordered sequence of values.

    Attributes:
        items: Values in order
        materialized: False for the stream produced by a bare selector, True
                      once wrapped in ``[...]``. Whole-collection functions
                      (``count``, ``group_by``) require a materialized list.
    """

    items: tuple["Value", ...] = ()
    materialized: bool = False

    def __len__(self) -> int:
        return len(self.items)

    def with_items(self, items) -> "ListValue":
        """Copy with new items, keeping the stream/materialized tag."""
        return ListValue(tuple(items), self.materialized)


@dataclass(frozen=True)
class MapValue:
    entries: dict[str, "Value"] = field(default_factory=dict)


Value = Union[ElementRef, Scalar, ListValue, MapValue]


def kind_name(element: Any) -> str:
    """Type name of an element ("heading", "code", "link", ...)."""
    return _KIND_NAMES[type(element)]


def text_of(element: Any) -> str:
    """Canonical textual content of an element.

    Heading text, code body, link text, image alt text, table cells (one
    line per row, cells joined with `` | ``), checkbox text, or the full
    source for the document.
    """
    if isinstance(element, Heading):
        return element.text
    if isinstance(element, CodeBlock):
        return element.content
    if isinstance(element, Link):
        return element.text
    if isinstance(element, Image):
        return element.alt
    if isinstance(element, Table):
        return "\n".join(" | ".join(row) for row in (element.headers, *element.rows))
    if isinstance(element, Checkbox):
        return element.text
    return element.source


def match_key(element: Any) -> str:
    """Text that bracket filters (``[word]`` / ``["text"]``) match against."""
    if isinstance(element, CodeBlock):
        return element.language or ""
    if isinstance(element, Table):
        return " | ".join(element.headers)
    return text_of(element)


def fields_of(element: Any) -> dict[str, Any]:
    """Fixed field set of an element, as used for JSON output and ``group_by``."""
    if isinstance(element, Heading):
        return {"level": element.level, "text": element.text, "slug": element.slug}
    if isinstance(element, CodeBlock):
        return {"language": element.language, "content": element.content}
    if isinstance(element, Link):
        return {"text": element.text, "url": element.url, "kind": element.kind.value}
    if isinstance(element, Image):
        return {"alt": element.alt, "url": element.url}
    if isinstance(element, Table):
        return {
            "headers": list(element.headers),
            "rows": [list(row) for row in element.rows],
        }
    if isinstance(element, Checkbox):
        return {"checked": element.checked, "text": element.text}
    return {"headings": len(element.headings), "length": len(element.source)}


def plain_form(element: Any) -> str:
    """Markdown-like single-element rendering used by plain output."""
    if isinstance(element, Heading):
        return f"{'#' * element.level} {element.text}"
    if isinstance(element, Link):
        if element.kind is LinkKind.WIKILINK:
            if element.text == element.url:
                return f"[[{element.url}]]"
            return f"[[{element.url}|{element.text}]]"
        return f"[{element.text}]({element.url})"
    if isinstance(element, Image):
        return f"![{element.alt}]({element.url})"
    if isinstance(element, Checkbox):
        return f"[{'x' if element.checked else ' '}] {element.text}"
    return text_of(element)
