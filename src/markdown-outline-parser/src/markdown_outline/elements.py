"""Element types produced by the markdown outline parser.

Every element is a frozen dataclass. Offsets in ``span`` are string indices
into ``Document.source`` (half-open ``(start, end)``), and ``heading`` is the
arena index of the nearest enclosing heading (``None`` for content that comes
before the first heading).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


Span = tuple[int, int]


class LinkKind(Enum):
    """Classification of a link target."""

    ANCHOR = "anchor"  # "#section"
    FILE = "file"  # relative path that resolves on disk
    WIKILINK = "wikilink"  # [[target]] / [[target|label]]
    EXTERNAL = "external"  # anything else (URLs, mailto:, ...)


@dataclass(frozen=True)
class Heading:
    """ATX heading with its position in the heading arena.

    Attributes:
        index: Position of this heading in ``Document.headings``
        level: Heading level (1-6)
        text: Heading text with markers and closing hashes removed
        slug: Document-unique slug
        span: Full section span (heading line up to the next heading of
              equal or shallower level)
        line: 0-based line number of the heading line
        parent: Arena index of the parent heading (None for top-level)
        children: Arena indices of direct child headings, in document order
    """

    index: int
    level: int
    text: str
    slug: str
    span: Span
    line: int
    parent: Optional[int] = None
    children: tuple[int, ...] = ()

    def contains(self, offset: int) -> bool:
        """Check whether a source offset falls inside this heading's section."""
        start, end = self.span
        return start <= offset < end


@dataclass(frozen=True)
class CodeBlock:
    """Fenced code block.

    ``language`` keeps its original case; use ``language_key`` for matching.
    """

    language: Optional[str]
    content: str
    span: Span
    heading: Optional[int] = None

    @property
    def language_key(self) -> Optional[str]:
        return self.language.lower() if self.language else None


@dataclass(frozen=True)
class Link:
    """Inline link or wikilink."""

    text: str
    url: str
    kind: LinkKind
    span: Span
    heading: Optional[int] = None


@dataclass(frozen=True)
class Image:
    """Inline image."""

    alt: str
    url: str
    span: Span
    heading: Optional[int] = None


@dataclass(frozen=True)
class Table:
    """Pipe table with a header row and zero or more body rows."""

    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    span: Span
    heading: Optional[int] = None


@dataclass(frozen=True)
class Checkbox:
    """Task list item (``- [ ] todo`` / ``- [x] done``)."""

    checked: bool
    text: str
    span: Span
    heading: Optional[int] = None


Element = Heading | CodeBlock | Link | Image | Table | Checkbox
