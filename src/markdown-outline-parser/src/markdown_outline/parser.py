"""Markdown parser for heading-structured documents.

This module turns markdown text into a ``Document``: an arena of ATX headings
nested by level, plus the code blocks, links, images, tables and task
checkboxes found in each heading's section. Parsing never fails; constructs
that don't fit the grammar are treated as plain text.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, NamedTuple, Optional

from markdown_outline.elements import (
    Checkbox,
    CodeBlock,
    Heading,
    Image,
    Link,
    LinkKind,
    Table,
)
from markdown_outline.inline import (
    classify_link,
    parse_reference_definition,
    scan_inline,
)
from markdown_outline.slugs import unique_slugs


_LINE = re.compile(r"[^\n]*\n|[^\n]+")
_HEADING = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")
_FENCE_OPEN = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_FENCE_CLOSE = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})[ \t]*$")
_TABLE_DELIMITER = re.compile(r"^\s*\|?\s*:?-+:?\s*(?:\|\s*:?-+:?\s*)*\|?\s*$")
_CHECKBOX = re.compile(
    r"^\s*(?:[-*+]|\d{1,9}[.)])[ \t]+\[(?P<mark>[ xX])\](?:[ \t]+(?P<text>.*))?$"
)
_CELL_SPLIT = re.compile(r"(?<!\\)\|")
_LIST_ITEM = re.compile(r"^\s*(?:[-*+]|\d{1,9}[.)])(?:[ \t]|$)")


class _Line(NamedTuple):
    """A source line without its line terminator."""

    start: int  # offset of first character
    end: int  # offset just past the newline (if any)
    text: str


class _RawHeading(NamedTuple):
    level: int
    text: str
    start: int
    line: int


@dataclass(frozen=True)
class Document:
    """Parsed markdown document.

    Immutable once built. Headings live in a flat arena (``headings``) in
    document order; the tree is expressed through ``Heading.parent`` and
    ``Heading.children`` indices into that arena.

    Attributes:
        source: Original markdown text
        headings: Every heading in document order
        code_blocks: Fenced code blocks in document order
        links: Links and wikilinks in document order
        images: Images in document order
        tables: Pipe tables in document order
        checkboxes: Task list items in document order
    """

    source: str
    headings: tuple[Heading, ...] = ()
    code_blocks: tuple[CodeBlock, ...] = ()
    links: tuple[Link, ...] = ()
    images: tuple[Image, ...] = ()
    tables: tuple[Table, ...] = ()
    checkboxes: tuple[Checkbox, ...] = ()
    base_dir: Optional[Path] = field(default=None, compare=False)

    @classmethod
    def parse(cls, markdown: str, base_dir: Optional[Path] = None) -> "Document":
        """Parse markdown into a Document.

        Args:
            markdown: Markdown source text
            base_dir: Directory used to resolve relative link targets.
                      When None, relative links are classified as files
                      without touching the filesystem.

        Returns:
            Parsed Document
        """
        return _Builder(markdown, base_dir).build()

    @property
    def roots(self) -> tuple[Heading, ...]:
        """Top-level headings (headings without a parent)."""
        return tuple(h for h in self.headings if h.parent is None)

    @property
    def preamble(self) -> str:
        """Source text before the first heading."""
        if not self.headings:
            return self.source
        return self.source[: self.headings[0].span[0]]

    def children_of(self, heading: Heading) -> tuple[Heading, ...]:
        return tuple(self.headings[i] for i in heading.children)

    def parent_of(self, heading: Heading) -> Optional[Heading]:
        if heading.parent is None:
            return None
        return self.headings[heading.parent]

    def section_text(self, heading: Heading) -> str:
        """Raw source of a heading's full section (unmodified formatting)."""
        start, end = heading.span
        return self.source[start:end]

    def walk(self) -> Iterator[Heading]:
        """Pre-order traversal of the heading forest.

        Because children are always later in the document than their parent
        and earlier than the parent's next sibling, this reproduces document
        order.
        """

        def visit(heading: Heading) -> Iterator[Heading]:
            yield heading
            for child in self.children_of(heading):
                yield from visit(child)

        for root in self.roots:
            yield from visit(root)


def build(source: str, base_dir: Optional[Path] = None) -> Document:
    """Build a Document from markdown source. Never raises."""
    return Document.parse(source, base_dir=base_dir)


def split_table_row(line: str) -> list[str]:
    """Split a pipe table row into trimmed cells.

    Leading and trailing pipes are optional; ``\\|`` is a literal pipe.

    Examples:
        >>> split_table_row("| a | b |")
        ['a', 'b']
        >>> split_table_row("x \\\\| y | z")
        ['x | y', 'z']
    """
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|") and not stripped.endswith("\\|"):
        stripped = stripped[:-1]
    return [cell.strip().replace("\\|", "|") for cell in _CELL_SPLIT.split(stripped)]


def _open_fence(text: str) -> Optional[re.Match]:
    match = _FENCE_OPEN.match(text)
    # Backtick fences cannot carry backticks in their info string
    if match and match.group("fence")[0] == "`" and "`" in match.group("info"):
        return None
    return match


def _indent_width(text: str) -> int:
    """Leading indentation in columns, tabs advancing to the next multiple of 4."""
    width = 0
    for char in text:
        if char == " ":
            width += 1
        elif char == "\t":
            width += 4 - width % 4
        else:
            break
    return width


class _Builder:
    """Line scanner that collects headings and leaf elements.

    A first pass collects link reference definitions (they may appear after
    the links that use them); the second pass recognizes everything else.
    """

    def __init__(self, source: str, base_dir: Optional[Path]):
        self.source = source
        self.base_dir = base_dir
        self.lines = [
            _Line(m.start(), m.end(), m.group(0).rstrip("\n").rstrip("\r"))
            for m in _LINE.finditer(source)
        ]
        self.raw_headings: list[_RawHeading] = []
        self.code_blocks: list[CodeBlock] = []
        self.links: list[Link] = []
        self.images: list[Image] = []
        self.tables: list[Table] = []
        self.checkboxes: list[Checkbox] = []
        self.references: dict[str, str] = {}
        self.definition_lines: set[int] = set()

    @property
    def current_heading(self) -> Optional[int]:
        return len(self.raw_headings) - 1 if self.raw_headings else None

    def build(self) -> Document:
        self._collect_references()

        # Indented code may only start after a blank line or block boundary,
        # and never inside a list (where indentation means continuation)
        can_start_indented = True
        in_list = False

        i = 0
        while i < len(self.lines):
            line = self.lines[i]

            fence = _open_fence(line.text)
            if fence:
                i = self._consume_fence(i, fence.group("fence"), fence.group("info"))
                can_start_indented, in_list = True, False
                continue

            if not line.text.strip():
                can_start_indented = True
                i += 1
                continue

            if can_start_indented and not in_list and _indent_width(line.text) >= 4:
                i = self._skip_indented_code(i)
                continue

            if i in self.definition_lines:
                can_start_indented = True
                i += 1
                continue

            heading = _HEADING.match(line.text)
            if heading:
                self.raw_headings.append(
                    _RawHeading(
                        level=len(heading.group(1)),
                        text=(heading.group(2) or "").strip(),
                        start=line.start,
                        line=i,
                    )
                )
                self._scan_inline(line)
                can_start_indented, in_list = True, False
                i += 1
                continue

            if self._is_table_start(i):
                i = self._consume_table(i)
                can_start_indented, in_list = True, False
                continue

            checkbox = _CHECKBOX.match(line.text)
            if checkbox:
                self.checkboxes.append(
                    Checkbox(
                        checked=checkbox.group("mark") in "xX",
                        text=(checkbox.group("text") or "").strip(),
                        span=(line.start, line.start + len(line.text)),
                        heading=self.current_heading,
                    )
                )

            if _LIST_ITEM.match(line.text):
                in_list = True
            elif _indent_width(line.text) < 2:
                in_list = False
            can_start_indented = False

            self._scan_inline(line)
            i += 1

        return Document(
            source=self.source,
            headings=self._build_headings(),
            code_blocks=tuple(self.code_blocks),
            links=tuple(self.links),
            images=tuple(self.images),
            tables=tuple(self.tables),
            checkboxes=tuple(self.checkboxes),
            base_dir=self.base_dir,
        )

    def _collect_references(self) -> None:
        """Record ``[label]: url`` definitions outside fences; first one wins."""
        i = 0
        while i < len(self.lines):
            fence = _open_fence(self.lines[i].text)
            if fence:
                close = self._find_fence_close(i, fence.group("fence"))
                i = len(self.lines) if close is None else close + 1
                continue

            definition = parse_reference_definition(self.lines[i].text)
            if definition:
                label, url = definition
                self.references.setdefault(label, url)
                self.definition_lines.add(i)
            i += 1

    def _find_fence_close(self, i: int, opener: str) -> Optional[int]:
        """Index of the line closing the fence opened at line i, if any."""
        for j in range(i + 1, len(self.lines)):
            close = _FENCE_CLOSE.match(self.lines[j].text)
            if (
                close
                and close.group("fence")[0] == opener[0]
                and len(close.group("fence")) >= len(opener)
            ):
                return j
        return None

    def _consume_fence(self, i: int, opener: str, info: str) -> int:
        """Collect a fenced code block starting at line i.

        Returns:
            Index of the first line after the block
        """
        start = self.lines[i].start
        close = self._find_fence_close(i, opener)

        if close is not None:
            body = self.lines[i + 1 : close]
            end = self.lines[close].start + len(self.lines[close].text)
            next_line = close + 1
        else:
            # Unterminated fence runs to end of document
            body = self.lines[i + 1 :]
            end = len(self.source)
            next_line = len(self.lines)

        words = info.strip().split()
        self.code_blocks.append(
            CodeBlock(
                language=words[0] if words else None,
                content="\n".join(line.text for line in body),
                span=(start, end),
                heading=self.current_heading,
            )
        )
        return next_line

    def _skip_indented_code(self, i: int) -> int:
        """Skip an indented code block; its lines hold no elements."""
        j = i + 1
        while j < len(self.lines):
            text = self.lines[j].text
            if text.strip() and _indent_width(text) < 4:
                break
            j += 1
        return j

    def _is_table_start(self, i: int) -> bool:
        if i + 1 >= len(self.lines):
            return False
        header = self.lines[i].text
        delimiter = self.lines[i + 1].text
        if "|" not in header or not _TABLE_DELIMITER.match(delimiter):
            return False
        return len(split_table_row(header)) == len(split_table_row(delimiter))

    def _consume_table(self, i: int) -> int:
        """Collect a pipe table starting at line i; returns the next line index."""
        headers = tuple(split_table_row(self.lines[i].text))
        width = len(headers)
        rows = []
        self._scan_inline(self.lines[i])

        j = i + 2
        while j < len(self.lines):
            text = self.lines[j].text
            if (
                not text.strip()
                or "|" not in text
                or _HEADING.match(text)
                or _FENCE_OPEN.match(text)
            ):
                break
            cells = split_table_row(text)[:width]
            cells += [""] * (width - len(cells))
            rows.append(tuple(cells))
            self._scan_inline(self.lines[j])
            j += 1

        last = self.lines[j - 1]
        self.tables.append(
            Table(
                headers=headers,
                rows=tuple(rows),
                span=(self.lines[i].start, last.start + len(last.text)),
                heading=self.current_heading,
            )
        )
        return j

    def _scan_inline(self, line: _Line) -> None:
        for match in scan_inline(line.text, self.references):
            span = (line.start + match.start, line.start + match.end)
            if match.kind == "image":
                self.images.append(
                    Image(
                        alt=match.text,
                        url=match.url,
                        span=span,
                        heading=self.current_heading,
                    )
                )
                continue

            if match.kind == "wiki":
                kind = LinkKind.WIKILINK
            else:
                kind = classify_link(match.url, self.base_dir)
            self.links.append(
                Link(
                    text=match.text,
                    url=match.url,
                    kind=kind,
                    span=span,
                    heading=self.current_heading,
                )
            )

    def _build_headings(self) -> tuple[Heading, ...]:
        """Nest raw headings into an arena using a single stack pass.

        A heading's section ends where the next heading of equal or
        shallower level begins; that same heading is what pops it from the
        stack.
        """
        raw = self.raw_headings
        parents: list[Optional[int]] = [None] * len(raw)
        children: list[list[int]] = [[] for _ in raw]
        ends = [len(self.source)] * len(raw)
        stack: list[int] = []

        for idx, heading in enumerate(raw):
            while stack and raw[stack[-1]].level >= heading.level:
                ends[stack.pop()] = heading.start
            if stack:
                parents[idx] = stack[-1]
                children[stack[-1]].append(idx)
            stack.append(idx)

        slugs = unique_slugs(h.text for h in raw)
        return tuple(
            Heading(
                index=idx,
                level=heading.level,
                text=heading.text,
                slug=slugs[idx],
                span=(heading.start, ends[idx]),
                line=heading.line,
                parent=parents[idx],
                children=tuple(children[idx]),
            )
            for idx, heading in enumerate(raw)
        )
