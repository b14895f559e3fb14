"""Inline scanning for links, images and wikilinks.

Works line by line on non-code content. Inline code spans are blanked out
before matching so that ``[x](y)`` inside backticks is not picked up, while
match offsets still line up with the original line.

Recognized forms:

- inline ``[text](url "title")`` and ``![alt](url)``, where ``url`` may be
  wrapped in ``<...>`` or contain one level of balanced parentheses
- reference ``[text][label]``, collapsed ``[text][]`` and shortcut ``[text]``
  (and the image equivalents), resolved against ``[label]: url`` definitions
- wikilinks ``[[target]]`` and ``[[target|label]]``
"""

import re
from pathlib import Path
from typing import Iterator, Mapping, NamedTuple, Optional

from markdown_outline.elements import LinkKind


_CODE_SPAN = re.compile(r"(`+)(?:.+?)\1")

# Link destination: <anything but brackets> or a run without whitespace in
# which parentheses nest at most one level deep
_DESTINATION = r"(?:<(?P<{0}_angle>[^<>\n]*)>|(?P<{0}>(?:[^()\s]|\([^()\s]*\))*))"

_TITLE = r"""(?:\s+(?:"[^"\n]*"|'[^'\n]*'|\([^)\n]*\)))?"""

_INLINE = re.compile(
    r"(?P<wiki>\[\[(?P<target>[^\[\]|\n]+)(?:\|(?P<label>[^\[\]\n]+))?\]\])"
    r"|(?P<image>!\[(?P<alt>[^\]\n]*)\]\(\s*"
    + _DESTINATION.format("img_url")
    + _TITLE
    + r"\s*\))"
    r"|(?P<image_ref>!\[(?P<ref_alt>[^\]\n]*)\](?:\[(?P<img_label>[^\]\n]*)\])?)"
    r"|(?P<link>\[(?P<text>[^\]\n]*)\]\(\s*"
    + _DESTINATION.format("url")
    + _TITLE
    + r"\s*\))"
    r"|(?P<link_ref>\[(?P<ref_text>[^\]\n]*)\](?:\[(?P<link_label>[^\]\n]*)\])?)"
)

_REFERENCE_DEFINITION = re.compile(
    r"""^ {0,3}\[(?P<label>[^\]\n]*\S[^\]\n]*)\]:[ \t]*"""
    r"""(?:<(?P<angle>[^<>\n]*)>|(?P<url>\S+))"""
    r"""(?:[ \t]+(?:"[^"\n]*"|'[^'\n]*'|\([^)\n]*\)))?[ \t]*$"""
)

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")

_WHITESPACE = re.compile(r"\s+")


class InlineMatch(NamedTuple):
    """One link-like construct found in a line.

    ``kind`` is ``"link"``, ``"image"`` or ``"wiki"``; ``start``/``end`` are
    offsets within the scanned line.
    """

    kind: str
    text: str
    url: str
    start: int
    end: int


def normalize_label(label: str) -> str:
    """Reference labels match case-insensitively with whitespace collapsed."""
    return _WHITESPACE.sub(" ", label.strip()).lower()


def parse_reference_definition(line: str) -> Optional[tuple[str, str]]:
    """Parse a ``[label]: url "title"`` line.

    Returns:
        ``(normalized label, url)``, or None if the line is not a definition

    Examples:
        >>> parse_reference_definition("[Docs]: https://example.com 'Docs'")
        ('docs', 'https://example.com')
    """
    match = _REFERENCE_DEFINITION.match(line)
    if not match:
        return None
    url = match.group("angle") if match.group("angle") is not None else match.group("url")
    return normalize_label(match.group("label")), url


def mask_code_spans(line: str) -> str:
    """Replace inline code spans with spaces, preserving offsets."""
    return _CODE_SPAN.sub(lambda m: " " * len(m.group(0)), line)


def _destination(match: re.Match, name: str) -> str:
    angle = match.group(f"{name}_angle")
    return angle if angle is not None else match.group(name)


def _resolve(
    references: Mapping[str, str], text: str, label: Optional[str]
) -> Optional[str]:
    # Collapsed "[text][]" and shortcut "[text]" use the text as label
    key = normalize_label(label if label else text)
    if not key:
        return None
    return references.get(key)


def scan_inline(
    line: str, references: Optional[Mapping[str, str]] = None
) -> Iterator[InlineMatch]:
    """Yield links, images and wikilinks in a line, left to right.

    Args:
        line: Source line without its terminator
        references: Normalized reference labels mapped to URLs. Reference
                    forms whose label is not defined are plain text.
    """
    references = references or {}
    for match in _INLINE.finditer(mask_code_spans(line)):
        if match.group("wiki"):
            target = match.group("target").strip()
            label = match.group("label")
            yield InlineMatch(
                "wiki",
                label.strip() if label else target,
                target,
                match.start(),
                match.end(),
            )
        elif match.group("image"):
            yield InlineMatch(
                "image",
                match.group("alt"),
                _destination(match, "img_url"),
                match.start(),
                match.end(),
            )
        elif match.group("image_ref"):
            url = _resolve(references, match.group("ref_alt"), match.group("img_label"))
            if url is not None:
                yield InlineMatch(
                    "image", match.group("ref_alt"), url, match.start(), match.end()
                )
        elif match.group("link"):
            yield InlineMatch(
                "link",
                match.group("text"),
                _destination(match, "url"),
                match.start(),
                match.end(),
            )
        else:
            url = _resolve(references, match.group("ref_text"), match.group("link_label"))
            if url is not None:
                yield InlineMatch(
                    "link", match.group("ref_text"), url, match.start(), match.end()
                )


def classify_link(url: str, base_dir: Optional[Path] = None) -> LinkKind:
    """Classify a markdown link target by its shape.

    Args:
        url: Link destination as written
        base_dir: Directory of the source document. When given, relative
                  targets are only FILE if they exist on disk.

    Returns:
        ANCHOR for ``#fragment``, EXTERNAL for URLs with a scheme or ``//host``,
        FILE for relative paths (existing ones, when ``base_dir`` is known),
        EXTERNAL otherwise.
    """
    if url.startswith("#"):
        return LinkKind.ANCHOR
    if not url or _SCHEME.match(url) or url.startswith("//"):
        return LinkKind.EXTERNAL

    if base_dir is None:
        return LinkKind.FILE

    path_part = url.split("#", 1)[0].split("?", 1)[0]
    if path_part and (base_dir / path_part).exists():
        return LinkKind.FILE
    return LinkKind.EXTERNAL
