"""Markdown outline parser - Parse markdown into a heading tree with typed elements.

This package parses markdown into an immutable ``Document``: a forest of ATX
headings (stored as an index-based arena) plus the code blocks, links, images,
tables and task checkboxes that appear in each heading's section.

Key features:
- Heading hierarchy built from the linear sequence of heading levels
- Section spans for containment queries
- Document-unique heading slugs
- Best-effort parsing: malformed markdown degrades to plain text, never errors
- Section extraction by heading name

Example:
    >>> from markdown_outline import Document
    >>> doc = Document.parse("# Title\\n## Section\\nContent")
    >>> [h.text for h in doc.children_of(doc.roots[0])]
    ['Section']
"""

from markdown_outline.elements import (
    Checkbox,
    CodeBlock,
    Element,
    Heading,
    Image,
    Link,
    LinkKind,
    Table,
)
from markdown_outline.parser import Document, build
from markdown_outline.sections import (
    SectionNotFoundError,
    extract_section,
    find_section,
)
from markdown_outline.slugs import slugify, unique_slugs

__version__ = "0.1.0"

__all__ = [
    "Checkbox",
    "CodeBlock",
    "Document",
    "Element",
    "Heading",
    "Image",
    "Link",
    "LinkKind",
    "SectionNotFoundError",
    "Table",
    "build",
    "extract_section",
    "find_section",
    "slugify",
    "unique_slugs",
]
