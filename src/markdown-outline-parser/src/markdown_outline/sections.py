"""Section lookup and extraction by heading name."""

from markdown_outline.elements import Heading
from markdown_outline.parser import Document


class SectionNotFoundError(LookupError):
    """Raised when no heading matches a section name.

    Attributes:
        name: The section name that was looked up
    """

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Section not found: {name!r}")


def find_section(doc: Document, name: str) -> Heading:
    """Find the heading for a section name.

    Matching is case-insensitive: exact equality (ignoring surrounding
    whitespace) wins over substring containment. When several headings
    match at the same tier, the first in document order is returned.

    Args:
        doc: Parsed document
        name: Section name to look for

    Returns:
        Matching heading

    Raises:
        SectionNotFoundError: If no heading matches, or the name is blank
    """
    needle = name.strip().lower()
    if not needle:
        raise SectionNotFoundError(name)

    for heading in doc.headings:
        if heading.text.strip().lower() == needle:
            return heading

    for heading in doc.headings:
        if needle in heading.text.lower():
            return heading

    raise SectionNotFoundError(name)


def extract_section(doc: Document, name: str) -> str:
    """Return the raw source of the named section, heading line included."""
    return doc.section_text(find_section(doc, name))
