"""Slug generation for heading anchors."""

import re
from typing import Iterable


_NON_ALNUM = re.compile(r"[\W_]+")

# Used when heading text has no alphanumeric characters at all
FALLBACK_SLUG = "section"


def slugify(text: str) -> str:
    """Convert text to a URL-friendly slug.

    Lowercases, replaces every run of non-alphanumeric characters with a
    single hyphen and trims hyphens from both ends.

    Examples:
        >>> slugify("Getting Started!")
        'getting-started'
        >>> slugify("  API / v2  ")
        'api-v2'
    """
    return _NON_ALNUM.sub("-", text.lower()).strip("-")


def unique_slugs(texts: Iterable[str]) -> list[str]:
    """Assign a document-unique slug to each heading text, in order.

    The first occurrence of a base slug is used as-is; later collisions get
    ``-1``, ``-2``, ... appended. A suffixed candidate that is already taken
    (e.g. by a heading literally named "Intro 1") is skipped.

    Args:
        texts: Heading texts in document order

    Returns:
        List of slugs, one per input text, all distinct
    """
    used: set[str] = set()
    counters: dict[str, int] = {}
    slugs = []

    for text in texts:
        base = slugify(text) or FALLBACK_SLUG
        candidate = base
        if candidate in used:
            n = counters.get(base, 0)
            while candidate in used:
                n += 1
                candidate = f"{base}-{n}"
            counters[base] = n
        used.add(candidate)
        slugs.append(candidate)

    return slugs
