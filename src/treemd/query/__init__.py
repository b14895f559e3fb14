"""Query language for navigating and extracting markdown structure.

A jq-like pipeline over a parsed ``markdown_outline.Document``::

    .h2                      all level-2 headings
    .h2[install]             ...whose text contains "install" (case-insensitive)
    .h2["Install"]           ...whose text is exactly "Install" (case-insensitive)
    .h2[0] / .h2[-1] / .h2[1:3]
    .h1 > .h2                level-2 children of each level-1 heading
    .h1 >> .code             code blocks anywhere in each level-1 section
    .code | lang             language of each code block
    [.h2] | count            number of level-2 headings
    [.link] | group_by(kind) links grouped by link kind
    . | stats                element counts for the whole document

Example:
    >>> from markdown_outline import Document
    >>> from treemd import query
    >>> doc = Document.parse("# A\\n## B\\n## C")
    >>> query.serialize(query.execute(doc, ".h1 > .h2 | text"), query.OutputFormat.PLAIN)
    'B\\nC'
"""

from markdown_outline import Document

from treemd.query.ast import Pipeline
from treemd.query.errors import EvalError, EvalErrorKind, ParseError, QueryError
from treemd.query.evaluator import evaluate
from treemd.query.functions import FUNCTIONS
from treemd.query.output import OutputFormat, serialize, to_json
from treemd.query.parser import parse
from treemd.query.values import (
    UNTAGGED,
    ElementRef,
    ListValue,
    MapValue,
    Scalar,
    Value,
)


def execute(doc: Document, query: str) -> Value:
    """Parse and evaluate a query against a document.

    Raises:
        ParseError: If the query is malformed
        EvalError: If a stage is applied to an incompatible value
    """
    return evaluate(parse(query), doc)


__all__ = [
    "FUNCTIONS",
    "UNTAGGED",
    "ElementRef",
    "EvalError",
    "EvalErrorKind",
    "ListValue",
    "MapValue",
    "OutputFormat",
    "ParseError",
    "Pipeline",
    "QueryError",
    "Scalar",
    "Value",
    "evaluate",
    "execute",
    "parse",
    "serialize",
    "to_json",
]
