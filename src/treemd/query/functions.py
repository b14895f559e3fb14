"""Built-in query functions.

Every function is registered in ``FUNCTIONS`` with a fixed arity and a mode
that tells the evaluator how to apply it:

- ``ELEMENTWISE``: applied to each item of a list (or to a single value)
- ``SEQUENCE``: operates on a list as a whole; streams and materialized lists
  are both accepted
- ``AGGREGATE``: needs a materialized (``[...]``-wrapped) list
- ``ROOT``: summarizes the whole document; input must be the ``.`` root
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from markdown_outline import CodeBlock, Document, Heading, Image, Link, slugify

from treemd.query.ast import Argument, FunctionCall
from treemd.query.errors import EvalError, EvalErrorKind
from treemd.query.values import (
    UNTAGGED,
    ElementRef,
    ListValue,
    MapValue,
    Scalar,
    Value,
    fields_of,
    kind_name,
    text_of,
)


class FunctionMode(Enum):
    ELEMENTWISE = "elementwise"
    SEQUENCE = "sequence"
    AGGREGATE = "aggregate"
    ROOT = "root"


@dataclass(frozen=True)
class Function:
    """Registry entry for a built-in function.

    Attributes:
        name: Name used in queries
        arity: Exact number of arguments
        mode: How the evaluator applies the function
        impl: ``impl(value, args, doc) -> Value``. For ELEMENTWISE functions
              ``value`` is a single item; otherwise it is the whole input.
        help: One-line description
    """

    name: str
    arity: int
    mode: FunctionMode
    impl: Callable[[Value, tuple[Argument, ...], Document], Value]
    help: str = ""


def _wrong_kind(function: str, value: Value) -> EvalError:
    if isinstance(value, ElementRef):
        shape = f"a {value.kind} element"
    elif isinstance(value, Scalar):
        shape = f"a {type(value.value).__name__} value"
    elif isinstance(value, ListValue):
        shape = "a list" if value.materialized else "a stream"
    else:
        shape = "a map"
    return EvalError(EvalErrorKind.WRONG_KIND, f"{function}() cannot be applied to {shape}")


def _element(function: str, value: Value, *types) -> Any:
    """Unwrap an ElementRef of one of ``types`` or raise WRONG_KIND."""
    if isinstance(value, ElementRef) and isinstance(value.element, types):
        return value.element
    raise _wrong_kind(function, value)


def _string_input(function: str, value: Value) -> str:
    """Text of an element or a string scalar."""
    if isinstance(value, ElementRef):
        return text_of(value.element)
    if isinstance(value, Scalar) and isinstance(value.value, str):
        return value.value
    raise _wrong_kind(function, value)


def _string_arg(function: str, arg: Argument) -> str:
    if isinstance(arg, FunctionCall):
        raise EvalError(
            EvalErrorKind.BAD_ARGUMENT, f"{function}() expects a string argument"
        )
    return str(arg)


def _count_arg(function: str, arg: Argument) -> int:
    if isinstance(arg, bool) or not isinstance(arg, int) or arg < 0:
        raise EvalError(
            EvalErrorKind.BAD_ARGUMENT,
            f"{function}() expects a non-negative integer, got {arg!r}",
        )
    return arg


def _list_input(function: str, value: Value) -> ListValue:
    if isinstance(value, ListValue):
        return value
    raise _wrong_kind(function, value)


def _materialized_input(function: str, value: Value) -> ListValue:
    if isinstance(value, ListValue) and value.materialized:
        return value
    if isinstance(value, ListValue):
        raise EvalError(
            EvalErrorKind.WRONG_KIND,
            f"{function}() needs a materialized list; wrap the selector in [...]",
        )
    raise _wrong_kind(function, value)


def _document_input(function: str, value: Value) -> Document:
    if isinstance(value, ElementRef) and value.is_document:
        return value.element
    raise EvalError(
        EvalErrorKind.WRONG_KIND,
        f"{function} summarizes the whole document; use it as '. | {function}'",
    )


def group_key(value: Any) -> str:
    """Stringify a field value for use as a map key."""
    if value is None:
        return UNTAGGED
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return " | ".join(str(v) for v in value)
    return str(value)


def field_value(element: Any, name: str) -> Any:
    """Look up a ``group_by`` field on an element.

    Raises:
        EvalError: WRONG_KIND if the element has no such field
    """
    if name == "type":
        return kind_name(element)
    if name == "lang" and isinstance(element, CodeBlock):
        name = "language"
    fields = fields_of(element)
    if name not in fields:
        raise EvalError(
            EvalErrorKind.WRONG_KIND,
            f"{kind_name(element)} elements have no field '{name}'",
        )
    return fields[name]


# Element-wise functions


def _text(value, args, doc):
    if isinstance(value, Scalar):
        if isinstance(value.value, bool):
            return Scalar("true" if value.value else "false")
        return Scalar(str(value.value))
    if isinstance(value, ElementRef):
        return Scalar(text_of(value.element))
    raise _wrong_kind("text", value)


def _upper(value, args, doc):
    return Scalar(_string_input("upper", value).upper())


def _lower(value, args, doc):
    return Scalar(_string_input("lower", value).lower())


def _slugify(value, args, doc):
    return Scalar(slugify(_string_input("slugify", value)))


def _url(value, args, doc):
    return Scalar(_element("url", value, Link, Image).url)


def _lang(value, args, doc):
    return Scalar(_element("lang", value, CodeBlock).language or UNTAGGED)


def _level(value, args, doc):
    return Scalar(_element("level", value, Heading).level)


def _slug(value, args, doc):
    return Scalar(_element("slug", value, Heading).slug)


def _kind(value, args, doc):
    if isinstance(value, ElementRef) and isinstance(value.element, Link):
        return Scalar(value.element.kind.value)
    if isinstance(value, ElementRef):
        return Scalar(value.kind)
    raise _wrong_kind("kind", value)


def _content(value, args, doc):
    if not isinstance(value, ElementRef):
        raise _wrong_kind("content", value)
    element = value.element
    if isinstance(element, Document):
        return Scalar(element.source)
    if isinstance(element, CodeBlock):
        return Scalar(element.content)
    start, end = element.span
    return Scalar(doc.source[start:end])


def contains(value: Value, needle: str) -> bool:
    """Case-insensitive substring test on a value's text."""
    return needle.lower() in _string_input("contains", value).lower()


def _contains(value, args, doc):
    return Scalar(contains(value, _string_arg("contains", args[0])))


# Sequence functions


def _limit(value, args, doc):
    n = _count_arg("limit", args[0])
    items = _list_input("limit", value)
    return items.with_items(items.items[:n])


def _skip(value, args, doc):
    n = _count_arg("skip", args[0])
    items = _list_input("skip", value)
    return items.with_items(items.items[n:])


def _make_select(name: str):
    def _select(value, args, doc):
        predicate = args[0]
        if not (isinstance(predicate, FunctionCall) and predicate.name == "contains"):
            raise EvalError(
                EvalErrorKind.BAD_ARGUMENT,
                f"{name}() expects a predicate such as contains(\"text\")",
            )
        if len(predicate.args) != 1:
            raise EvalError(
                EvalErrorKind.ARITY_MISMATCH,
                f"contains() takes 1 argument, got {len(predicate.args)}",
            )
        needle = _string_arg("contains", predicate.args[0])
        items = _list_input(name, value)
        return items.with_items(item for item in items.items if contains(item, needle))

    return _select


# Aggregates


def _count(value, args, doc):
    return Scalar(len(_materialized_input("count", value)))


def _group_by(value, args, doc):
    name = _string_arg("group_by", args[0])
    items = _materialized_input("group_by", value)
    groups: dict[str, list[Value]] = {}
    for item in items.items:
        if not isinstance(item, ElementRef) or item.is_document:
            raise _wrong_kind("group_by", item)
        key = group_key(field_value(item.element, name))
        groups.setdefault(key, []).append(item)
    return MapValue(
        {key: ListValue(tuple(members), materialized=True) for key, members in groups.items()}
    )


# Root aggregators


def _stats(value, args, doc):
    document = _document_input("stats", value)
    counts = {
        "headings": len(document.headings),
        "code_blocks": len(document.code_blocks),
        "links": len(document.links),
        "images": len(document.images),
        "tables": len(document.tables),
        "checkboxes": len(document.checkboxes),
    }
    counts["total"] = sum(counts.values())
    return MapValue({key: Scalar(n) for key, n in counts.items()})


def _levels(value, args, doc):
    document = _document_input("levels", value)
    per_level = Counter(h.level for h in document.headings)
    entries: dict[str, Value] = {f"h{lvl}": Scalar(per_level[lvl]) for lvl in range(1, 7)}
    entries["total"] = Scalar(len(document.headings))
    return MapValue(entries)


def _langs(value, args, doc):
    document = _document_input("langs", value)
    per_lang = Counter(block.language_key or UNTAGGED for block in document.code_blocks)
    # Counter keeps first-seen insertion order
    return MapValue({lang: Scalar(n) for lang, n in per_lang.items()})


_E, _S, _A, _R = (
    FunctionMode.ELEMENTWISE,
    FunctionMode.SEQUENCE,
    FunctionMode.AGGREGATE,
    FunctionMode.ROOT,
)

FUNCTIONS: dict[str, Function] = {
    f.name: f
    for f in [
        Function("text", 0, _E, _text, "Text content of each element"),
        Function("upper", 0, _E, _upper, "Uppercase text"),
        Function("lower", 0, _E, _lower, "Lowercase text"),
        Function("slugify", 0, _E, _slugify, "URL-friendly slug of the text"),
        Function("url", 0, _E, _url, "Target of links and images"),
        Function("lang", 0, _E, _lang, "Language tag of code blocks"),
        Function("level", 0, _E, _level, "Heading level"),
        Function("slug", 0, _E, _slug, "Heading anchor slug"),
        Function("kind", 0, _E, _kind, "Element type (link kind for links)"),
        Function("content", 0, _E, _content, "Raw source (code body for code blocks)"),
        Function("contains", 1, _E, _contains, "Case-insensitive substring test"),
        Function("limit", 1, _S, _limit, "First n items"),
        Function("skip", 1, _S, _skip, "All but the first n items"),
        Function("select", 1, _S, _make_select("select"), "Keep items matching a predicate"),
        Function("where", 1, _S, _make_select("where"), "Synonym for select"),
        Function("count", 0, _A, _count, "Number of items in a [...] list"),
        Function("group_by", 1, _A, _group_by, "Group a [...] list by a field"),
        Function("stats", 0, _R, _stats, "Element counts per kind"),
        Function("levels", 0, _R, _levels, "Heading counts per level"),
        Function("langs", 0, _R, _langs, "Code block counts per language"),
    ]
}
