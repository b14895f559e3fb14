"""AST node types for parsed queries.

A query is a ``Pipeline`` of stages separated by ``|``. Every node records the
character offset where it starts in the query string.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class ElementKind(Enum):
    """Element kinds addressable by a selector."""

    HEADING = "h"
    CODE = "code"
    LINK = "link"
    IMAGE = "img"
    TABLE = "table"
    CHECKBOX = "checkbox"


class Axis(Enum):
    """Hierarchy operator."""

    CHILD = ">"
    DESCENDANT = ">>"


@dataclass(frozen=True)
class IndexFilter:
    """``[N]``: single element by position (negative counts from the end)."""

    index: int


@dataclass(frozen=True)
class SliceFilter:
    """``[A:B]``: half-open range with Python-style clamping."""

    start: Optional[int]
    stop: Optional[int]


@dataclass(frozen=True)
class TextFilter:
    """``[word]`` (fuzzy substring) or ``["text"]`` (exact)."""

    text: str
    exact: bool = False


Filter = Union[IndexFilter, SliceFilter, TextFilter]


@dataclass(frozen=True)
class Selector:
    """``.h2[install]`` and friends.

    Attributes:
        kind: Element kind to select
        level: Heading level for ``.h1``-``.h6`` (None matches any level)
        filters: Filters applied in order to the selected sequence
    """

    kind: ElementKind
    level: Optional[int] = None
    filters: tuple[Filter, ...] = ()
    offset: int = 0

    def matches_level(self, level: int) -> bool:
        return self.level is None or self.level == level


@dataclass(frozen=True)
class Root:
    """``.``: the whole document."""

    offset: int = 0


@dataclass(frozen=True)
class Hierarchy:
    """``left > right`` or ``left >> right``."""

    left: Union[Selector, "Hierarchy"]
    axis: Axis
    right: Selector
    offset: int = 0


@dataclass(frozen=True)
class FunctionCall:
    """``name`` or ``name(arg, ...)``.

    Arguments are integers, strings, or nested calls (``select(contains("x"))``).
    """

    name: str
    args: tuple["Argument", ...] = ()
    offset: int = 0


Argument = Union[int, str, FunctionCall]


@dataclass(frozen=True)
class BracketWrap:
    """``[pipeline]``: evaluate and materialize into a single list."""

    pipeline: "Pipeline"
    offset: int = 0


Stage = Union[Selector, Root, Hierarchy, FunctionCall, BracketWrap]


@dataclass(frozen=True)
class Pipeline:
    """Stages joined by ``|``, evaluated left to right."""

    stages: tuple[Stage, ...]
