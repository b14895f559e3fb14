"""Exceptions raised by the query engine."""

from enum import Enum


class QueryError(Exception):
    """Base class for query parse and evaluation errors."""


class ParseError(QueryError):
    """Raised when a query string is malformed.

    Attributes:
        offset: Character offset in the query where the problem was found
        message: Human-readable description
    """

    def __init__(self, offset: int, message: str):
        self.offset = offset
        self.message = message
        super().__init__(f"{message} (at position {offset})")


class EvalErrorKind(Enum):
    """Category of evaluation failure."""

    WRONG_KIND = "wrong_kind"  # function/operator applied to an incompatible value
    ARITY_MISMATCH = "arity_mismatch"  # wrong number of arguments
    BAD_ARGUMENT = "bad_argument"  # argument of the right count but unusable value
    BAD_FORMAT = "bad_format"  # output format can't represent the value


class EvalError(QueryError):
    """Raised when a parsed query can't be applied to its input.

    Empty results are never errors; this only signals shape/type mismatches.

    Attributes:
        kind: Failure category
        message: Human-readable description
    """

    def __init__(self, kind: EvalErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(message)
