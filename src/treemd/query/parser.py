"""Recursive-descent parser for the query language.

Grammar (lowest precedence first)::

    pipeline  := stage ('|' stage)*
    stage     := primary (('>' | '>>') selector)*
    primary   := '[' pipeline ']' | selector | call
    selector  := '.' kind filter* | '.'
    filter    := '[' (integer | integer? ':' integer? | "string" | bareword) ']'
    call      := name ('(' (arg (',' arg)*)? ')')?
    arg       := integer | "string" | bareword | call
"""

import re
from typing import Optional

from treemd.query.ast import (
    Argument,
    Axis,
    BracketWrap,
    ElementKind,
    Filter,
    FunctionCall,
    Hierarchy,
    IndexFilter,
    Pipeline,
    Root,
    Selector,
    SliceFilter,
    Stage,
    TextFilter,
)
from treemd.query.errors import ParseError
from treemd.query.functions import FUNCTIONS
from treemd.query.lexer import Token, TokenType, tokenize


_KINDS = {
    "h": ElementKind.HEADING,
    "code": ElementKind.CODE,
    "link": ElementKind.LINK,
    "img": ElementKind.IMAGE,
    "table": ElementKind.TABLE,
    "checkbox": ElementKind.CHECKBOX,
    "task": ElementKind.CHECKBOX,
}

_HEADING_LEVEL = re.compile(r"^h(\d+)$")

_PREDICATE_FUNCTIONS = {"select", "where"}


def parse(query: str) -> Pipeline:
    """Parse a query string into a Pipeline.

    Args:
        query: Query text, e.g. ``.h1 > .h2 | text``

    Returns:
        Parsed pipeline

    Raises:
        ParseError: With the offset of the offending token
    """
    return _Parser(query, tokenize(query)).parse()


def _describe(token: Token) -> str:
    if token.type is TokenType.EOF:
        return "end of query"
    return repr(token.value)


class _Parser:
    def __init__(self, query: str, tokens: list[Token]):
        self.query = query
        self.tokens = tokens
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, ahead: int = 1) -> Token:
        return self.tokens[min(self.pos + ahead, len(self.tokens) - 1)]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.type is not TokenType.EOF:
            self.pos += 1
        return token

    def error(self, token: Token, message: str) -> ParseError:
        return ParseError(token.start, message)

    def parse(self) -> Pipeline:
        if self.current.type is TokenType.EOF:
            raise self.error(self.current, "Empty query")
        pipeline = self.parse_pipeline()
        if self.current.type is not TokenType.EOF:
            raise self.error(self.current, f"Unexpected {_describe(self.current)}")
        return pipeline

    def parse_pipeline(self) -> Pipeline:
        stages = [self.parse_stage()]
        while self.current.type is TokenType.PIPE:
            self.advance()
            stages.append(self.parse_stage())
        return Pipeline(tuple(stages))

    def parse_stage(self) -> Stage:
        token = self.current
        if token.type is TokenType.LBRACKET:
            stage = self.parse_bracket_wrap()
        elif token.type is TokenType.DOT:
            stage = self.parse_dot()
        elif token.type is TokenType.WORD:
            stage = self.parse_call()
        else:
            raise self.error(
                token, f"Expected a selector or function, found {_describe(token)}"
            )

        while self.current.type in (TokenType.CHILD, TokenType.DESCENDANT):
            operator = self.advance()
            if not isinstance(stage, (Selector, Hierarchy)):
                raise self.error(
                    operator, f"'{operator.value}' needs a selector on its left"
                )
            right_token = self.current
            if right_token.type is not TokenType.DOT:
                raise self.error(
                    right_token,
                    f"Expected a selector after '{operator.value}', found {_describe(right_token)}",
                )
            right = self.parse_dot()
            if not isinstance(right, Selector):
                raise self.error(
                    right_token, f"Expected an element selector after '{operator.value}'"
                )
            axis = Axis.CHILD if operator.type is TokenType.CHILD else Axis.DESCENDANT
            stage = Hierarchy(stage, axis, right, offset=stage.offset)

        return stage

    def parse_bracket_wrap(self) -> BracketWrap:
        opening = self.advance()
        if self.current.type is TokenType.RBRACKET:
            raise self.error(opening, "Empty brackets")
        pipeline = self.parse_pipeline()
        if self.current.type is TokenType.EOF:
            raise self.error(opening, "Unterminated '['")
        if self.current.type is not TokenType.RBRACKET:
            raise self.error(self.current, f"Expected ']', found {_describe(self.current)}")
        self.advance()
        return BracketWrap(pipeline, offset=opening.start)

    def parse_dot(self) -> Stage:
        """Parse ``.``, ``.kind[filters]`` or the property form ``.text``."""
        dot = self.advance()
        name_token = self.current
        if name_token.start != dot.end or name_token.type not in (
            TokenType.WORD,
            TokenType.NUMBER,
        ):
            return Root(offset=dot.start)

        self.advance()
        name = name_token.value
        kind, level = self._resolve_kind(name_token)
        if kind is None:
            function = FUNCTIONS.get(name)
            if function is not None and function.arity == 0:
                return FunctionCall(name, (), offset=dot.start)
            raise self.error(name_token, f"Unknown element kind '.{name}'")

        return Selector(kind, level, self.parse_filters(), offset=dot.start)

    def _resolve_kind(self, token: Token) -> tuple[Optional[ElementKind], Optional[int]]:
        if token.value in _KINDS:
            return _KINDS[token.value], None
        match = _HEADING_LEVEL.match(token.value)
        if match:
            level = int(match.group(1))
            if not 1 <= level <= 6:
                raise self.error(
                    token, f"Heading level must be between 1 and 6, got {level}"
                )
            return ElementKind.HEADING, level
        return None, None

    def parse_filters(self) -> tuple[Filter, ...]:
        filters = []
        while self.current.type is TokenType.LBRACKET:
            opening = self.advance()
            inner = []
            while self.current.type not in (TokenType.RBRACKET, TokenType.EOF):
                if self.current.type is TokenType.LBRACKET:
                    raise self.error(self.current, "Unexpected '[' inside filter")
                inner.append(self.advance())
            if self.current.type is TokenType.EOF:
                raise self.error(opening, "Unterminated '['")
            self.advance()
            filters.append(self._make_filter(opening, inner))
        return tuple(filters)

    def _make_filter(self, opening: Token, inner: list[Token]) -> Filter:
        if not inner:
            raise self.error(opening, "Empty filter")

        types = [t.type for t in inner]

        if types == [TokenType.STRING]:
            return TextFilter(inner[0].value, exact=True)
        if types == [TokenType.NUMBER]:
            return IndexFilter(int(inner[0].value))

        if TokenType.COLON in types and set(types) <= {
            TokenType.COLON,
            TokenType.NUMBER,
        }:
            colon = types.index(TokenType.COLON)
            before, after = inner[:colon], inner[colon + 1 :]
            if types.count(TokenType.COLON) > 1 or len(before) > 1 or len(after) > 1:
                raise self.error(
                    opening, "Invalid slice: expected [start:end] with at most one colon"
                )
            return SliceFilter(
                int(before[0].value) if before else None,
                int(after[0].value) if after else None,
            )

        for token in inner:
            if token.type is TokenType.STRING:
                raise self.error(
                    token, "A quoted filter must be the only thing inside '[...]'"
                )

        raw = self.query[inner[0].start : inner[-1].end].strip()
        return TextFilter(raw, exact=False)

    def parse_call(self) -> FunctionCall:
        name_token = self.advance()
        name = name_token.value
        function = FUNCTIONS.get(name)
        if function is None:
            raise self.error(name_token, f"Unknown function '{name}'")

        args: tuple[Argument, ...] = ()
        if self.current.type is TokenType.LPAREN:
            args = self.parse_args(self.advance())

        if len(args) != function.arity:
            plural = "argument" if function.arity == 1 else "arguments"
            raise self.error(
                name_token,
                f"{name}() takes {function.arity} {plural}, got {len(args)}",
            )

        if name in _PREDICATE_FUNCTIONS:
            predicate = args[0]
            if not (isinstance(predicate, FunctionCall) and predicate.name == "contains"):
                raise self.error(
                    name_token, f"{name}() expects a predicate such as contains(\"text\")"
                )

        return FunctionCall(name, args, offset=name_token.start)

    def parse_args(self, opening: Token) -> tuple[Argument, ...]:
        args: list[Argument] = []
        if self.current.type is TokenType.RPAREN:
            self.advance()
            return ()

        while True:
            token = self.current
            if token.type is TokenType.NUMBER:
                args.append(int(self.advance().value))
            elif token.type is TokenType.STRING:
                args.append(self.advance().value)
            elif token.type is TokenType.WORD and self.peek().type is TokenType.LPAREN:
                args.append(self.parse_call())
            elif token.type is TokenType.WORD:
                args.append(self.advance().value)
            elif token.type is TokenType.EOF:
                raise self.error(opening, "Unterminated '('")
            else:
                raise self.error(token, f"Unexpected {_describe(token)} in arguments")

            if self.current.type is TokenType.COMMA:
                self.advance()
            elif self.current.type is TokenType.RPAREN:
                self.advance()
                return tuple(args)
            elif self.current.type is TokenType.EOF:
                raise self.error(opening, "Unterminated '('")
            else:
                raise self.error(
                    self.current, f"Expected ',' or ')', found {_describe(self.current)}"
                )
