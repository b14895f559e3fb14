"""Tokenizer for the query language.

Splits a query such as ``.h1 > .h2[install] | text`` into tokens that carry
their character offsets, so the parser can report positional errors and
recover the raw text of bareword filters.
"""

from enum import Enum
from typing import NamedTuple

from treemd.query.errors import ParseError


class TokenType(Enum):
    DOT = "."
    WORD = "word"
    NUMBER = "number"
    STRING = "string"
    LBRACKET = "["
    RBRACKET = "]"
    LPAREN = "("
    RPAREN = ")"
    PIPE = "|"
    CHILD = ">"
    DESCENDANT = ">>"
    COLON = ":"
    COMMA = ","
    EOF = "end of query"


class Token(NamedTuple):
    type: TokenType
    value: str
    start: int
    end: int


_PUNCTUATION = {
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "|": TokenType.PIPE,
    ":": TokenType.COLON,
    ",": TokenType.COMMA,
}

# Characters that end a bare word
_WORD_BREAK = set("[]()|>:,") | {'"'}

_ESCAPES = {'"': '"', "'": "'", "\\": "\\", "n": "\n", "t": "\t"}


def tokenize(query: str) -> list[Token]:
    """Split a query string into tokens.

    Args:
        query: Query text

    Returns:
        Tokens in order, always terminated by an EOF token

    Raises:
        ParseError: If a quoted string is not terminated

    Examples:
        >>> [t.type.name for t in tokenize(".h2[0]")]
        ['DOT', 'WORD', 'LBRACKET', 'NUMBER', 'RBRACKET', 'EOF']
    """
    tokens = []
    pos = 0
    length = len(query)

    while pos < length:
        char = query[pos]

        if char.isspace():
            pos += 1
            continue

        if char == ">":
            if query.startswith(">>", pos):
                tokens.append(Token(TokenType.DESCENDANT, ">>", pos, pos + 2))
                pos += 2
            else:
                tokens.append(Token(TokenType.CHILD, ">", pos, pos + 1))
                pos += 1
            continue

        if char in _PUNCTUATION:
            tokens.append(Token(_PUNCTUATION[char], char, pos, pos + 1))
            pos += 1
            continue

        if char == ".":
            tokens.append(Token(TokenType.DOT, ".", pos, pos + 1))
            pos += 1
            continue

        if char in "\"'":
            token = _read_string(query, pos)
            tokens.append(token)
            pos = token.end
            continue

        end = pos + 1
        while end < length and not query[end].isspace() and query[end] not in _WORD_BREAK:
            end += 1
        word = query[pos:end]
        token_type = TokenType.NUMBER if _is_integer(word) else TokenType.WORD
        tokens.append(Token(token_type, word, pos, end))
        pos = end

    tokens.append(Token(TokenType.EOF, "", length, length))
    return tokens


def _is_integer(word: str) -> bool:
    digits = word[1:] if word.startswith("-") else word
    return digits.isascii() and digits.isdigit()


def _read_string(query: str, start: int) -> Token:
    """Read a quoted string starting at ``start`` (the opening quote)."""
    quote = query[start]
    chars = []
    pos = start + 1

    while pos < len(query):
        char = query[pos]
        if char == "\\" and pos + 1 < len(query):
            escaped = query[pos + 1]
            chars.append(_ESCAPES.get(escaped, "\\" + escaped))
            pos += 2
            continue
        if char == quote:
            return Token(TokenType.STRING, "".join(chars), start, pos + 1)
        chars.append(char)
        pos += 1

    raise ParseError(start, "Unterminated string")
