"""Tokenizer for ``{{...}}`` template directives.

The lexer only splits a document into literal text and directive markers;
it never interprets what a directive means. Anything outside ``{{ }}``
(including bare ``@agent-os/...`` references) passes through as text.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

OPEN = "{{"
CLOSE = "}}"


class TokenKind(str, Enum):
    """Kinds of lexer tokens."""

    TEXT = "text"
    DIRECTIVE = "directive"


@dataclass(frozen=True)
class Position:
    """1-based line and column of a token in its source document."""

    line: int
    column: int

    def as_tuple(self) -> tuple[int, int]:
        return (self.line, self.column)

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Token:
    """A span of literal text or the inner text of one directive."""

    kind: TokenKind
    value: str
    position: Position
    raw: str = ""
    # True when the directive is the only thing on its source line.
    standalone: bool = False


def tokenize(source: str) -> list[Token]:
    """Split ``source`` into TEXT and DIRECTIVE tokens.

    An unterminated ``{{`` is kept as literal text. Directive values are the
    trimmed inner text; ``raw`` keeps the original ``{{...}}`` spelling so an
    unexpanded directive can be emitted unchanged.
    """
    tokens: list[Token] = []
    index = 0
    line = 1
    column = 1
    text_start = 0
    text_position = Position(1, 1)

    def advance(upto: int) -> None:
        nonlocal line, column
        chunk = source[index:upto]
        newlines = chunk.count("\n")
        if newlines:
            line += newlines
            column = len(chunk) - chunk.rfind("\n")
        else:
            column += len(chunk)

    while True:
        start = source.find(OPEN, index)
        if start == -1:
            break
        end = source.find(CLOSE, start + len(OPEN))
        if end == -1:
            break

        advance(start)
        index = start
        if start > text_start:
            tokens.append(
                Token(TokenKind.TEXT, source[text_start:start], text_position),
            )

        raw = source[start:end + len(CLOSE)]
        tokens.append(
            Token(
                TokenKind.DIRECTIVE,
                raw[len(OPEN):-len(CLOSE)].strip(),
                Position(line, column),
                raw=raw,
                standalone=_is_standalone(source, start, end + len(CLOSE)),
            ),
        )
        advance(end + len(CLOSE))
        index = end + len(CLOSE)
        text_start = index
        text_position = Position(line, column)

    if text_start < len(source):
        tokens.append(Token(TokenKind.TEXT, source[text_start:], text_position))
    return tokens


def _is_standalone(source: str, start: int, end: int) -> bool:
    line_start = source.rfind("\n", 0, start) + 1
    line_end = source.find("\n", end)
    if line_end == -1:
        line_end = len(source)
    return not source[line_start:start].strip() and not source[end:line_end].strip()
