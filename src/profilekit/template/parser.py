"""Recursive-descent parser turning lexer tokens into directive nodes."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Union

from ..exceptions import MalformedConditionalError
from ..patterns import NAMESPACES, is_glob
from .lexer import Position, Token, TokenKind, tokenize

TEMPLATE_SUFFIXES = (".md", ".yml", ".yaml")
RUNTIME_PREFIX = "@agent-os/"

_CONDITIONAL_RE = re.compile(r"^(IF|UNLESS|ENDIF|ENDUNLESS)\s+([A-Za-z0-9_\-]+)$")
_PHASE_RE = re.compile(r"^(PHASE\s+[^:]+?)\s*:\s*(\S+)$")
_PATH_RE = re.compile(r"^([A-Za-z0-9_\-]+)/(\S+)$")
_VARIABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]*$")

_OPENERS = {"IF": "ENDIF", "UNLESS": "ENDUNLESS"}
_CLOSERS = {"ENDIF": "IF", "ENDUNLESS": "UNLESS"}


@dataclass(frozen=True)
class Text:
    value: str
    position: Position = field(default=Position(1, 1), compare=False)


@dataclass(frozen=True)
class Include:
    """Inline (or, for lazily loadable paths, point to) another template."""

    path: str
    lazy: bool = False
    position: Position = field(default=Position(1, 1), compare=False)


@dataclass(frozen=True)
class Wildcard:
    """Inline every template matching a glob."""

    pattern: str
    position: Position = field(default=Position(1, 1), compare=False)


@dataclass(frozen=True)
class Conditional:
    """``IF``/``UNLESS`` block; ``negate`` is True for ``UNLESS``."""

    flag: str
    negate: bool
    body: tuple[Node, ...] = ()
    position: Position = field(default=Position(1, 1), compare=False)


@dataclass(frozen=True)
class PhaseEmbed:
    """Embed a command step under a ``# PHASE n: Title`` heading."""

    label: str
    path: str
    position: Position = field(default=Position(1, 1), compare=False)


@dataclass(frozen=True)
class Variable:
    """Scalar substitution; left as ``raw`` when the name is undefined."""

    name: str
    raw: str = ""
    position: Position = field(default=Position(1, 1), compare=False)


Node = Union[Text, Include, Wildcard, Conditional, PhaseEmbed, Variable]


def parse(source: str, path: str = "<string>", profile_id: str | None = None) -> list[Node]:
    """Parse a template document into a list of nodes.

    Raises:
        MalformedConditionalError: For stray, mismatched, or unclosed
            ``IF``/``UNLESS`` blocks
    """
    return _Parser(tokenize(source), path, profile_id).parse()


def to_template_path(reference: str) -> str:
    """Map a directive reference to a tree path, appending ``.md`` if needed."""
    if reference.startswith(RUNTIME_PREFIX):
        reference = reference[len(RUNTIME_PREFIX):]
    if is_glob(reference) or reference.endswith(TEMPLATE_SUFFIXES):
        return reference
    return f"{reference}.md"


class _Parser:
    def __init__(self, tokens: list[Token], path: str, profile_id: str | None) -> None:
        self.tokens = _trim_standalone_tags(tokens)
        self.path = path
        self.profile_id = profile_id
        self.index = 0

    def parse(self) -> list[Node]:
        return self._parse_block(None)

    def _parse_block(self, opener: Token | None) -> list[Node]:
        nodes: list[Node] = []
        while self.index < len(self.tokens):
            token = self.tokens[self.index]
            if token.kind is TokenKind.TEXT:
                if token.value:
                    nodes.append(Text(token.value, token.position))
                self.index += 1
                continue

            match = _CONDITIONAL_RE.match(token.value)
            if match and match.group(1) in _CLOSERS:
                if opener is None:
                    msg = f"Unexpected {{{{{token.value}}}}} without a matching opening tag"
                    raise self._error(msg, token)
                return nodes
            self.index += 1
            if match:
                nodes.append(self._parse_conditional(token, match.group(1), match.group(2)))
            else:
                nodes.append(self._classify(token))

        if opener is not None:
            msg = f"Unclosed {{{{{opener.value}}}}} block"
            raise self._error(msg, opener)
        return nodes

    def _parse_conditional(self, opener: Token, kind: str, flag: str) -> Conditional:
        body = self._parse_block(opener)
        closer = self.tokens[self.index]
        close_match = _CONDITIONAL_RE.match(closer.value)
        # _parse_block only returns early on a closing tag.
        assert close_match is not None
        close_kind, close_flag = close_match.group(1), close_match.group(2)

        if close_kind != _OPENERS[kind]:
            msg = f"{{{{{closer.value}}}}} closes {{{{{opener.value}}}}}"
            raise self._error(msg, closer)
        if close_flag != flag:
            msg = (
                f"{{{{{closer.value}}}}} does not match {{{{{opener.value}}}}} "
                f"opened at {opener.position}"
            )
            raise self._error(msg, closer)

        self.index += 1
        return Conditional(flag, kind == "UNLESS", tuple(body), opener.position)

    def _classify(self, token: Token) -> Node:
        value = token.value

        phase = _PHASE_RE.match(value)
        if phase:
            label = " ".join(phase.group(1).split())
            return PhaseEmbed(label, to_template_path(phase.group(2)), token.position)

        path_match = _PATH_RE.match(value)
        if path_match:
            reference = to_template_path(value)
            if is_glob(reference):
                return Wildcard(reference, token.position)
            if path_match.group(1) in NAMESPACES:
                lazy = reference.startswith("workflows/")
                return Include(reference, lazy, token.position)

        if _VARIABLE_RE.match(value):
            return Variable(value, token.raw, token.position)

        return Text(token.raw, token.position)

    def _error(self, message: str, token: Token) -> MalformedConditionalError:
        return MalformedConditionalError(
            message,
            path=self.path,
            profile_id=self.profile_id,
            position=token.position.as_tuple(),
        )


def _trim_standalone_tags(tokens: list[Token]) -> list[Token]:
    """Drop the line a conditional tag sits on when it is alone there.

    Keeps dropped blocks from leaving blank lines behind.
    """
    values = [t.value if t.kind is TokenKind.TEXT else None for t in tokens]
    for i, token in enumerate(tokens):
        if not (
            token.kind is TokenKind.DIRECTIVE
            and token.standalone
            and _CONDITIONAL_RE.match(token.value)
        ):
            continue
        if i > 0 and values[i - 1] is not None:
            values[i - 1] = values[i - 1].rstrip(" \t")
        if i + 1 < len(tokens) and values[i + 1] is not None:
            following = values[i + 1].lstrip(" \t")
            if following.startswith("\r\n"):
                following = following[2:]
            elif following.startswith("\n"):
                following = following[1:]
            values[i + 1] = following

    return [
        Token(t.kind, values[i], t.position, t.raw, t.standalone)
        if t.kind is TokenKind.TEXT
        else t
        for i, t in enumerate(tokens)
    ]
