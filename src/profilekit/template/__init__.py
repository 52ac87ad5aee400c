"""Template directive lexing, parsing and expansion.

Directives are ``{{...}}`` markers embedded in profile documents:
conditionals (``IF``/``UNLESS``), includes, wildcards, phase embeds and
variables. Text outside the markers is never modified.
"""

from .dedupe import dedupe
from .expander import MAX_EXPANSION_DEPTH, Expander, expand
from .lexer import Position, Token, TokenKind, tokenize
from .parser import (
    Conditional,
    Include,
    Node,
    PhaseEmbed,
    Text,
    Variable,
    Wildcard,
    parse,
)

__all__ = [
    "MAX_EXPANSION_DEPTH",
    "Conditional",
    "Expander",
    "Include",
    "Node",
    "PhaseEmbed",
    "Position",
    "Text",
    "Token",
    "TokenKind",
    "Variable",
    "Wildcard",
    "dedupe",
    "expand",
    "parse",
    "tokenize",
]
