"""Glob matching for profile-relative paths.

``*`` matches within one path segment, ``**`` matches across segments and
``?`` matches a single character. Everything else is literal.
"""

from __future__ import annotations

import re
from functools import lru_cache

NAMESPACES = ("agents", "commands", "workflows", "standards", "protocols")

RESERVED_NAMES = frozenset({"_index.md", "_toc.md"})


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Translate a path glob into an anchored regular expression."""
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if pattern.startswith("**", i):
            parts.append(".*")
            i += 2
            continue
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        i += 1
    return re.compile("^" + "".join(parts) + "$")


def match_pattern(path: str, pattern: str) -> bool:
    """Return True when ``path`` matches the glob ``pattern``."""
    return compile_pattern(pattern).match(path) is not None


def is_glob(pattern: str) -> bool:
    """Return True when ``pattern`` contains wildcard characters."""
    return "*" in pattern or "?" in pattern


def namespace_of(path: str) -> str:
    """First segment of a relative path (``standards`` for ``standards/a.md``)."""
    return path.split("/", 1)[0]


def is_reserved(path: str) -> bool:
    """Metadata files such as ``_index.md`` are never compiled on their own."""
    return path.rsplit("/", 1)[-1] in RESERVED_NAMES


def validate_relative_path(path: str) -> str | None:
    """Return a reason string when ``path`` is not a safe relative path."""
    if not path or not path.strip():
        return "path is empty"
    if path.startswith("/"):
        return "path must be relative"
    if "\\" in path:
        return "path must use forward slashes"
    if ".." in path.split("/"):
        return "path must not contain '..'"
    return None
