"""Per-document deduplication of standards files."""

from __future__ import annotations

from collections.abc import Iterable

STANDARDS_PREFIX = "standards/"


def dedupe(already_emitted: set[str], candidate_paths: Iterable[str]) -> list[str]:
    """Return the candidates not yet emitted, and mark them emitted.

    Order is preserved, so whichever directive appears first in a document
    claims a standards file; later directives matching it contribute nothing.
    """
    fresh: list[str] = []
    for path in candidate_paths:
        if path in already_emitted:
            continue
        already_emitted.add(path)
        fresh.append(path)
    return fresh


def is_standards_path(path: str) -> bool:
    return path.startswith(STANDARDS_PREFIX)
