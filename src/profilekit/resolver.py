"""Profile inheritance resolution."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from .exceptions import (
    CyclicInheritanceError,
    InvalidExclusionPathError,
    MissingProfileError,
)
from .models import Profile, ResolvedChain
from .patterns import validate_relative_path

logger = logging.getLogger(__name__)

MAX_INHERITANCE_DEPTH = 10


def resolve(leaf_id: str, repository: Mapping[str, Profile]) -> ResolvedChain:
    """Build the root-first inheritance chain for ``leaf_id``.

    Args:
        leaf_id: Profile to resolve
        repository: Profiles available to the chain

    Returns:
        Chain ordered root to leaf, with effective exclusions per profile

    Raises:
        MissingProfileError: If the leaf or any parent is not in the repository
        CyclicInheritanceError: If a profile is visited twice or the chain is
            deeper than MAX_INHERITANCE_DEPTH
        InvalidExclusionPathError: If an exclusion entry is not a safe relative path
    """
    if leaf_id not in repository:
        msg = f"Profile not found: {leaf_id}"
        raise MissingProfileError(msg, profile_id=leaf_id)

    walked: list[Profile] = []
    visited: list[str] = []
    current: Profile | None = repository[leaf_id]

    while current is not None:
        if current.id in visited:
            cycle = " -> ".join([*visited[visited.index(current.id):], current.id])
            msg = f"Circular inheritance detected: {cycle}"
            raise CyclicInheritanceError(
                msg, profile_id=current.id, details={"cycle": cycle},
            )
        if len(walked) >= MAX_INHERITANCE_DEPTH:
            msg = (
                f"Profile inheritance chain too deep "
                f"(max {MAX_INHERITANCE_DEPTH} levels)"
            )
            raise CyclicInheritanceError(
                msg, profile_id=leaf_id, details={"chain": list(visited)},
            )

        _validate_exclusions(current)
        visited.append(current.id)
        walked.append(current)

        parent_id = current.inherits_from
        if parent_id is None:
            current = None
        elif parent_id not in repository:
            msg = f"Profile '{current.id}' inherits from unknown profile '{parent_id}'"
            raise MissingProfileError(
                msg, profile_id=current.id, details={"parent": parent_id},
            )
        else:
            current = repository[parent_id]

    profiles = tuple(reversed(walked))
    chain = ResolvedChain(
        profiles=profiles,
        effective_exclusions=effective_exclusions(profiles),
    )
    logger.debug("Resolved %s: %s", leaf_id, " -> ".join(chain.ids))
    return chain


def effective_exclusions(profiles: tuple[Profile, ...]) -> dict[str, tuple[str, ...]]:
    """Exclusions that apply to each profile's own files.

    A profile's files are filtered by the exclusion lists of every strictly
    more-specific profile in the chain, never by its own list.
    """
    table: dict[str, tuple[str, ...]] = {}
    inherited: list[str] = []
    for profile in reversed(profiles):
        table[profile.id] = tuple(inherited)
        for pattern in profile.exclude_inherited_files:
            if pattern not in inherited:
                inherited.append(pattern)
    return table


def _validate_exclusions(profile: Profile) -> None:
    for entry in profile.exclude_inherited_files:
        reason = validate_relative_path(entry)
        if reason is not None:
            msg = f"Invalid exclude_inherited_files entry {entry!r}: {reason}"
            raise InvalidExclusionPathError(msg, profile_id=profile.id, path=entry)
