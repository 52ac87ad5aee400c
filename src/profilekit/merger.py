"""Layered merge of profile file trees along an inheritance chain."""

from __future__ import annotations

import logging

from .models import MergedTree, ResolvedChain, TemplateFile
from .patterns import match_pattern

logger = logging.getLogger(__name__)


def merge(chain: ResolvedChain) -> MergedTree:
    """Merge every profile's files root to leaf into one tree.

    Later (more specific) profiles overwrite earlier ones for the same path.
    A file is dropped when a more-specific profile excludes its path; a
    profile's own files are never dropped by its own exclusion list.

    Args:
        chain: Resolved inheritance chain

    Returns:
        Tree holding the single winning file for every path
    """
    files: dict[str, TemplateFile] = {}

    for profile in chain.profiles:
        exclusions = chain.exclusions_for(profile.id)
        for path in sorted(profile.files):
            if any(match_pattern(path, pattern) for pattern in exclusions):
                logger.debug("Excluded %s from %s", path, profile.id)
                continue
            if path in files:
                logger.debug(
                    "%s overrides %s from %s", profile.id, path, files[path].profile_id,
                )
            files[path] = TemplateFile(
                path=path,
                content=profile.files[path],
                profile_id=profile.id,
            )

    return MergedTree(files={path: files[path] for path in sorted(files)})
