"""Profile repository with schema validation of profile-config.yml."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from pydantic import ValidationError

from .exceptions import ConfigFileError, DuplicateProfileIdError
from .models import Profile, ProfileConfig
from .patterns import NAMESPACES

logger = logging.getLogger(__name__)

PROFILE_CONFIG_NAME = "profile-config.yml"
DEFAULT_PROFILE = "default"
TEMPLATE_SUFFIXES = (".md", ".yml", ".yaml")

PROFILE_CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "ProfileKit Profile Configuration",
    "type": "object",
    "properties": {
        "inherits_from": {
            "description": "Parent profile id, or false for a root profile",
            "type": ["string", "boolean", "null"],
        },
        "exclude_inherited_files": {
            "description": "Inherited path patterns to drop",
            "type": ["array", "null"],
            "items": {"type": "string"},
        },
    },
}


def normalize_name(name: str) -> str:
    """Normalize a profile name: lower-case, spaces and underscores to dashes."""
    name = name.strip().lower()
    name = re.sub(r"[ _]", "-", name)
    return re.sub(r"[^a-z0-9-]", "", name)


class ProfileRepository(Mapping[str, Profile]):
    """Immutable collection of profiles, keyed by normalized id.

    The resolver and compiler only ever see this value; nothing reads the
    filesystem once a repository has been built.
    """

    def __init__(self, profiles: Mapping[str, Profile] | None = None) -> None:
        self._profiles: dict[str, Profile] = dict(profiles or {})

    def __getitem__(self, profile_id: str) -> Profile:
        return self._profiles[normalize_name(profile_id)]

    def __contains__(self, profile_id: object) -> bool:
        return isinstance(profile_id, str) and normalize_name(profile_id) in self._profiles

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._profiles))

    def __len__(self) -> int:
        return len(self._profiles)

    def __repr__(self) -> str:
        return f"ProfileRepository({sorted(self._profiles)!r})"

    @classmethod
    def from_profiles(cls, profiles: Iterable[Profile]) -> ProfileRepository:
        """Build a repository from profile objects.

        Raises:
            DuplicateProfileIdError: If two profiles normalize to the same id
        """
        collected: dict[str, Profile] = {}
        for profile in profiles:
            key = normalize_name(profile.id)
            if key in collected:
                msg = (
                    f"Duplicate profile id '{profile.id}' "
                    f"(already defined as '{collected[key].id}')"
                )
                raise DuplicateProfileIdError(msg, profile_id=profile.id)
            if key != profile.id:
                profile = profile.model_copy(update={"id": key})
            collected[key] = profile
        return cls(collected)

    @classmethod
    def from_directory(cls, base_dir: Path) -> ProfileRepository:
        """Load every profile under ``<base_dir>/profiles``.

        Args:
            base_dir: Installation root containing a ``profiles`` directory

        Returns:
            Repository holding every profile found

        Raises:
            ConfigFileError: If the profiles directory or a config file is invalid
            DuplicateProfileIdError: If two directories normalize to the same id
        """
        profiles_dir = Path(base_dir) / "profiles"
        if not profiles_dir.is_dir():
            msg = f"Profiles directory not found: {profiles_dir}"
            raise ConfigFileError(msg, path=str(profiles_dir))

        loaded = [
            load_profile(profile_dir)
            for profile_dir in sorted(profiles_dir.iterdir())
            if profile_dir.is_dir()
        ]
        logger.debug("Loaded %d profiles from %s", len(loaded), profiles_dir)
        return cls.from_profiles(loaded)


def load_profile_config(profile_dir: Path) -> ProfileConfig:
    """Load and validate a profile's ``profile-config.yml``.

    A profile without a config file inherits from ``default``, except the
    ``default`` profile itself which is a root.
    """
    profile_id = profile_dir.name
    config_path = profile_dir / PROFILE_CONFIG_NAME

    if not config_path.exists():
        parent = None if normalize_name(profile_id) == DEFAULT_PROFILE else DEFAULT_PROFILE
        return ProfileConfig(inherits_from=parent)

    try:
        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Failed to parse {PROFILE_CONFIG_NAME}: {e}"
        raise ConfigFileError(msg, profile_id=profile_id, path=str(config_path)) from e
    except OSError as e:
        msg = f"Failed to read {PROFILE_CONFIG_NAME}: {e}"
        raise ConfigFileError(msg, profile_id=profile_id, path=str(config_path)) from e

    if data is None:
        data = {}

    try:
        jsonschema.validate(data, PROFILE_CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        msg = f"Schema validation failed: {e.message}"
        raise ConfigFileError(
            msg,
            profile_id=profile_id,
            path=str(config_path),
            details={"field": list(e.absolute_path)},
        ) from e

    # A present config with no inherits_from key still inherits from default.
    if "inherits_from" not in data and normalize_name(profile_id) != DEFAULT_PROFILE:
        data = {**data, "inherits_from": DEFAULT_PROFILE}

    try:
        return ProfileConfig.model_validate(data)
    except ValidationError as e:
        msg = f"Profile config validation failed: {e}"
        raise ConfigFileError(msg, profile_id=profile_id, path=str(config_path)) from e


def load_profile_files(profile_dir: Path) -> dict[str, bytes]:
    """Read the template files a profile defines, keyed by relative path."""
    files: dict[str, bytes] = {}
    for namespace in NAMESPACES:
        root = profile_dir / namespace
        if not root.is_dir():
            continue
        for path in sorted(root.rglob("*")):
            if not path.is_file() or path.suffix not in TEMPLATE_SUFFIXES:
                continue
            relative = path.relative_to(profile_dir).as_posix()
            try:
                files[relative] = path.read_bytes()
            except OSError as e:
                msg = f"Failed to read template file: {e}"
                raise ConfigFileError(
                    msg, profile_id=profile_dir.name, path=relative,
                ) from e
    return files


def load_profile(profile_dir: Path) -> Profile:
    """Load one profile directory into a :class:`Profile`."""
    config = load_profile_config(profile_dir)
    files = load_profile_files(profile_dir)
    logger.debug(
        "Profile %s: %d files, parent=%s, %d exclusions",
        profile_dir.name,
        len(files),
        config.inherits_from,
        len(config.exclude_inherited_files),
    )
    return Profile.from_config(profile_dir.name, config, files)
