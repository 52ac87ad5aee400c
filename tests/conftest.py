"""Shared fixtures: in-memory and on-disk profile repositories."""

from collections.abc import Callable
from pathlib import Path

import pytest
import yaml

from profilekit.models import Profile
from profilekit.registry import ProfileRepository

ProfileFactory = Callable[..., Profile]


def _make_profile(
    profile_id: str,
    parent: str | None = None,
    exclude: list[str] | None = None,
    files: dict[str, str] | None = None,
) -> Profile:
    return Profile(
        id=profile_id,
        inherits_from=parent,
        exclude_inherited_files=tuple(exclude or ()),
        files={path: text.encode("utf-8") for path, text in (files or {}).items()},
    )


@pytest.fixture
def make_profile() -> ProfileFactory:
    """Factory building a Profile from text files."""
    return _make_profile


@pytest.fixture
def wordpress_repository() -> ProfileRepository:
    """default -> general -> wordpress -> woocommerce, as shipped profiles nest."""
    return ProfileRepository.from_profiles([
        _make_profile(
            "default",
            files={
                "agents/implementer.md": (
                    "# Implementer\n"
                    "{{IF use_claude_code_subagents}}\n"
                    "Delegate to subagents.\n"
                    "{{ENDIF use_claude_code_subagents}}\n"
                    "{{workflows/implementation/implement-tasks}}\n"
                    "{{UNLESS standards_as_claude_code_skills}}\n"
                    "{{standards/*}}\n"
                    "{{ENDUNLESS standards_as_claude_code_skills}}\n"
                ),
                "workflows/implementation/implement-tasks.md": (
                    "## Implement tasks\nWork through tasks.md in order.\n"
                ),
                "standards/backend/api.md": "API conventions (default)\n",
                "standards/global/coding-style.md": "Coding style (default)\n",
                "standards/global/_index.md": "index\n",
            },
        ),
        _make_profile(
            "general",
            parent="default",
            files={"standards/global/coding-style.md": "Coding style (general)\n"},
        ),
        _make_profile(
            "wordpress",
            parent="general",
            exclude=["standards/backend/api.md"],
            files={"standards/frontend/blocks.md": "Block conventions\n"},
        ),
        _make_profile(
            "woocommerce",
            parent="wordpress",
            files={"standards/backend/api.md": "API conventions (woocommerce)\n"},
        ),
    ])


@pytest.fixture
def write_profiles(tmp_path: Path) -> Callable[[dict], Path]:
    """Write profiles to ``<tmp>/base/profiles`` and return the base directory.

    Takes ``{profile_id: {"config": dict | None, "files": {path: text}}}``.
    """

    def write(layout: dict) -> Path:
        base = tmp_path / "base"
        for profile_id, data in layout.items():
            profile_dir = base / "profiles" / profile_id
            profile_dir.mkdir(parents=True, exist_ok=True)
            if data.get("config") is not None:
                with open(profile_dir / "profile-config.yml", "w") as f:
                    yaml.dump(data["config"], f)
            for relative, text in data.get("files", {}).items():
                target = profile_dir / relative
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(text, encoding="utf-8")
        return base

    return write
