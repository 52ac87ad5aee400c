"""Core data models for the ProfileKit compiler."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import ExpansionError
from .patterns import match_pattern


class ProfileConfig(BaseModel):
    """Contents of a profile's ``profile-config.yml``."""

    inherits_from: str | None = Field(
        default=None,
        description="Parent profile id, or None when the profile is a root",
    )
    exclude_inherited_files: list[str] = Field(
        default_factory=list,
        description="Path patterns dropped from files inherited from ancestors",
    )

    @field_validator("inherits_from", mode="before")
    @classmethod
    def normalize_parent(cls, v: Any) -> str | None:
        """YAML ``false`` (or an empty value) means no parent."""
        if v is False or v is None:
            return None
        if isinstance(v, str):
            v = v.strip()
            if not v or v.lower() == "false":
                return None
        return str(v)

    @field_validator("exclude_inherited_files", mode="before")
    @classmethod
    def normalize_exclusions(cls, v: Any) -> list[str]:
        """Accept a missing list and strip whitespace from entries."""
        if v is None:
            return []
        return [str(item).strip() for item in v]


class Profile(BaseModel):
    """A named bundle of templates with an optional parent."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique profile identifier")
    inherits_from: str | None = Field(default=None, description="Parent profile id")
    exclude_inherited_files: tuple[str, ...] = Field(
        default=(),
        description="Ancestor path patterns this profile removes",
    )
    files: dict[str, bytes] = Field(
        default_factory=dict,
        description="Relative path to raw file content",
    )

    @classmethod
    def from_config(
        cls,
        profile_id: str,
        config: ProfileConfig,
        files: dict[str, bytes],
    ) -> Profile:
        """Build a profile from its parsed config and file tree."""
        return cls(
            id=profile_id,
            inherits_from=config.inherits_from,
            exclude_inherited_files=tuple(config.exclude_inherited_files),
            files=files,
        )


class TemplateFile(BaseModel):
    """One file in the merged tree, with the profile it came from."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: bytes
    profile_id: str

    @property
    def text(self) -> str:
        """Content decoded as UTF-8."""
        return self.content.decode("utf-8")


class ResolvedChain(BaseModel):
    """Root-first inheritance chain with per-profile effective exclusions."""

    model_config = ConfigDict(frozen=True)

    profiles: tuple[Profile, ...]
    effective_exclusions: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    @property
    def leaf(self) -> Profile:
        """The profile the chain was resolved for."""
        return self.profiles[-1]

    @property
    def ids(self) -> list[str]:
        """Profile ids, root first."""
        return [p.id for p in self.profiles]

    def exclusions_for(self, profile_id: str) -> tuple[str, ...]:
        """Patterns more-specific profiles exclude from ``profile_id``'s files."""
        return self.effective_exclusions.get(profile_id, ())


class MergedTree(BaseModel):
    """The single winning file for every relative path after merge."""

    model_config = ConfigDict(frozen=True)

    files: dict[str, TemplateFile] = Field(default_factory=dict)

    def __contains__(self, path: object) -> bool:
        return path in self.files

    def __len__(self) -> int:
        return len(self.files)

    def get(self, path: str) -> TemplateFile | None:
        return self.files.get(path)

    def paths(self) -> list[str]:
        """All paths in lexicographic order."""
        return sorted(self.files)

    def match(self, pattern: str) -> list[str]:
        """Paths matching a glob, in lexicographic order."""
        return [p for p in self.paths() if match_pattern(p, pattern)]

    def under(self, prefix: str) -> list[str]:
        """Paths below a directory prefix such as ``agents/``."""
        return [p for p in self.paths() if p.startswith(prefix)]


class CompileConfig(BaseModel):
    """Per-invocation flags and variables for directive expansion."""

    model_config = ConfigDict(frozen=True)

    flags: dict[str, bool] = Field(default_factory=dict)
    variables: dict[str, str] = Field(default_factory=dict)

    def flag(self, name: str) -> bool:
        """Look up a flag; unknown flags read as False."""
        return bool(self.flags.get(name, False))

    def with_flags(self, **overrides: bool) -> CompileConfig:
        """Copy of this config with some flags replaced."""
        return self.model_copy(update={"flags": {**self.flags, **overrides}})

    @property
    def lazy_load_workflows(self) -> bool:
        return self.flag("lazy_load_workflows")


class CompiledDocument(BaseModel):
    """Fully expanded output for one entrypoint."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Output path relative to agent-os/")
    content: str
    consumed_flags: list[str] = Field(default_factory=list)
    includes: list[str] = Field(
        default_factory=list,
        description="Resolved include paths, in first-resolution order",
    )
    lazy_references: list[str] = Field(
        default_factory=list,
        description="Paths emitted as pointers that must be copied verbatim",
    )


class CompilationResult(BaseModel):
    """Outcome of a compile run: what succeeded and what failed."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    profile_id: str
    chain: list[str] = Field(default_factory=list)
    documents: list[CompiledDocument] = Field(default_factory=list)
    errors: list[ExpansionError] = Field(default_factory=list)
    copies: dict[str, bytes] = Field(
        default_factory=dict,
        description="Files installed verbatim (standards, lazily referenced files)",
    )

    @property
    def succeeded(self) -> int:
        return len(self.documents)

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def ok(self) -> bool:
        return not self.errors

    def document(self, path: str) -> CompiledDocument | None:
        """Find a compiled document by its output path."""
        for doc in self.documents:
            if doc.path == path:
                return doc
        return None
