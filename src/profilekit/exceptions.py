"""Custom exceptions for ProfileKit."""

from __future__ import annotations

from typing import Any


class ProfileKitError(Exception):
    """Base exception for all ProfileKit errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(ProfileKitError):
    """Fatal error raised before expansion; aborts the whole compile run."""

    def __init__(
        self,
        message: str,
        profile_id: str | None = None,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.profile_id = profile_id
        self.path = path

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for reports."""
        return {
            "kind": type(self).__name__,
            "profile_id": self.profile_id,
            "path": self.path,
            "message": self.message,
            **self.details,
        }


class CyclicInheritanceError(ConfigError):
    """Raised when a profile inherits from itself, directly or transitively."""


class MissingProfileError(ConfigError):
    """Raised when a profile or one of its parents does not exist."""


class InvalidExclusionPathError(ConfigError):
    """Raised when an exclude_inherited_files entry is not a relative path."""


class DuplicateProfileIdError(ConfigError):
    """Raised when two profiles share the same id."""


class ConfigFileError(ConfigError):
    """Raised when a config.yml or profile-config.yml cannot be loaded."""


class ExpansionError(ProfileKitError):
    """Error scoped to one document; the batch continues without it."""

    def __init__(
        self,
        message: str,
        path: str,
        profile_id: str | None = None,
        position: tuple[int, int] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        location = path
        if position is not None:
            location = f"{path}:{position[0]}:{position[1]}"
        super().__init__(f"{location}: {message}", details)
        self.message = message
        self.path = path
        self.profile_id = profile_id
        self.position = position
        # Entrypoint the failure was reported against; set by the expander.
        self.document: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for reports."""
        return {
            "kind": type(self).__name__,
            "document": self.document,
            "profile_id": self.profile_id,
            "path": self.path,
            "line": self.position[0] if self.position else None,
            "column": self.position[1] if self.position else None,
            "message": self.message,
            **self.details,
        }


class MalformedConditionalError(ExpansionError):
    """Raised for mismatched, stray, or unclosed IF/UNLESS blocks."""


class UnresolvedIncludeError(ExpansionError):
    """Raised when an include names a path missing from the merged tree."""


class CyclicIncludeError(ExpansionError):
    """Raised when a document includes itself, directly or transitively."""


class MaxDepthExceededError(ExpansionError):
    """Raised when include nesting exceeds the expansion depth cap."""


class UnknownWildcardNamespaceError(ExpansionError):
    """Raised when a wildcard targets a namespace outside the profile tree."""


class TemplateDecodeError(ExpansionError):
    """Raised when a template file is not valid UTF-8."""


class CompilationCancelledError(ProfileKitError):
    """Raised when a compile run is cancelled before it finishes."""
