"""Base installation configuration (``config.yml``) and flag overrides."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigFileError
from .models import CompileConfig

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.yml"

FLAG_NAMES = (
    "claude_code_commands",
    "use_claude_code_subagents",
    "agent_os_commands",
    "standards_as_claude_code_skills",
    "lazy_load_workflows",
)

_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}


class BaseConfig(BaseModel):
    """Defaults for every compile run of an installation."""

    version: str = Field(default="2.1.0", description="Installation version")
    profile: str = Field(default="default", description="Profile compiled by default")
    claude_code_commands: bool = Field(default=True)
    use_claude_code_subagents: bool = Field(default=True)
    agent_os_commands: bool = Field(default=False)
    standards_as_claude_code_skills: bool = Field(default=True)
    lazy_load_workflows: bool = Field(default=False)
    variables: dict[str, str] = Field(
        default_factory=dict,
        description="Values substituted for {{name}} directives",
    )

    def to_compile_config(self, overrides: dict[str, bool] | None = None) -> CompileConfig:
        """Build the per-run config, applying command-line overrides.

        Claude Code-only features are switched off when Claude Code commands
        are disabled.
        """
        flags = {name: getattr(self, name) for name in FLAG_NAMES}
        flags.update(overrides or {})

        if not flags.get("claude_code_commands", False):
            for dependent in ("use_claude_code_subagents", "standards_as_claude_code_skills"):
                if flags.get(dependent):
                    logger.warning(
                        "%s requires claude_code_commands to be true; treating it as false",
                        dependent,
                    )
                    flags[dependent] = False

        return CompileConfig(flags=flags, variables=dict(self.variables))


def load_base_config(base_dir: Path) -> BaseConfig:
    """Load ``<base_dir>/config.yml``, falling back to defaults when absent.

    Raises:
        ConfigFileError: If the file exists but cannot be parsed or validated
    """
    config_path = Path(base_dir) / CONFIG_FILE_NAME
    if not config_path.exists():
        logger.debug("No %s in %s, using defaults", CONFIG_FILE_NAME, base_dir)
        return BaseConfig()

    try:
        with config_path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Failed to parse {CONFIG_FILE_NAME}: {e}"
        raise ConfigFileError(msg, path=str(config_path)) from e
    except OSError as e:
        msg = f"Failed to read {CONFIG_FILE_NAME}: {e}"
        raise ConfigFileError(msg, path=str(config_path)) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"{CONFIG_FILE_NAME} must contain a mapping"
        raise ConfigFileError(msg, path=str(config_path))

    try:
        return BaseConfig.model_validate(data)
    except ValidationError as e:
        msg = f"Config validation failed: {e}"
        raise ConfigFileError(msg, path=str(config_path)) from e


def normalize_flag_name(name: str) -> str:
    """Flags accept hyphens or underscores: ``lazy-load-workflows``."""
    return name.strip().lstrip("-").replace("-", "_")


def parse_bool(value: str) -> bool:
    """Parse a boolean command-line value."""
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    msg = f"Expected a boolean value, got {value!r}"
    raise ValueError(msg)


def parse_flag_assignment(assignment: str) -> tuple[str, bool]:
    """Parse ``name=value``; a bare ``name`` means true."""
    name, sep, value = assignment.partition("=")
    flag = normalize_flag_name(name)
    if not flag:
        msg = f"Invalid flag assignment {assignment!r}"
        raise ValueError(msg)
    return flag, parse_bool(value) if sep else True
