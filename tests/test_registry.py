"""Tests for loading profiles and base configuration from disk."""

from pathlib import Path

import pytest

from profilekit.config import (
    BaseConfig,
    load_base_config,
    parse_bool,
    parse_flag_assignment,
)
from profilekit.exceptions import ConfigFileError, DuplicateProfileIdError
from profilekit.registry import ProfileRepository, normalize_name


class TestProfileRepositoryLoading:
    """Test ProfileRepository.from_directory."""

    def test_loads_configs_and_files(self, write_profiles) -> None:
        """Parents, exclusions and template files are read from disk."""
        base = write_profiles({
            "default": {
                "config": {"inherits_from": False},
                "files": {
                    "agents/implementer.md": "agent",
                    "standards/global/style.md": "style",
                    "standards/global/notes.txt": "ignored",
                },
            },
            "rails": {
                "config": {
                    "inherits_from": "default",
                    "exclude_inherited_files": ["standards/global/*"],
                },
                "files": {"workflows/plan.yml": "steps: []"},
            },
        })

        repository = ProfileRepository.from_directory(base)

        default = repository["default"]
        rails = repository["rails"]
        assert default.inherits_from is None
        assert sorted(default.files) == ["agents/implementer.md", "standards/global/style.md"]
        assert default.files["agents/implementer.md"] == b"agent"
        assert rails.inherits_from == "default"
        assert rails.exclude_inherited_files == ("standards/global/*",)
        assert list(rails.files) == ["workflows/plan.yml"]

    def test_missing_config_inherits_from_default(self, write_profiles) -> None:
        """Profiles without profile-config.yml inherit from default."""
        base = write_profiles({
            "default": {"files": {"agents/a.md": "a"}},
            "python": {"files": {"agents/b.md": "b"}},
        })

        repository = ProfileRepository.from_directory(base)

        assert repository["default"].inherits_from is None
        assert repository["python"].inherits_from == "default"

    def test_config_without_parent_key_inherits_from_default(self, write_profiles) -> None:
        """A config listing only exclusions still inherits from default."""
        base = write_profiles({
            "default": {},
            "go": {"config": {"exclude_inherited_files": ["agents/x.md"]}},
        })

        assert ProfileRepository.from_directory(base)["go"].inherits_from == "default"

    def test_schema_violation(self, write_profiles) -> None:
        """Exclusions must be a list of strings."""
        base = write_profiles({
            "default": {"config": {"inherits_from": False, "exclude_inherited_files": "agents/a.md"}},
        })

        with pytest.raises(ConfigFileError, match="Schema validation failed"):
            ProfileRepository.from_directory(base)

    def test_invalid_yaml(self, write_profiles) -> None:
        """Unparseable YAML is reported with the profile id."""
        base = write_profiles({"default": {}})
        (base / "profiles" / "default" / "profile-config.yml").write_text("inherits_from: [\n")

        with pytest.raises(ConfigFileError) as exc_info:
            ProfileRepository.from_directory(base)

        assert exc_info.value.profile_id == "default"

    def test_missing_profiles_directory(self, tmp_path: Path) -> None:
        """A base directory without profiles/ is an error."""
        with pytest.raises(ConfigFileError, match="Profiles directory not found"):
            ProfileRepository.from_directory(tmp_path)

    def test_duplicate_directories(self, write_profiles) -> None:
        """Directories normalizing to one id collide."""
        base = write_profiles({"default": {}, "my_profile": {}, "My-Profile": {}})

        with pytest.raises(DuplicateProfileIdError):
            ProfileRepository.from_directory(base)

    def test_normalize_name(self) -> None:
        """Names are lower-cased with spaces and underscores turned into dashes."""
        assert normalize_name("My Rails_App!") == "my-rails-app"


class TestBaseConfig:
    """Test config.yml loading and flag overrides."""

    def test_defaults_without_file(self, tmp_path: Path) -> None:
        """A missing config.yml yields the installer defaults."""
        config = load_base_config(tmp_path)

        assert config == BaseConfig()
        assert config.profile == "default"
        assert config.lazy_load_workflows is False

    def test_loads_values(self, tmp_path: Path) -> None:
        """Values in config.yml override defaults."""
        (tmp_path / "config.yml").write_text(
            "version: 2.1.1\nprofile: rails\nlazy_load_workflows: true\n"
            "variables:\n  role: implementer\n",
        )

        config = load_base_config(tmp_path)

        assert config.profile == "rails"
        assert config.to_compile_config().lazy_load_workflows is True
        assert config.to_compile_config().variables == {"role": "implementer"}

    def test_invalid_file(self, tmp_path: Path) -> None:
        """Non-mapping YAML is rejected."""
        (tmp_path / "config.yml").write_text("- just\n- a list\n")

        with pytest.raises(ConfigFileError):
            load_base_config(tmp_path)

    def test_overrides_win(self) -> None:
        """Command-line overrides replace config values."""
        config = BaseConfig().to_compile_config({"lazy_load_workflows": True, "custom": True})

        assert config.flag("lazy_load_workflows") is True
        assert config.flag("custom") is True
        assert config.flag("never_defined") is False

    def test_claude_code_features_need_claude_code_commands(self) -> None:
        """Subagents and skills are forced off without Claude Code commands."""
        config = BaseConfig(claude_code_commands=False).to_compile_config()

        assert config.flag("use_claude_code_subagents") is False
        assert config.flag("standards_as_claude_code_skills") is False

    @pytest.mark.parametrize(
        ("assignment", "expected"),
        [
            ("lazy_load_workflows=true", ("lazy_load_workflows", True)),
            ("lazy-load-workflows=no", ("lazy_load_workflows", False)),
            ("--use-claude-code-subagents", ("use_claude_code_subagents", True)),
            ("compiled_single_command=0", ("compiled_single_command", False)),
        ],
    )
    def test_parse_flag_assignment(self, assignment: str, expected: tuple[str, bool]) -> None:
        """Flag assignments accept hyphens and common boolean spellings."""
        assert parse_flag_assignment(assignment) == expected

    def test_parse_bool_rejects_garbage(self) -> None:
        """Non-boolean values raise ValueError."""
        with pytest.raises(ValueError):
            parse_bool("maybe")
