"""Tests for ralphctl/core/config.py - Configuration loading."""

import pytest
import yaml

from ralphctl.core.config import (
    CONFIG_FILENAME,
    CommitStrategy,
    Config,
    ErrorStrategy,
    ToolName,
    cli_overrides_to_layer,
    config_exists,
    find_config_file,
    get_tool_config,
    load_config,
    merge_layers,
    write_config,
)
from ralphctl.core.exceptions import ConfigError, UnknownTool
from ralphctl.core.models import ModelDefinition, Provider

pytestmark = pytest.mark.unit


class TestConfigDefaults:
    """Config dataclass defaults."""

    def test_config_default_values(self):
        config = Config()
        assert config.default_tool is ToolName.CLAUDE_CODE
        assert config.default_model is None
        assert config.max_iterations == 10
        assert config.stop_conditions.max_iterations is True
        assert config.stop_conditions.output_pattern.enabled is False
        assert config.stop_conditions.output_pattern.pattern == "## COMPLETE"
        assert config.error_handling.strategy is ErrorStrategy.RETRY_ONCE
        assert config.git.auto_commit is False
        assert config.git.commit_strategy is CommitStrategy.PER_ITERATION
        assert config.session.progress_verbosity == "standard"

    def test_from_dict_empty(self):
        assert Config.from_dict({}) == Config()

    def test_to_dict_round_trips(self):
        config = Config.from_dict({
            "default_tool": "codex",
            "default_model": "gpt-5",
            "max_iterations": 3,
            "tools": {"codex": {"model": "gpt-5-mini"}},
            "hooks": {"post_iteration": "make test"},
            "models": {"fast": {"id": "gpt-5-nano", "provider": "openai"}},
        })
        assert Config.from_dict(config.to_dict()) == config

    def test_config_is_frozen(self):
        config = Config()
        with pytest.raises(Exception):
            config.max_iterations = 5


class TestConfigValidation:
    """from_dict collects every problem into one ConfigError."""

    def test_parses_nested_sections(self):
        config = Config.from_dict({
            "stop_conditions": {
                "output_pattern": {"enabled": True, "pattern": "DONE"},
                "hook": {"enabled": True, "command": "test -f DONE.md"},
            },
            "error_handling": {"strategy": "continue"},
            "git": {"auto_commit": True, "commit_strategy": "on-stop"},
            "session": {"progress_verbosity": "full"},
        })
        assert config.stop_conditions.output_pattern.pattern == "DONE"
        assert config.stop_conditions.hook.command == "test -f DONE.md"
        assert config.error_handling.strategy is ErrorStrategy.CONTINUE
        assert config.git.commit_strategy is CommitStrategy.ON_STOP
        assert config.session.progress_verbosity == "full"

    def test_collects_all_issues(self):
        with pytest.raises(ConfigError) as exc_info:
            Config.from_dict({
                "default_tool": "vim",
                "max_iterations": 0,
                "error_handling": {"strategy": "panic"},
                "git": {"auto_commit": "yes"},
            })
        issues = exc_info.value.issues
        assert len(issues) == 4
        assert any(issue.startswith("default_tool") for issue in issues)
        assert any(issue.startswith("max_iterations") for issue in issues)
        assert any(issue.startswith("error_handling.strategy") for issue in issues)
        assert any(issue.startswith("git.auto_commit") for issue in issues)

    def test_invalid_regex_rejected(self):
        with pytest.raises(ConfigError, match="invalid regular expression"):
            Config.from_dict({"stop_conditions": {"output_pattern": {"pattern": "(unclosed"}}})

    def test_max_iterations_bounds(self):
        assert Config.from_dict({"max_iterations": 1000}).max_iterations == 1000
        with pytest.raises(ConfigError):
            Config.from_dict({"max_iterations": 1001})

    def test_bool_is_not_an_integer(self):
        with pytest.raises(ConfigError):
            Config.from_dict({"max_iterations": True})

    def test_max_retries_is_validated(self):
        assert Config.from_dict({"error_handling": {"max_retries": 5}}).error_handling.max_retries == 5
        with pytest.raises(ConfigError):
            Config.from_dict({"error_handling": {"max_retries": 11}})

    def test_unknown_tool_override(self):
        with pytest.raises(ConfigError, match="tools.vim"):
            Config.from_dict({"tools": {"vim": {"command": "vim"}}})

    def test_bad_model_definition(self):
        with pytest.raises(ConfigError, match="models.fast"):
            Config.from_dict({"models": {"fast": {"provider": "openai"}}})

    def test_custom_models_parsed(self):
        config = Config.from_dict({"models": {"fast": {"id": "gpt-5-nano", "provider": "openai"}}})
        assert config.models["fast"] == ModelDefinition("gpt-5-nano", Provider.OPENAI)

    def test_bad_verbosity(self):
        with pytest.raises(ConfigError, match="progress_verbosity"):
            Config.from_dict({"session": {"progress_verbosity": "loud"}})


class TestMergeLayers:

    def test_later_layers_win(self):
        assert merge_layers({"a": 1}, {"a": 2}) == {"a": 2}

    def test_nested_merge(self):
        merged = merge_layers(
            {"git": {"auto_commit": False, "commit_strategy": "on-stop"}},
            {"git": {"auto_commit": True}},
        )
        assert merged == {"git": {"auto_commit": True, "commit_strategy": "on-stop"}}

    def test_none_layers_skipped(self):
        assert merge_layers(None, {"a": 1}, None) == {"a": 1}

    def test_inputs_not_modified(self):
        base = {"git": {"auto_commit": False}}
        merge_layers(base, {"git": {"auto_commit": True}})
        assert base == {"git": {"auto_commit": False}}


class TestCliOverrides:

    def test_only_given_values(self):
        assert cli_overrides_to_layer() == {}

    def test_all_values(self):
        assert cli_overrides_to_layer(max_iterations=3, tool="codex", model="gpt-5", commit=False) == {
            "max_iterations": 3,
            "default_tool": "codex",
            "default_model": "gpt-5",
            "git": {"auto_commit": False},
        }


class TestLoadConfig:
    """File discovery and layered loading."""

    def test_defaults_without_file(self, tmp_path, isolated_home):
        config = load_config(start=tmp_path)
        assert config == Config()
        assert config.source_path is None

    def test_file_then_cli(self, tmp_path, isolated_home):
        (tmp_path / CONFIG_FILENAME).write_text(
            "default_tool: opencode\nmax_iterations: 20\ngit:\n  auto_commit: true\n"
        )
        config = load_config(
            cli_overrides=cli_overrides_to_layer(max_iterations=5), start=tmp_path
        )
        assert config.default_tool is ToolName.OPENCODE
        assert config.max_iterations == 5
        assert config.git.auto_commit is True
        assert config.source_path == tmp_path / CONFIG_FILENAME

    def test_search_walks_up_to_git_root(self, tmp_path, isolated_home):
        (tmp_path / ".git").mkdir()
        (tmp_path / CONFIG_FILENAME).write_text("max_iterations: 4\n")
        nested = tmp_path / "src" / "pkg"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == tmp_path / CONFIG_FILENAME

    def test_search_stops_at_git_root(self, tmp_path, isolated_home):
        (tmp_path / CONFIG_FILENAME).write_text("max_iterations: 4\n")
        repo = tmp_path / "repo"
        (repo / ".git").mkdir(parents=True)
        assert find_config_file(repo) is None

    def test_home_config_fallback(self, tmp_path, isolated_home):
        (isolated_home / CONFIG_FILENAME).write_text("max_iterations: 7\n")
        repo = tmp_path / "repo"
        (repo / ".git").mkdir(parents=True)
        assert load_config(start=repo).max_iterations == 7

    def test_explicit_missing_path(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("max_iterations: [1,\n")
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_json_is_accepted(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"default_tool": "cursor", "max_iterations": 2}')
        config = load_config(path)
        assert config.default_tool is ToolName.CURSOR

    def test_unknown_cli_tool(self, tmp_path, isolated_home):
        with pytest.raises(ConfigError, match="default_tool"):
            load_config(cli_overrides={"default_tool": "emacs"}, start=tmp_path)


class TestWriteConfig:

    def test_write_then_load(self, tmp_path):
        path = tmp_path / CONFIG_FILENAME
        assert not config_exists(path)
        original = Config.from_dict({"default_tool": "codex", "max_iterations": 12})
        write_config(original, path)
        assert config_exists(path)
        assert yaml.safe_load(path.read_text())["default_tool"] == "codex"
        loaded = load_config(path)
        assert loaded.default_tool is ToolName.CODEX
        assert loaded.max_iterations == 12


class TestToolConfig:

    def test_defaults(self):
        tool_config = get_tool_config(Config(), "claude-code")
        assert tool_config.command == "claude"
        assert "{promptFile}" in tool_config.template
        assert tool_config.model == "claude-sonnet-4.5"

    def test_overrides(self):
        config = Config.from_dict({"tools": {"codex": {"model": "gpt-5", "command": "codex2"}}})
        tool_config = get_tool_config(config, ToolName.CODEX)
        assert tool_config.model == "gpt-5"
        assert tool_config.command == "codex2"
        assert tool_config.template.startswith("codex ")

    def test_unknown_tool(self):
        with pytest.raises(UnknownTool):
            get_tool_config(Config(), "vim")
