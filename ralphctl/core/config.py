"""
Configuration loading for ralphctl.

Loads .ralphctl.yaml from the project root or home directory and merges
it in three layers: built-in defaults, then the file, then CLI overrides.
The result is one frozen Config per run; nothing is cached between runs.

Example .ralphctl.yaml:

    default_tool: claude-code
    max_iterations: 20
    stop_conditions:
      output_pattern:
        enabled: true
        pattern: "## COMPLETE"
    hooks:
      post_iteration: "make test"
    error_handling:
      strategy: retry-once
    git:
      auto_commit: true
"""

import copy
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml

from .exceptions import ConfigError, UnknownTool
from .models import ModelDefinition

logger = logging.getLogger("ralphctl.core.config")

CONFIG_FILENAME = ".ralphctl.yaml"


class ToolName(Enum):
    """Supported agent tools."""
    CLAUDE_CODE = "claude-code"
    OPENCODE = "opencode"
    CURSOR = "cursor"
    CODEX = "codex"

    @classmethod
    def parse(cls, name: "str | ToolName") -> "ToolName":
        """Look up a tool by its CLI name.

        Raises:
            UnknownTool: If the name matches no tool
        """
        if isinstance(name, cls):
            return name
        try:
            return cls(name)
        except ValueError:
            raise UnknownTool(name=str(name), known=[t.value for t in cls])


class ErrorStrategy(Enum):
    """What to do when the agent exits non-zero."""
    STOP = "stop"
    RETRY_ONCE = "retry-once"
    CONTINUE = "continue"


class CommitStrategy(Enum):
    """When auto-commit runs."""
    PER_ITERATION = "per-iteration"
    ON_STOP = "on-stop"


PROGRESS_VERBOSITY = ("minimal", "standard", "full")


@dataclass(frozen=True)
class ToolConfig:
    """Command template for one agent tool.

    ``{promptFile}`` and ``{model}`` placeholders are substituted by the
    adapter; the bare command name is replaced with its resolved path.
    """
    command: str
    template: str
    model: Optional[str] = None


DEFAULT_TOOL_CONFIGS: dict[ToolName, ToolConfig] = {
    ToolName.CLAUDE_CODE: ToolConfig(
        command="claude",
        model="claude-sonnet-4.5",
        template=(
            "claude --model {model} --allowedTools Edit,Write,Bash,Read,Glob,Grep "
            "--print < {promptFile}"
        ),
    ),
    ToolName.OPENCODE: ToolConfig(
        command="opencode",
        model="gemini-3-flash",
        template="opencode run --model {model} < {promptFile}",
    ),
    ToolName.CURSOR: ToolConfig(
        command="agent",
        model="composer-1",
        template='agent -f --model {model} -p "$(cat {promptFile})"',
    ),
    ToolName.CODEX: ToolConfig(
        command="codex",
        model="gpt-5.1-codex-mini",
        template='codex -m {model} exec --skip-git-repo-check --full-auto "$(cat {promptFile})"',
    ),
}


@dataclass(frozen=True)
class OutputPatternCondition:
    """Stop when the iteration output matches a regular expression."""
    enabled: bool = False
    pattern: str = "## COMPLETE"


@dataclass(frozen=True)
class StopHookCondition:
    """Stop when a shell command exits 0."""
    enabled: bool = False
    command: Optional[str] = None


@dataclass(frozen=True)
class StopConditions:
    """Stop conditions, evaluated in field order after every iteration."""
    max_iterations: bool = True
    output_pattern: OutputPatternCondition = field(default_factory=OutputPatternCondition)
    hook: StopHookCondition = field(default_factory=StopHookCondition)


@dataclass(frozen=True)
class Hooks:
    """Lifecycle hook commands (None = not configured)."""
    pre_iteration: Optional[str] = None
    post_iteration: Optional[str] = None
    on_error: Optional[str] = None
    on_complete: Optional[str] = None


@dataclass(frozen=True)
class ErrorHandling:
    """Error handling settings.

    max_retries is validated but not used: a failing iteration is retried
    at most once, and only with the retry-once strategy.
    """
    strategy: ErrorStrategy = ErrorStrategy.RETRY_ONCE
    max_retries: int = 1


@dataclass(frozen=True)
class GitConfig:
    """Auto-commit settings."""
    auto_commit: bool = False
    commit_strategy: CommitStrategy = CommitStrategy.PER_ITERATION
    commit_message_template: str = "chore(ralph): iteration {iteration} - {session_name}"


@dataclass(frozen=True)
class SessionConfig:
    """Session ledger settings."""
    progress_verbosity: str = "standard"


@dataclass(frozen=True)
class Config:
    """Validated configuration for one run."""
    default_tool: ToolName = ToolName.CLAUDE_CODE
    default_model: Optional[str] = None
    max_iterations: int = 10
    tools: dict[ToolName, dict] = field(default_factory=dict)
    stop_conditions: StopConditions = field(default_factory=StopConditions)
    hooks: Hooks = field(default_factory=Hooks)
    error_handling: ErrorHandling = field(default_factory=ErrorHandling)
    git: GitConfig = field(default_factory=GitConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    models: dict[str, ModelDefinition] = field(default_factory=dict)
    source_path: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: dict, source_path: Optional[Path] = None) -> "Config":
        """Create a Config from a merged mapping.

        Every invalid field is collected before raising, so one error
        lists all problems.

        Raises:
            ConfigError: If any field is invalid
        """
        issues: list[str] = []
        reader = _Reader(issues)

        default_tool = ToolName.CLAUDE_CODE
        tool_value = data.get("default_tool", default_tool.value)
        try:
            default_tool = ToolName.parse(tool_value)
        except UnknownTool as e:
            issues.append(f"default_tool: {e}")

        default_model = reader.optional_str(data, "default_model")

        max_iterations = reader.integer(data, "max_iterations", 10, minimum=1, maximum=1000)

        tools: dict[ToolName, dict] = {}
        for name, overrides in reader.section(data, "tools").items():
            try:
                tool = ToolName.parse(name)
            except UnknownTool as e:
                issues.append(f"tools.{name}: {e}")
                continue
            if not isinstance(overrides, dict):
                issues.append(f"tools.{name}: expected a mapping")
                continue
            for key, value in overrides.items():
                if key not in ("command", "template", "model"):
                    issues.append(f"tools.{name}.{key}: unknown key")
                elif value is not None and not isinstance(value, str):
                    issues.append(f"tools.{name}.{key}: expected a string")
            tools[tool] = {k: v for k, v in overrides.items() if v is not None}

        stop = reader.section(data, "stop_conditions")
        pattern_section = reader.section(stop, "output_pattern", "stop_conditions.output_pattern")
        pattern = reader.string(
            pattern_section, "pattern", "## COMPLETE", "stop_conditions.output_pattern.pattern"
        )
        try:
            re.compile(pattern)
        except re.error as e:
            issues.append(f"stop_conditions.output_pattern.pattern: invalid regular expression ({e})")
        hook_section = reader.section(stop, "hook", "stop_conditions.hook")
        stop_conditions = StopConditions(
            max_iterations=reader.boolean(
                stop, "max_iterations", True, "stop_conditions.max_iterations"
            ),
            output_pattern=OutputPatternCondition(
                enabled=reader.boolean(
                    pattern_section, "enabled", False, "stop_conditions.output_pattern.enabled"
                ),
                pattern=pattern,
            ),
            hook=StopHookCondition(
                enabled=reader.boolean(hook_section, "enabled", False, "stop_conditions.hook.enabled"),
                command=reader.optional_str(hook_section, "command", "stop_conditions.hook.command"),
            ),
        )

        hooks_section = reader.section(data, "hooks")
        hooks = Hooks(**{
            name: reader.optional_str(hooks_section, name, f"hooks.{name}")
            for name in ("pre_iteration", "post_iteration", "on_error", "on_complete")
        })

        errors_section = reader.section(data, "error_handling")
        error_handling = ErrorHandling(
            strategy=reader.enum(
                errors_section, "strategy", ErrorStrategy, ErrorStrategy.RETRY_ONCE,
                "error_handling.strategy",
            ),
            max_retries=reader.integer(
                errors_section, "max_retries", 1, minimum=0, maximum=10,
                path="error_handling.max_retries",
            ),
        )

        git_section = reader.section(data, "git")
        git = GitConfig(
            auto_commit=reader.boolean(git_section, "auto_commit", False, "git.auto_commit"),
            commit_strategy=reader.enum(
                git_section, "commit_strategy", CommitStrategy, CommitStrategy.PER_ITERATION,
                "git.commit_strategy",
            ),
            commit_message_template=reader.string(
                git_section, "commit_message_template", GitConfig.commit_message_template,
                "git.commit_message_template",
            ),
        )

        session_section = reader.section(data, "session")
        verbosity = reader.string(
            session_section, "progress_verbosity", "standard", "session.progress_verbosity"
        )
        if verbosity not in PROGRESS_VERBOSITY:
            issues.append(
                f"session.progress_verbosity: expected one of {', '.join(PROGRESS_VERBOSITY)}"
            )

        models: dict[str, ModelDefinition] = {}
        for alias, definition in reader.section(data, "models").items():
            if not isinstance(definition, dict):
                issues.append(f"models.{alias}: expected a mapping")
                continue
            try:
                models[alias] = ModelDefinition.from_dict(definition)
            except ValueError as e:
                issues.append(f"models.{alias}: {e}")

        if issues:
            raise ConfigError(issues=issues, source_path=str(source_path) if source_path else None)

        if error_handling.max_retries > 1:
            logger.debug(
                "error_handling.max_retries=%d has no effect; failures are retried at most once",
                error_handling.max_retries,
            )

        return cls(
            default_tool=default_tool,
            default_model=default_model,
            max_iterations=max_iterations,
            tools=tools,
            stop_conditions=stop_conditions,
            hooks=hooks,
            error_handling=error_handling,
            git=git,
            session=SessionConfig(progress_verbosity=verbosity),
            models=models,
            source_path=source_path,
        )

    def to_dict(self) -> dict:
        """Serialize to the on-disk mapping (round-trips through from_dict)."""
        data: dict[str, Any] = {
            "default_tool": self.default_tool.value,
            "max_iterations": self.max_iterations,
            "stop_conditions": {
                "max_iterations": self.stop_conditions.max_iterations,
                "output_pattern": {
                    "enabled": self.stop_conditions.output_pattern.enabled,
                    "pattern": self.stop_conditions.output_pattern.pattern,
                },
                "hook": {
                    "enabled": self.stop_conditions.hook.enabled,
                    "command": self.stop_conditions.hook.command,
                },
            },
            "hooks": {
                "pre_iteration": self.hooks.pre_iteration,
                "post_iteration": self.hooks.post_iteration,
                "on_error": self.hooks.on_error,
                "on_complete": self.hooks.on_complete,
            },
            "error_handling": {
                "strategy": self.error_handling.strategy.value,
                "max_retries": self.error_handling.max_retries,
            },
            "git": {
                "auto_commit": self.git.auto_commit,
                "commit_strategy": self.git.commit_strategy.value,
                "commit_message_template": self.git.commit_message_template,
            },
            "session": {"progress_verbosity": self.session.progress_verbosity},
        }
        if self.default_model:
            data["default_model"] = self.default_model
        if self.tools:
            data["tools"] = {tool.value: dict(values) for tool, values in self.tools.items()}
        if self.models:
            data["models"] = {alias: m.to_dict() for alias, m in self.models.items()}
        return data


class _Reader:
    """Typed field access that records problems instead of raising."""

    def __init__(self, issues: list[str]):
        self.issues = issues

    def section(self, data: dict, key: str, path: Optional[str] = None) -> dict:
        value = data.get(key)
        if value is None:
            return {}
        if not isinstance(value, dict):
            self.issues.append(f"{path or key}: expected a mapping")
            return {}
        return value

    def boolean(self, data: dict, key: str, default: bool, path: Optional[str] = None) -> bool:
        value = data.get(key, default)
        if not isinstance(value, bool):
            self.issues.append(f"{path or key}: expected true or false")
            return default
        return value

    def integer(
        self,
        data: dict,
        key: str,
        default: int,
        minimum: int,
        maximum: int,
        path: Optional[str] = None,
    ) -> int:
        value = data.get(key, default)
        if isinstance(value, bool) or not isinstance(value, int):
            self.issues.append(f"{path or key}: expected an integer")
            return default
        if not minimum <= value <= maximum:
            self.issues.append(f"{path or key}: must be between {minimum} and {maximum}")
            return default
        return value

    def string(self, data: dict, key: str, default: str, path: Optional[str] = None) -> str:
        value = data.get(key, default)
        if not isinstance(value, str):
            self.issues.append(f"{path or key}: expected a string")
            return default
        return value

    def optional_str(self, data: dict, key: str, path: Optional[str] = None) -> Optional[str]:
        value = data.get(key)
        if value is None or value == "":
            return None
        if not isinstance(value, str):
            self.issues.append(f"{path or key}: expected a string")
            return None
        return value

    def enum(self, data: dict, key: str, enum_cls, default, path: Optional[str] = None):
        value = data.get(key, default.value)
        try:
            return enum_cls(value)
        except ValueError:
            valid = ", ".join(item.value for item in enum_cls)
            self.issues.append(f"{path or key}: expected one of {valid}")
            return default


def merge_layers(*layers: Optional[dict]) -> dict:
    """Deep-merge configuration mappings; later layers win.

    Nested mappings are merged key by key, any other value replaces the
    earlier one. Inputs are not modified.
    """
    merged: dict = {}
    for layer in layers:
        if not layer:
            continue
        for key, value in layer.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = merge_layers(merged[key], value)
            else:
                merged[key] = copy.deepcopy(value)
    return merged


def cli_overrides_to_layer(
    max_iterations: Optional[int] = None,
    tool: Optional[str] = None,
    model: Optional[str] = None,
    commit: Optional[bool] = None,
) -> dict:
    """Turn CLI option values into a config layer (None = not given)."""
    layer: dict[str, Any] = {}
    if max_iterations is not None:
        layer["max_iterations"] = max_iterations
    if tool is not None:
        layer["default_tool"] = tool
    if model is not None:
        layer["default_model"] = model
    if commit is not None:
        layer["git"] = {"auto_commit": commit}
    return layer


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Find .ralphctl.yaml.

    Search order:
    1. The start directory (default: current directory) and its parents,
       stopping at the git root
    2. ~/.ralphctl.yaml
    """
    search_dir = (start or Path.cwd()).resolve()
    while True:
        candidate = search_dir / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        if (search_dir / ".git").exists() or search_dir == search_dir.parent:
            break
        search_dir = search_dir.parent

    home_config = Path.home() / CONFIG_FILENAME
    if home_config.exists():
        return home_config
    return None


def read_config_file(path: Path) -> dict:
    """Parse a YAML (or JSON) config file into a mapping.

    Raises:
        ConfigError: If the file cannot be read or is not a mapping
    """
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(issues=[f"invalid YAML: {e}"], source_path=str(path))
    except OSError as e:
        raise ConfigError(issues=[f"cannot read file: {e}"], source_path=str(path))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(issues=["top level must be a mapping"], source_path=str(path))
    return data


def load_config(
    path: Optional[Path] = None,
    cli_overrides: Optional[dict] = None,
    start: Optional[Path] = None,
) -> Config:
    """Load and validate the configuration for one run.

    Args:
        path: Explicit config file; must exist if given
        cli_overrides: Layer built by cli_overrides_to_layer()
        start: Directory to start the config file search from

    Returns:
        Frozen Config (defaults when no file is found)

    Raises:
        ConfigError: If the file is unreadable or any value is invalid
    """
    if path is not None:
        if not path.exists():
            raise ConfigError(issues=["config file not found"], source_path=str(path))
        config_path: Optional[Path] = path
    else:
        config_path = find_config_file(start)

    file_layer = read_config_file(config_path) if config_path else {}
    if config_path:
        logger.debug(f"Loaded config from {config_path}")

    merged = merge_layers(Config().to_dict(), file_layer, cli_overrides)
    return Config.from_dict(merged, source_path=config_path)


def write_config(config: Config, path: Path) -> None:
    """Write a config as YAML."""
    path.write_text(yaml.safe_dump(config.to_dict(), sort_keys=False))


def config_exists(path: Optional[Path] = None) -> bool:
    """Check whether a config file exists (default: ./.ralphctl.yaml)."""
    return (path or Path.cwd() / CONFIG_FILENAME).exists()


def get_tool_config(config: Config, tool: "str | ToolName") -> ToolConfig:
    """Built-in command template for a tool with config overrides applied.

    Raises:
        UnknownTool: If the tool name is not supported
    """
    tool = ToolName.parse(tool)
    base = DEFAULT_TOOL_CONFIGS[tool]
    overrides = config.tools.get(tool, {})
    return ToolConfig(
        command=overrides.get("command", base.command),
        template=overrides.get("template", base.template),
        model=overrides.get("model", base.model),
    )
