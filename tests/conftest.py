"""Shared fixtures for ralphctl tests."""

import shutil
import subprocess
from pathlib import Path
from typing import Optional, Union

import pytest

from ralphctl.adapters.base import ExecutionResult, ToolAdapter
from ralphctl.core.config import ToolConfig
from ralphctl.core.logging import set_loop_context
from ralphctl.core.progress import set_quiet, set_timestamps


class ScriptedAdapter(ToolAdapter):
    """Adapter that replays scripted results instead of spawning an agent.

    Each script entry is either an (exit_code, output) tuple or an
    exception instance to raise from execute(). Once the script runs out
    the last entry repeats.
    """

    name = "scripted"
    command_name = "scripted-agent"

    def __init__(
        self,
        script: list[Union[tuple[int, str], BaseException]],
        available: bool = True,
    ):
        super().__init__()
        self.script = list(script)
        self.available = available
        self.commands: list[str] = []
        self.prompts: list[str] = []

    async def is_available(self) -> bool:
        return self.available

    def build_command(self, prompt_path: Path, tool_config: ToolConfig, model: Optional[str] = None) -> str:
        self.prompt_path = Path(prompt_path)
        return f"scripted-agent --model {model} < {prompt_path}"

    async def execute(self, command: str) -> ExecutionResult:
        self.commands.append(command)
        self.prompts.append(self.prompt_path.read_text())
        entry = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(entry, BaseException):
            raise entry
        exit_code, output = entry
        return ExecutionResult(exit_code=exit_code, stdout=output, stderr="", duration_ms=1200)

    @property
    def call_count(self) -> int:
        return len(self.commands)


@pytest.fixture
def scripted_adapter():
    """Factory for ScriptedAdapter instances."""
    return ScriptedAdapter


@pytest.fixture(autouse=True)
def reset_global_output_state():
    """Quiet, timestamp and loop-context globals must not leak between tests."""
    yield
    set_quiet(False)
    set_timestamps(False)
    set_loop_context(None)


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point HOME at an empty directory so ~/.ralphctl.yaml is never picked up."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def workspace(tmp_path, isolated_home):
    """Project directory containing a prompt file."""
    project = tmp_path / "project"
    project.mkdir()
    (project / "feature-auth.md").write_text(
        "# Auth\n\n- [ ] Add login form\n- [ ] Add logout button\n"
    )
    return project


@pytest.fixture
def prompt_file(workspace):
    return workspace / "feature-auth.md"


@pytest.fixture
def git_repo(workspace):
    """The workspace initialised as a git repository with one commit."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")

    def git(*args):
        subprocess.run(["git", *args], cwd=workspace, check=True, capture_output=True, text=True)

    git("init", "-q")
    git("config", "user.email", "test@example.com")
    git("config", "user.name", "Test")
    git("config", "commit.gpgsign", "false")
    git("add", "-A")
    git("commit", "-q", "-m", "initial")
    return workspace
