"""
Base adapter interface for agent CLIs.

An adapter knows how to find one agent binary, turn a ToolConfig command
template into a shell command line, and run it. Every tool is driven the
same way: the command runs under ``sh -c`` with stdin inherited, and its
stdout/stderr are echoed to the terminal while being captured for stop
pattern matching and token extraction.
"""

import asyncio
import codecs
import logging
import re
import shutil
import sys
import time
from abc import ABC
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..core.config import ToolConfig
from ..core.exceptions import PromptFileMissing, ToolUnavailable
from ..core.tokens import TokenUsage, parse_any_tokens

logger = logging.getLogger("ralphctl.adapters")


@dataclass
class ExecutionResult:
    """Captured result of one agent run."""

    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        return self.stdout + self.stderr


class ToolAdapter(ABC):
    """
    Base class for agent tool adapters.

    Subclasses set ``name`` and ``command_name`` and may list
    ``common_paths`` checked before PATH (installers that only add a shell
    alias leave the binary outside PATH).
    """

    name: str = "base"
    command_name: str = ""

    def __init__(self, command: Optional[str] = None, working_dir: Optional[Path] = None):
        """
        Args:
            command: Binary name overriding ``command_name`` (from tools.<tool>.command)
            working_dir: Directory the agent runs in (default: current directory)
        """
        if command:
            self.command_name = command
        self.working_dir = working_dir

    def common_paths(self) -> list[Path]:
        return []

    def resolve_command_path(self) -> Optional[str]:
        """Absolute path of the agent binary, or None if it is not installed."""
        for path in self.common_paths():
            if path.exists():
                return str(path)
        return shutil.which(self.command_name)

    async def is_available(self) -> bool:
        return self.resolve_command_path() is not None

    def build_command(
        self,
        prompt_path: Path,
        tool_config: ToolConfig,
        model: Optional[str] = None,
    ) -> str:
        """Render the tool's command template.

        ``{promptFile}`` becomes the absolute prompt path, ``{model}`` the
        given model (or the tool config's default), and every occurrence
        of the bare command name becomes its resolved path.

        Raises:
            PromptFileMissing: If the prompt file does not exist
            ToolUnavailable: If the binary cannot be resolved
        """
        prompt_path = Path(prompt_path).resolve()
        if not prompt_path.exists():
            raise PromptFileMissing(path=str(prompt_path))

        command_path = self.resolve_command_path()
        if command_path is None:
            raise ToolUnavailable(tool=self.name)

        command = re.sub(
            rf"\b{re.escape(self.command_name)}\b",
            lambda _: command_path,
            tool_config.template,
        )
        command = command.replace("{promptFile}", str(prompt_path))
        resolved_model = model or tool_config.model
        if resolved_model:
            command = command.replace("{model}", resolved_model)
        return command

    async def execute(self, command: str) -> ExecutionResult:
        """Run a command under ``sh -c``, echoing and capturing its output.

        A spawn failure is reported as exit code 1 with the error text
        appended to stderr.
        """
        logger.debug(f"Executing: {command}")
        start = time.monotonic()

        try:
            proc = await asyncio.create_subprocess_exec(
                "sh", "-c", command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.working_dir,
            )
        except OSError as e:
            logger.warning(f"Failed to start {self.name}: {e}")
            return ExecutionResult(
                exit_code=1,
                stdout="",
                stderr=str(e),
                duration_ms=int((time.monotonic() - start) * 1000),
            )

        stdout, stderr = await asyncio.gather(
            _pump(proc.stdout, sys.stdout),
            _pump(proc.stderr, sys.stderr),
        )
        exit_code = await proc.wait()

        return ExecutionResult(
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    def parse_tokens(self, output: str) -> Optional[TokenUsage]:
        """Token usage reported in the agent's output, if any."""
        return parse_any_tokens(output)

    def get_info(self) -> dict:
        """Get adapter information."""
        return {
            "name": self.name,
            "command": self.command_name,
            "path": self.resolve_command_path(),
        }


async def _pump(stream: Optional[asyncio.StreamReader], echo) -> str:
    """Copy a subprocess stream to echo while collecting it."""
    if stream is None:
        return ""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    chunks: list[str] = []
    while True:
        data = await stream.read(4096)
        text = decoder.decode(data, final=not data)
        if not data:
            chunks.append(text)
            break
        chunks.append(text)
        echo.write(text)
        echo.flush()
    return "".join(chunks)
