"""
Session management for loop runs.

A session is a named directory under ``<working_dir>/.ralph/`` holding:
- prompt.md     verbatim copy of the prompt the session was started with
- progress.md   the append-only progress ledger (see ledger.py)
- checklist.md  task checklist maintained by the agent

Running again with the same session name resumes the existing
directory instead of creating a new one.
"""

import logging
import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from .exceptions import InvalidSessionName, PromptFileMissing

logger = logging.getLogger("ralphctl.core.session")

SESSIONS_DIRNAME = ".ralph"
PROMPT_COPY = "prompt.md"
PROGRESS_FILE = "progress.md"
CHECKLIST_FILE = "checklist.md"

# Prompt file stems too generic to name a session after
GENERIC_NAMES = {"prompt", "plan", "task", "tasks", "todo", "readme"}


@dataclass(frozen=True)
class SessionInfo:
    """Identity and artifact paths of one session."""

    name: str
    dir: Path
    prompt_file: Path      # the user's prompt file (absolute)
    progress_file: Path
    checklist_file: Path
    prompt_copy: Path
    is_resumed: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "dir": str(self.dir),
            "prompt_file": str(self.prompt_file),
            "progress_file": str(self.progress_file),
            "checklist_file": str(self.checklist_file),
            "prompt_copy": str(self.prompt_copy),
            "is_resumed": self.is_resumed,
        }


def derive_session_name(prompt_file: "str | Path") -> Optional[str]:
    """Derive a session name from a prompt filename.

    Examples:
        feature-auth.md -> auth
        prompt_login.md -> login
        Billing.txt     -> billing
        PROMPT.md       -> None (generic; caller must supply a name)
    """
    stem = re.sub(r"\.(md|txt|markdown)$", "", Path(prompt_file).name, flags=re.IGNORECASE)

    if stem.lower() in GENERIC_NAMES:
        return None

    prefix_match = re.match(r"^(?:feature|prompt|task|plan)[-_](.+)$", stem, re.IGNORECASE)
    if prefix_match:
        return prefix_match.group(1).lower()

    return stem.lower()


def validate_session_name(name: str) -> str:
    """Return name if it is usable as one directory under .ralph/.

    Raises:
        InvalidSessionName: If the name is empty, "." or "..", or contains
            a path separator
    """
    if name in ("", ".", "..") or any(sep in name for sep in ("/", "\\", os.sep)):
        raise InvalidSessionName(name=name)
    return name


def timestamp_session_name(now: Optional[datetime] = None) -> str:
    """Fallback name like session-2026-10-18-1432."""
    return f"session-{(now or datetime.now()).strftime('%Y-%m-%d-%H%M')}"


class SessionManager:
    """Creates, resumes and lists sessions under one working directory."""

    def __init__(self, working_dir: Optional[Path] = None):
        self.working_dir = Path(working_dir or Path.cwd()).resolve()
        self.sessions_dir = self.working_dir / SESSIONS_DIRNAME

    def get_session_dir(self, name: str) -> Path:
        """Directory of session name.

        Raises:
            InvalidSessionName: If name would resolve outside .ralph/
        """
        return self.sessions_dir / validate_session_name(name)

    def session_exists(self, name: str) -> bool:
        return self.get_session_dir(name).is_dir()

    def _info(self, name: str, prompt_file: Path, is_resumed: bool) -> SessionInfo:
        session_dir = self.get_session_dir(name)
        return SessionInfo(
            name=name,
            dir=session_dir,
            prompt_file=prompt_file,
            progress_file=session_dir / PROGRESS_FILE,
            checklist_file=session_dir / CHECKLIST_FILE,
            prompt_copy=session_dir / PROMPT_COPY,
            is_resumed=is_resumed,
        )

    def get_or_create_session(
        self,
        prompt_file: "str | Path",
        session_name: Optional[str] = None,
    ) -> SessionInfo:
        """Resume the named session if its directory exists, else create it.

        Args:
            prompt_file: Prompt path (relative paths resolve against working_dir)
            session_name: Explicit name; derived from the filename if omitted

        Raises:
            PromptFileMissing: If the prompt file does not exist
        """
        prompt_path = Path(prompt_file)
        if not prompt_path.is_absolute():
            prompt_path = self.working_dir / prompt_path
        prompt_path = prompt_path.resolve()
        if not prompt_path.is_file():
            raise PromptFileMissing(path=str(prompt_path))

        name = session_name or derive_session_name(prompt_path) or timestamp_session_name()

        if self.session_exists(name):
            logger.info(f"Resuming session {name}")
            return self._info(name, prompt_path, is_resumed=True)

        session = self._info(name, prompt_path, is_resumed=False)
        session.dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(prompt_path, session.prompt_copy)
        logger.info(f"Created session {name} in {session.dir}")
        return session

    def preview_session(
        self,
        prompt_file: "str | Path",
        session_name: Optional[str] = None,
    ) -> SessionInfo:
        """SessionInfo a run would use, without creating anything on disk."""
        prompt_path = Path(prompt_file)
        if not prompt_path.is_absolute():
            prompt_path = self.working_dir / prompt_path
        prompt_path = prompt_path.resolve()
        name = session_name or derive_session_name(prompt_path) or timestamp_session_name()
        return self._info(name, prompt_path, is_resumed=self.session_exists(name))

    def load_session(self, name: str) -> Optional[SessionInfo]:
        """SessionInfo of an existing session, or None if there is none.

        The user's prompt path is not stored in the session, so
        prompt_file points at the prompt.md copy.

        Raises:
            InvalidSessionName: If name is not a single path component
        """
        if not self.session_exists(name):
            return None
        return self._info(name, self.get_session_dir(name) / PROMPT_COPY, is_resumed=True)

    def list_sessions(self) -> list[dict]:
        """Summaries of every session directory, newest first."""
        if not self.sessions_dir.is_dir():
            return []

        sessions = []
        for entry in self.sessions_dir.iterdir():
            if not entry.is_dir():
                continue
            progress_file = entry / PROGRESS_FILE
            modified = progress_file.stat().st_mtime if progress_file.exists() else entry.stat().st_mtime
            iterations = 0
            finished = False
            if progress_file.exists():
                text = progress_file.read_text()
                iterations = len(re.findall(r"^## Iteration \d+", text, re.MULTILINE))
                # a resumed run reopens a finished ledger
                finished = text.rfind("## Summary") > text.rfind("## Resumed:")
            sessions.append({
                "name": entry.name,
                "dir": str(entry),
                "iterations": iterations,
                "finished": finished,
                "modified": datetime.fromtimestamp(modified),
            })
        sessions.sort(key=lambda s: s["modified"], reverse=True)
        return sessions

    def read_checklist(self, session: SessionInfo) -> str:
        if session.checklist_file.exists():
            return session.checklist_file.read_text()
        return ""

    def write_checklist(self, session: SessionInfo, content: str) -> None:
        session.checklist_file.write_text(content)
