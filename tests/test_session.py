"""Tests for ralphctl/core/session.py - session directories."""

from datetime import datetime

import pytest

from ralphctl.core.exceptions import InvalidSessionName, PromptFileMissing
from ralphctl.core.session import (
    SessionManager,
    derive_session_name,
    timestamp_session_name,
    validate_session_name,
)

pytestmark = pytest.mark.unit


class TestDeriveSessionName:

    @pytest.mark.parametrize("filename,expected", [
        ("feature-auth.md", "auth"),
        ("prompt_login.md", "login"),
        ("task-Billing.txt", "billing"),
        ("Billing.txt", "billing"),
        ("notes.markdown", "notes"),
        ("refactor.md", "refactor"),
    ])
    def test_meaningful_names(self, filename, expected):
        assert derive_session_name(filename) == expected

    @pytest.mark.parametrize("filename", ["PROMPT.md", "plan.md", "tasks.txt", "TODO.md", "README.md"])
    def test_generic_names(self, filename):
        assert derive_session_name(filename) is None

    def test_timestamp_fallback(self):
        assert timestamp_session_name(datetime(2026, 10, 18, 14, 32)) == "session-2026-10-18-1432"


class TestGetOrCreateSession:
    """Session creation and resume."""

    def test_creates_directory_and_prompt_copy(self, workspace, prompt_file):
        session = SessionManager(workspace).get_or_create_session(prompt_file)
        assert session.name == "auth"
        assert session.is_resumed is False
        assert session.dir == workspace / ".ralph" / "auth"
        assert session.prompt_copy.read_text() == prompt_file.read_text()
        assert session.progress_file == session.dir / "progress.md"
        assert session.checklist_file == session.dir / "checklist.md"
        assert session.prompt_file == prompt_file.resolve()

    def test_relative_prompt_resolves_against_working_dir(self, workspace):
        session = SessionManager(workspace).get_or_create_session("feature-auth.md")
        assert session.prompt_file == (workspace / "feature-auth.md").resolve()

    def test_explicit_name(self, workspace, prompt_file):
        session = SessionManager(workspace).get_or_create_session(prompt_file, "login")
        assert session.name == "login"

    def test_generic_prompt_gets_timestamp_name(self, workspace):
        (workspace / "PROMPT.md").write_text("do it")
        session = SessionManager(workspace).get_or_create_session("PROMPT.md")
        assert session.name.startswith("session-")

    def test_resume_keeps_original_prompt_copy(self, workspace, prompt_file):
        """Resuming must not re-copy the prompt."""
        manager = SessionManager(workspace)
        first = manager.get_or_create_session(prompt_file)
        prompt_file.write_text("# Auth v2\n")

        second = manager.get_or_create_session(prompt_file)
        assert second.is_resumed is True
        assert second.dir == first.dir
        assert "Add login form" in second.prompt_copy.read_text()

    def test_missing_prompt(self, workspace):
        with pytest.raises(PromptFileMissing) as exc_info:
            SessionManager(workspace).get_or_create_session("missing.md")
        assert exc_info.value.path.endswith("missing.md")
        assert not (workspace / ".ralph").exists()

    def test_preview_creates_nothing(self, workspace, prompt_file):
        session = SessionManager(workspace).preview_session(prompt_file)
        assert session.name == "auth"
        assert not session.dir.exists()


class TestSessionNames:
    """Session names must stay a single directory under .ralph/."""

    @pytest.mark.parametrize("name", ["../x", "a/b", "..", ".", "", "a\\b"])
    def test_rejects_path_like_names(self, name):
        with pytest.raises(InvalidSessionName):
            validate_session_name(name)

    @pytest.mark.parametrize("name", ["auth", "session-2026-10-18-1432", "v1.2", "..auth"])
    def test_accepts_plain_names(self, name):
        assert validate_session_name(name) == name

    def test_create_outside_sessions_dir_refused(self, workspace, prompt_file):
        with pytest.raises(InvalidSessionName) as exc_info:
            SessionManager(workspace).get_or_create_session(prompt_file, "../escape")
        assert exc_info.value.name == "../escape"
        assert not (workspace / "escape").exists()
        assert not (workspace / ".ralph").exists()

    def test_load_session(self, workspace, prompt_file):
        manager = SessionManager(workspace)
        assert manager.load_session("auth") is None
        created = manager.get_or_create_session(prompt_file)

        loaded = manager.load_session("auth")
        assert loaded.is_resumed is True
        assert loaded.checklist_file == created.checklist_file
        assert loaded.prompt_file == created.prompt_copy

    def test_load_invalid_name(self, workspace):
        with pytest.raises(InvalidSessionName):
            SessionManager(workspace).load_session("../../etc")


class TestListSessions:

    def test_empty(self, workspace):
        assert SessionManager(workspace).list_sessions() == []

    def test_counts_iterations_and_finished(self, workspace, prompt_file):
        manager = SessionManager(workspace)
        session = manager.get_or_create_session(prompt_file)
        session.progress_file.write_text(
            "# Session: auth\n\n## Iteration 1 - 10:00:00\n\n## Iteration 2 - 10:01:00\n\n"
            "---\n\n## Summary\nTotal iterations: 2\n"
        )
        (listed,) = manager.list_sessions()
        assert listed["name"] == "auth"
        assert listed["iterations"] == 2
        assert listed["finished"] is True

    def test_resumed_session_is_open(self, workspace, prompt_file):
        manager = SessionManager(workspace)
        session = manager.get_or_create_session(prompt_file)
        session.progress_file.write_text(
            "# Session: auth\n\n## Summary\n\n---\n\n## Resumed: 2026-10-18 10:00:00\n"
        )
        assert manager.list_sessions()[0]["finished"] is False


class TestChecklist:

    def test_read_missing_is_empty(self, workspace, prompt_file):
        manager = SessionManager(workspace)
        session = manager.get_or_create_session(prompt_file)
        assert manager.read_checklist(session) == ""

    def test_write_then_read(self, workspace, prompt_file):
        manager = SessionManager(workspace)
        session = manager.get_or_create_session(prompt_file)
        manager.write_checklist(session, "- [x] done\n")
        assert manager.read_checklist(session) == "- [x] done\n"
