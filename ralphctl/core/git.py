"""
Git helpers for auto-commit and per-iteration change stats.

Every helper is best-effort: a missing git binary, a directory that is
not a repository or a failing command yields a negative result (False,
None, or a CommitResult with an error), never an exception.
"""

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger("ralphctl.core.git")

GIT_TIMEOUT = 30

# Structured commit message the agent may emit in its output:
#   <commit-message>
#   feat(auth): add login form
#   </commit-message>
COMMIT_BLOCK_PATTERN = re.compile(
    r"<commit-message>\s*(.+?)\s*</commit-message>", re.DOTALL | re.IGNORECASE
)
COMMIT_LINE_PATTERN = re.compile(r"^\s*COMMIT[_ ]MESSAGE:\s*(.+?)\s*$", re.MULTILINE)


@dataclass
class GitStatus:
    """Working tree status counts from `git status --porcelain`."""
    has_changes: bool = False
    staged: int = 0
    unstaged: int = 0
    untracked: int = 0


@dataclass
class CommitResult:
    """Outcome of a commit attempt."""
    success: bool
    commit_hash: Optional[str] = None
    error: Optional[str] = None


def _run_git(args: list[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
    """Run git, turning spawn failures into a failed CompletedProcess."""
    try:
        return subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
            cwd=cwd,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"git {' '.join(args)} failed to run: {e}")
        return subprocess.CompletedProcess(["git", *args], 1, stdout="", stderr=str(e))


def is_git_repository(cwd: Optional[Path] = None) -> bool:
    """True if cwd is inside a git work tree."""
    result = _run_git(["rev-parse", "--is-inside-work-tree"], cwd)
    return result.returncode == 0 and result.stdout.strip() == "true"


def get_git_status(cwd: Optional[Path] = None) -> GitStatus:
    """Count staged, unstaged and untracked paths."""
    result = _run_git(["status", "--porcelain"], cwd)
    if result.returncode != 0:
        return GitStatus()

    lines = [line for line in result.stdout.splitlines() if line.strip()]
    status = GitStatus(has_changes=bool(lines))
    for line in lines:
        index_status, work_tree_status = line[0], line[1]
        if index_status == "?" and work_tree_status == "?":
            status.untracked += 1
            continue
        if index_status not in (" ", "?"):
            status.staged += 1
        if work_tree_status not in (" ", "?"):
            status.unstaged += 1
    return status


def stage_all(cwd: Optional[Path] = None) -> bool:
    """Stage every change including untracked files."""
    return _run_git(["add", "-A"], cwd).returncode == 0


def commit(message: str, add_all: bool = False, cwd: Optional[Path] = None) -> CommitResult:
    """Create a commit.

    Args:
        message: Commit message
        add_all: Stage all changes first (`git add -A`)
        cwd: Repository directory (default: current directory)
    """
    if add_all and not stage_all(cwd):
        return CommitResult(success=False, error="Failed to stage changes")

    status = get_git_status(cwd)
    if add_all and not status.has_changes:
        return CommitResult(success=False, error="No changes to commit")
    if not add_all and status.staged == 0:
        return CommitResult(success=False, error="No staged changes to commit")

    result = _run_git(["commit", "-m", message], cwd)
    if result.returncode != 0:
        return CommitResult(success=False, error=result.stderr.strip() or "Commit failed")

    # "[main 1a2b3c4] message"
    hash_match = re.search(r"\[[\w./-]+(?: \(root-commit\))? ([0-9a-f]+)\]", result.stdout)
    return CommitResult(success=True, commit_hash=hash_match.group(1) if hash_match else None)


def format_commit_message(
    template: str,
    iteration: int,
    session_name: str,
    tool: Optional[str] = None,
) -> str:
    """Fill {iteration}, {session_name} and {tool} in a commit template."""
    return (
        template.replace("{iteration}", str(iteration))
        .replace("{session_name}", session_name)
        .replace("{tool}", tool or "unknown")
    )


def parse_commit_message(output: str) -> Optional[str]:
    """Extract a commit message the agent proposed in its output.

    Recognised markers, first matching form wins:
    1. a ``<commit-message>...</commit-message>`` block
    2. a ``COMMIT_MESSAGE: ...`` line

    When a marker appears several times the last one is used, since the
    agent's final answer comes last.
    """
    for pattern in (COMMIT_BLOCK_PATTERN, COMMIT_LINE_PATTERN):
        matches = [m.strip() for m in pattern.findall(output) if m.strip()]
        if matches:
            return matches[-1]
    return None


def get_diff_stats(cwd: Optional[Path] = None) -> Optional[dict[str, int]]:
    """Files/insertions/deletions for staged changes, or None."""
    result = _run_git(["diff", "--cached", "--stat"], cwd)
    if result.returncode != 0 or not result.stdout.strip():
        return None

    summary_line = result.stdout.strip().splitlines()[-1]
    files = re.search(r"(\d+) files? changed", summary_line)
    insertions = re.search(r"(\d+) insertions?\(\+\)", summary_line)
    deletions = re.search(r"(\d+) deletions?\(-\)", summary_line)
    return {
        "files": int(files.group(1)) if files else 0,
        "insertions": int(insertions.group(1)) if insertions else 0,
        "deletions": int(deletions.group(1)) if deletions else 0,
    }


def get_git_diff_summary(cwd: Optional[Path] = None) -> Optional[str]:
    """Summary line of `git diff --stat HEAD~1`, e.g. "3 files changed, 10 insertions(+)"."""
    result = _run_git(["diff", "--stat", "HEAD~1", "--"], cwd)
    if result.returncode != 0 or not result.stdout.strip():
        return None
    summary_line = result.stdout.strip().splitlines()[-1].strip()
    return summary_line if "changed" in summary_line else None


def get_files_changed_count(cwd: Optional[Path] = None) -> Optional[int]:
    """Number of files changed since HEAD~1, or None when unavailable."""
    result = _run_git(["diff", "--name-only", "HEAD~1", "--"], cwd)
    if result.returncode != 0:
        return None
    return len([line for line in result.stdout.splitlines() if line.strip()])
