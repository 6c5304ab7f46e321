"""
Prompt composition and checklist helpers.

The agent sees one markdown file per run: a short system prompt that
tells it where the session artifacts live and how to signal completion,
followed by the user's prompt verbatim.
"""

import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .session import SessionInfo

CHECKBOX_PATTERN = re.compile(r"^\s*[-*]\s*\[[ xX]\]\s*(.+)$", re.MULTILINE)
CHECKBOX_LINE = re.compile(r"^\s*[-*]\s*\[[ xX]\]")

SYSTEM_PROMPT_TEMPLATE = """\
# Ralph Loop Instructions

You are running inside an iterative loop. Each iteration starts fresh, so
keep your state on disk:

- Session directory: {session_dir}
- Progress log (read-only, written by the loop): {progress_file}
- Checklist: {checklist_file}

At the start of every iteration:
1. Read the checklist to see what is already done.
2. Pick the next unchecked item and work on it.
3. Mark it done (`- [x]`) in the checklist when finished.

When you change files, propose a commit message in this form:

<commit-message>
type(scope): short description
</commit-message>

When every item of the task is complete, print `## COMPLETE` on its own line.

---

"""


def render_system_prompt(session: SessionInfo) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(
        session_dir=session.dir,
        progress_file=session.progress_file,
        checklist_file=session.checklist_file,
    )


@contextmanager
def combined_prompt(
    prompt_file: Path,
    session: SessionInfo,
    include_system_prompt: bool = True,
) -> Iterator[Path]:
    """Write the system prompt plus the user prompt to a temporary file.

    Yields the temporary file's path; the file is removed when the
    context exits, including on error.
    """
    content = Path(prompt_file).read_text()
    if include_system_prompt:
        content = render_system_prompt(session) + content

    fd, name = tempfile.mkstemp(prefix=f"ralphctl-{session.name}-", suffix=".md")
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        yield path
    finally:
        path.unlink(missing_ok=True)


def extract_tasks(content: str) -> list[str]:
    """Markdown checkbox items (``- [ ] task`` or ``* [x] task``)."""
    return [match.strip() for match in CHECKBOX_PATTERN.findall(content)]


def generate_checklist(tasks: list[str]) -> str:
    if not tasks:
        return "# Checklist\n\nNo tasks detected in prompt.\n"

    lines = ["# Checklist", "", "Tasks extracted from prompt:", ""]
    lines.extend(f"- [ ] {task}" for task in tasks)
    lines.append("")
    return "\n".join(lines)


def update_checklist_item(content: str, task_index: int, completed: bool) -> str:
    """Check or uncheck the task at task_index (0-based, checkbox lines only).

    Content is returned unchanged if there is no such task.
    """
    lines = content.split("\n")
    task_count = 0
    for i, line in enumerate(lines):
        if not CHECKBOX_LINE.match(line):
            continue
        if task_count == task_index:
            if completed:
                lines[i] = line.replace("[ ]", "[x]", 1)
            else:
                lines[i] = re.sub(r"\[[xX]\]", "[ ]", line, count=1)
            break
        task_count += 1
    return "\n".join(lines)
