# diff.py
# Computes the change set: which files a pipeline run needs to look at.

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional

from .config import Settings
from .errors import RenderError
from .git_facts import git
from .ui.console import get_console


def compute_change_set(settings: Settings, cwd: Optional[str | Path] = None) -> List[str]:
    """
    Return the file paths that changed for the current branch.

    On the trunk branch every tracked file is returned, so a trunk run
    renders everything. On any other branch the branch is fetched from
    origin and compared against the commit recorded in COMMIT_BEFORE_SHA.

    Raises:
        ConfigError: If CI_COMMIT_BRANCH (or COMMIT_BEFORE_SHA off trunk) is unset.
        ToolError: If git fetch / diff / ls-files fails.
    """
    console = get_console()
    settings.require("branch")

    if settings.is_trunk:
        console.print_info(f"On {settings.trunk_branch}: listing every tracked file")
        return git.tracked_files(cwd=cwd, timeout=settings.timeout)

    settings.require("before_sha")
    branch = str(settings.branch)

    console.print_info(f"Fetching: {branch}")
    git.fetch(branch, cwd=cwd, timeout=settings.timeout)

    target = f"origin/{branch}"
    console.print_info(f"Calculating diffs between: {settings.before_sha} and: {target}")
    return git.changed_files(str(settings.before_sha), target, cwd=cwd, timeout=settings.timeout)


def write_change_set(path: str | Path, files: Iterable[str]) -> None:
    """Write one path per line; the file is recreated on every run."""
    lines = list(files)
    text = "\n".join(lines) + ("\n" if lines else "")
    Path(path).write_text(text, encoding="utf-8")


def read_change_set(path: str | Path) -> List[str]:
    """
    Load a change set written by write_change_set (or by plain `git diff`).

    Trailing newlines are stripped and blank lines ignored.

    Raises:
        OSError: If the file cannot be read.
        RenderError: If the file is not valid UTF-8.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise RenderError(f"Change set {path} is not valid UTF-8: {e}")
    return [line.rstrip("\r\n") for line in text.splitlines() if line.strip()]
