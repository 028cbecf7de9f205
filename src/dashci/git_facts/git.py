# git.py
# Small, focused wrapper around the Git CLI.
# This module centralizes all Git interactions so the rest of the codebase
# never needs to call subprocess("git ...") directly.

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from ..tools import run_command


def _git(args: list[str], cwd: Optional[str | Path] = None, timeout: Optional[float] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    This is the single low-level entry point for all Git operations in this file.

    Args:
        args: List of git arguments (e.g. ["ls-files"])
        cwd: Optional working directory in which to run the git command.
        timeout: Seconds to wait before giving up on git.

    Returns:
        Stdout from the git command with surrounding whitespace removed.

    Raises:
        ToolError: If git is missing, times out or exits non-zero.
    """
    # report non-ASCII paths verbatim instead of as quoted octal escapes
    out = run_command(["git", "-c", "core.quotePath=false", *args], cwd=cwd, timeout=timeout)

    # Strip trailing newlines so callers can do clean string comparisons
    return out.strip()


def _lines(out: str) -> List[str]:
    # No output means no files
    if not out:
        return []
    return out.splitlines()


def tracked_files(cwd: Optional[str | Path] = None, timeout: Optional[float] = None) -> List[str]:
    """
    Return every file tracked by git, relative to the repository root.

    Used on the trunk branch where every dashboard is considered changed.
    """
    return _lines(_git(["ls-files"], cwd=cwd, timeout=timeout))


def fetch(
    branch: str,
    remote: str = "origin",
    cwd: Optional[str | Path] = None,
    timeout: Optional[float] = None,
) -> None:
    """
    Fetch the latest state of a branch from a remote.

    There is no retry: a network failure surfaces as ToolError.
    """
    _git(["fetch", remote, branch], cwd=cwd, timeout=timeout)


def changed_files(
    base: str,
    head: str,
    cwd: Optional[str | Path] = None,
    timeout: Optional[float] = None,
) -> List[str]:
    """
    Return a list of files changed between two Git references.

    `git diff --name-only` outputs only file paths, one per line, with no
    status letters.

    Args:
        base: The base Git ref (commit, branch, or tag).
        head: The head Git ref to compare against.

    Returns:
        List of file paths (relative to repo root) that differ between
        base and head.
    """
    return _lines(_git(["diff", "--name-only", base, head], cwd=cwd, timeout=timeout))
