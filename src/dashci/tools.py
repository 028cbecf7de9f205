# tools.py
# External command collaborators: the jsonnet renderer and the jq JSON filter.
# Everything that shells out goes through run_command so failures surface as
# ToolError instead of terminating the process.

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from .errors import ToolError
from .ui.console import get_console


def run_command(
    cmd: List[str],
    *,
    cwd: Optional[str | Path] = None,
    timeout: Optional[float] = None,
) -> str:
    """
    Run a command and return its stdout as text.

    Args:
        cmd: Full argv, program first (e.g. ["git", "ls-files"])
        cwd: Optional working directory for the command
        timeout: Seconds before the command is killed (None waits forever)

    Returns:
        Stdout of the command, unmodified.

    Raises:
        ToolError: If the program is missing, times out or exits non-zero.
    """
    tool = cmd[0]
    get_console().print_debug(" ".join(cmd))

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            check=False,
            capture_output=True,
            text=True,
            encoding="utf-8",
            timeout=timeout,
        )
    except FileNotFoundError:
        raise ToolError(tool, f"{tool} command not found", command=cmd)
    except subprocess.TimeoutExpired:
        raise ToolError(tool, f"timed out after {timeout}s", command=cmd)

    if result.returncode != 0:
        raise ToolError(
            tool,
            "command failed",
            command=cmd,
            exit_code=result.returncode,
            stderr=result.stderr or "",
        )

    return result.stdout


class Tools:
    """
    The external programs used while rendering and deploying dashboards.

    Tests substitute a fake with the same two methods so no real binaries
    are needed.
    """

    def __init__(self, jsonnet_path: str = "vendor", timeout: Optional[float] = None):
        self.jsonnet_path = jsonnet_path
        self.timeout = timeout

    def jsonnet(self, source: str | Path, ext_str: Dict[str, str]) -> str:
        """Expand a jsonnet template, binding each ext_str entry as --ext-str."""
        cmd = ["jsonnet", "-J", self.jsonnet_path, str(source)]
        for key, value in ext_str.items():
            cmd += ["--ext-str", f"{key}={value}"]
        return run_command(cmd, timeout=self.timeout)

    def jq_compact(self, path: str | Path) -> str:
        """Return the JSON document at path compacted onto a single line."""
        return run_command(["jq", "-c", ".", str(path)], timeout=self.timeout).rstrip("\n")
