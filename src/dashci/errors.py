# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


class DashciError(Exception):
    """Base class for every error the pipeline raises instead of exiting."""


class ConfigError(DashciError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, missing: List[str], message: str = "missing required environment variables"):
        self.missing = list(missing)
        self.message = message
        super().__init__(f"{message}: {', '.join(self.missing)}" if self.missing else message)


@dataclass
class ToolError(DashciError):
    """
    An external command (git, jsonnet, jq) could not be run or failed.

    Carries enough context to print a useful error without a traceback.
    """
    tool: str
    message: str
    command: List[str] = field(default_factory=list)
    exit_code: Optional[int] = None
    stderr: str = ""

    def __str__(self) -> str:
        lines = [f"{self.tool}: {self.message}"]
        if self.command:
            lines.append(f"command={' '.join(self.command)}")
        if self.exit_code is not None:
            lines.append(f"exit_code={self.exit_code}")
        if self.stderr:
            lines.append(f"stderr={self.stderr.strip()}")
        return "\n".join(lines)


class RenderError(DashciError):
    """Raised when a dashboard source cannot be rendered (e.g. invalid JSON)."""


class APIError(DashciError):
    """Raised when a Grafana API request fails at transport or HTTP level."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(message)
