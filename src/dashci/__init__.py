from .config import Settings
from .deploy import deploy_all_dashboards, select_environment
from .diff import compute_change_set, read_change_set, write_change_set
from .errors import APIError, ConfigError, DashciError, RenderError, ToolError
from .pipeline import run_build, run_cleanup, run_diff
from .render import derive_uid, folder_uid, render, render_changed
from .tools import Tools

__all__ = [
    "Settings", "Tools",
    "compute_change_set", "read_change_set", "write_change_set",
    "derive_uid", "folder_uid", "render", "render_changed",
    "deploy_all_dashboards", "select_environment",
    "run_diff", "run_build", "run_cleanup",
    "DashciError", "ConfigError", "ToolError", "RenderError", "APIError",
]
