# render.py
# Turns dashboard sources (json / jsonnet) into concrete JSON under dist/.

from __future__ import annotations

import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from .diff import read_change_set
from .errors import RenderError
from .tools import Tools
from .ui.console import get_console

# Grafana rejects uids of 40 characters or more
UID_MAX_LENGTH = 39

JSON_EXT = ".json"
JSONNET_EXT = ".jsonnet"


def clean_branch(branch: str) -> str:
    """Branch name with every slash removed (feature/login -> featurelogin)."""
    return branch.replace("/", "")


def folder_uid(branch: str) -> str:
    """Folder uid for a branch: slashes removed, cut to Grafana's uid limit."""
    return clean_branch(branch)[:UID_MAX_LENGTH]


def dashboard_stem(name: str) -> str:
    """File name without its dashboard extension."""
    for ext in (JSONNET_EXT, JSON_EXT):
        if name.endswith(ext):
            return name[: -len(ext)]
    return name


def derive_uid(branch: str, name: str) -> str:
    """
    Deterministic dashboard uid for a branch + dashboard file name.

    "uid-" + first 7 hex chars of md5(branch without slashes) + the file
    stem, truncated so Grafana's 40 character limit is respected. Re-running
    on the same branch produces the same uid, so uploads overwrite.
    """
    digest = hashlib.md5(clean_branch(branch).encode("utf-8")).hexdigest()[:7]
    return f"uid-{digest}{dashboard_stem(name)}"[:UID_MAX_LENGTH]


def project_name(path: str | Path, dashboards_dir: str = "dashboards") -> Optional[str]:
    """
    The path segment right after the dashboards root.

    dashboards/teamA/sub/x.json -> teamA
    dashboards/x.json -> None (no project directory)

    The root may span several segments (monitoring/dashboards).
    """
    try:
        rel = Path(path).relative_to(Path(dashboards_dir))
    except ValueError:
        return None
    if len(rel.parts) < 2:
        return None
    return rel.parts[0]


def _write_atomic(target: Path, text: str) -> None:
    # temp file in the same directory so the rename stays on one filesystem
    fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp, target)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def render_json(source: Path, uid: str) -> str:
    """
    Load a JSON dashboard, force uid and null id, and serialise it.

    Only `uid` and `id` are touched; every other key is preserved in order.
    """
    try:
        with source.open("r", encoding="utf-8") as fh:
            dashboard = json.load(fh)
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError
        raise RenderError(f"Invalid JSON in {source}: {e}")

    if not isinstance(dashboard, dict):
        raise RenderError(f"{source} must contain a JSON object")

    dashboard["uid"] = uid
    # a null id makes Grafana create/overwrite instead of updating by id
    dashboard["id"] = None
    return json.dumps(dashboard, indent=3)


def render(
    dashboard: str | Path,
    branch: str,
    *,
    tools: Tools,
    dist_dir: str | Path = "dist",
    dashboards_dir: str = "dashboards",
) -> bool:
    """
    Render one dashboard source into dist/<project>/.

    Args:
        dashboard: Repository relative source path (dashboards/<project>/.../x.json)
        branch: Branch name used to derive the dashboard uid
        tools: External tool runner used for jsonnet sources

    Returns:
        False if the source no longer exists or sits directly under the
        dashboards root, True otherwise. Unknown extensions produce no
        artifact but still return True.

    Raises:
        RenderError: On malformed JSON.
        ToolError: If jsonnet fails.
    """
    console = get_console()
    source = Path(dashboard)

    # a stale diff may still list deleted dashboards
    if not source.exists():
        console.print_info(f"Dashboard file doesn't exist, skipping: {source}")
        return False

    name = source.name
    project = project_name(source, dashboards_dir)
    out_dir = Path(dist_dir) / project if project is not None else None

    if not name.endswith((JSONNET_EXT, JSON_EXT)):
        if out_dir is not None:
            out_dir.mkdir(parents=True, exist_ok=True)
        console.print_warning(f"Unrecognised dashboard extension, nothing rendered: {source}")
        return True

    if out_dir is None:
        console.print_warning(f"No project directory under {dashboards_dir}, skipping: {source}")
        return False

    out_dir.mkdir(parents=True, exist_ok=True)

    uid = derive_uid(branch, name)
    console.print_debug(f"uid for {name}: {uid}")

    if name.endswith(JSONNET_EXT):
        console.print_info(f"Rendering jsonnet: {name}")
        output = tools.jsonnet(source, {"uid": uid})
        _write_atomic(out_dir / (dashboard_stem(name) + JSON_EXT), output)
    else:
        console.print_info(f"Rendering json: {name}")
        _write_atomic(out_dir / name, render_json(source, uid))

    console.print_rendered(name)
    return True


def render_changed(
    change_set: str | Path,
    branch: str,
    *,
    tools: Tools,
    dist_dir: str | Path = "dist",
    dashboards_dir: str = "dashboards",
) -> bool:
    """
    Render every dashboard listed in the change set.

    Returns:
        True if at least one path under the dashboards root was listed,
        whatever render() reported for it. This decides whether a deploy
        happens at all.
    """
    console = get_console()
    console.print_header("Rendering changed dashboards")

    changed = read_change_set(change_set)
    console.print_changed_files(changed)

    files_to_deploy = False
    for path in changed:
        if _in_dashboards(path, dashboards_dir):
            render(path, branch, tools=tools, dist_dir=dist_dir, dashboards_dir=dashboards_dir)
            files_to_deploy = True

    return files_to_deploy


def _in_dashboards(path: str, dashboards_dir: str) -> bool:
    # dashboards/... only; dashboards-old/ or a top-level dashboards.md do not count
    return Path(path).is_relative_to(Path(dashboards_dir)) and Path(path) != Path(dashboards_dir)


def dist_path(dist_dir: Optional[str | Path]) -> Path:
    """Create the output root if needed and return it."""
    root = Path(dist_dir or "dist")
    root.mkdir(parents=True, exist_ok=True)
    return root
