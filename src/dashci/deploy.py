# deploy.py
# Uploads rendered dashboards into a per-branch Grafana folder.

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, Optional

from .grafana.api_client import GrafanaClient
from .render import folder_uid
from .tools import Tools
from .ui.console import get_console

DEV = "dev"
TEST = "tst"

# "Merge branch 'feature/x' into 'master'"
MERGE_SOURCE = re.compile(r"branch\s.(.+?).\sinto")


def select_environment(branch: str) -> str:
    """Project branches go to the test server, everything else to dev."""
    if "project/" in branch:
        return TEST
    return DEV


def create_grafana_folder(client: GrafanaClient, uid: str, name: str) -> None:
    get_console().print_info(f"Creating grafana folder: {name}, uid: {uid}")
    client.create_folder(uid, name)


def deploy_dashboard(client: GrafanaClient, tools: Tools, dashboard: str | Path, uid: str) -> None:
    """Compact one rendered dashboard with jq and import it into the folder."""
    get_console().print_info(f"Deploying: {dashboard}")
    client.import_dashboard(tools.jq_compact(dashboard), uid)


def _excluded(name: str, exclude: Iterable[str]) -> bool:
    return any(marker in name for marker in exclude)


def deploy_all_dashboards(
    client: GrafanaClient,
    tools: Tools,
    root: str | Path,
    uid: str,
    exclude: Iterable[str] = ("rlt",),
) -> int:
    """
    Walk the rendered tree and deploy every file found.

    Directories whose name contains an exclude marker are skipped together
    with everything below them. Entries are visited in name order.

    Returns:
        Number of dashboards deployed.
    """
    exclude = tuple(exclude)
    count = 0
    for item in sorted(Path(root).iterdir(), key=lambda p: p.name):
        if item.is_dir():
            if _excluded(item.name, exclude):
                get_console().print_debug(f"Skipping excluded directory: {item}")
                continue
            count += deploy_all_dashboards(client, tools, item, uid, exclude)
        elif item.name.startswith("."):
            # leftover temp files from an interrupted render
            continue
        else:
            deploy_dashboard(client, tools, item, uid)
            count += 1
    return count


def merge_source_branch(commit_message: str) -> Optional[str]:
    """Source branch of a merge commit message, or None if it is not one."""
    match = MERGE_SOURCE.search(commit_message)
    if not match:
        return None
    return match.group(1)


def is_short_lived(branch: str) -> bool:
    return not (branch.startswith("master") or branch.startswith("project"))


def cleanup_merged_branch(client: GrafanaClient, commit_message: str) -> Optional[str]:
    """
    Delete the folder of a short-lived branch that was just merged.

    Returns:
        The folder uid that was deleted, or None if there was nothing to do.
    """
    console = get_console()
    branch = merge_source_branch(commit_message)
    if branch is None:
        console.print_info("Commit message is not a merge, no short lived branches to clean up.")
        return None

    console.print_info(f"Merge source is {branch}")
    if not is_short_lived(branch):
        console.print_info("No short lived branches to clean up.")
        return None

    uid = folder_uid(branch)
    console.print_info(f"Cleaning up short lived grafana dashboards: {uid}")
    client.delete_folder(uid)
    return uid
